# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Repository Configuration - Single source of truth.

All configuration lives in a YAML file; environment variables only
override the repository location and log level.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from . import __version__

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "/etc/pkgrepo/repository.yaml"


@dataclass(frozen=True)
class RepositoryConfig:
    """
    Immutable repository configuration.
    All values from YAML. No hidden state.
    """

    # -- Repository --
    repo_path: str = "repo"
    transaction_log: str = ".transactions.jsonl"

    # -- Host processor (matched by processor dependencies) --
    processor_name: str = "pkgrepo"
    processor_version: str = __version__

    # -- Signing --
    gpgcheck: bool = False
    keyring_dir: Optional[str] = None

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None

    @property
    def root(self) -> Path:
        return Path(self.repo_path)

    @property
    def transaction_log_path(self) -> Optional[Path]:
        """Transaction log inside the repository root; None when disabled"""
        if not self.transaction_log:
            return None
        return self.root / self.transaction_log


def load_config(path: str = DEFAULT_CONFIG_PATH) -> RepositoryConfig:
    """
    Load configuration from YAML.
    Returns defaults (plus environment overrides) if the file doesn't exist.
    """
    y = {}
    if Path(path).exists():
        with open(path) as f:
            y = yaml.safe_load(f) or {}
    else:
        logger.info(f"Config not found at {path}, using defaults")

    # Helper to safely navigate nested dicts
    def get(d: dict, *keys, default=None):
        for k in keys:
            if not isinstance(d, dict):
                return default
            d = d.get(k, {})
        return d if d != {} else default

    defaults = RepositoryConfig()
    transaction_log = get(y, "repository", "transaction_log")

    return RepositoryConfig(
        repo_path=os.getenv("PKGREPO_PATH") or get(y, "repository", "path") or defaults.repo_path,
        transaction_log=defaults.transaction_log if transaction_log is None else (transaction_log or ""),
        processor_name=get(y, "processor", "name") or defaults.processor_name,
        processor_version=str(get(y, "processor", "version") or defaults.processor_version),
        gpgcheck=bool(get(y, "signing", "gpgcheck", default=False)),
        keyring_dir=get(y, "signing", "keyring"),
        log_level=os.getenv("LOG_LEVEL") or get(y, "logging", "level") or defaults.log_level,
        log_format=get(y, "logging", "format") or defaults.log_format,
        log_file=get(y, "logging", "file"),
    )


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[RepositoryConfig] = None


def get_config() -> RepositoryConfig:
    """Get or create global config instance."""
    global _config
    if _config is None:
        _config = load_config(os.getenv("PKGREPO_CONFIG_PATH", DEFAULT_CONFIG_PATH))
    return _config


def reload_config() -> RepositoryConfig:
    """Force reload configuration."""
    global _config
    _config = None
    return get_config()
