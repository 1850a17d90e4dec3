# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit Tests for configuration loading, structured logging and error payloads
"""

import json
import logging

import pytest

from pkgrepo import __version__
from pkgrepo import config as config_module
from pkgrepo.config import RepositoryConfig, load_config
from pkgrepo.errors import DependencyConflictError, NotFoundError
from pkgrepo.logging import JSONFormatter, TextFormatter, configure_logging, operation_logger
from pkgrepo.models import TransactionOperation


class TestLoadConfig:
    """Test YAML configuration loading"""

    def test_defaults_when_missing(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PKGREPO_PATH", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        cfg = load_config(str(tmp_path / "missing.yaml"))

        assert cfg == RepositoryConfig()
        assert cfg.processor_version == __version__
        assert cfg.transaction_log_path == cfg.root / ".transactions.jsonl"

    def test_load_yaml(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PKGREPO_PATH", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        path = tmp_path / "repository.yaml"
        path.write_text(
            "repository:\n"
            "  path: /srv/repo\n"
            "  transaction_log: ''\n"
            "processor:\n"
            "  name: basex\n"
            "  version: 8.0\n"
            "signing:\n"
            "  gpgcheck: true\n"
            "  keyring: /srv/keys\n"
            "logging:\n"
            "  level: DEBUG\n"
            "  format: text\n"
            "  file: /srv/log/repo.log\n"
        )
        cfg = load_config(str(path))

        assert cfg.repo_path == "/srv/repo"
        assert cfg.transaction_log_path is None
        assert cfg.processor_name == "basex"
        assert cfg.processor_version == "8.0"
        assert cfg.gpgcheck is True
        assert cfg.keyring_dir == "/srv/keys"
        assert cfg.log_level == "DEBUG"
        assert cfg.log_format == "text"
        assert cfg.log_file == "/srv/log/repo.log"

    def test_environment_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "repository.yaml"
        path.write_text("repository:\n  path: /srv/repo\n")
        monkeypatch.setenv("PKGREPO_PATH", "/env/repo")
        monkeypatch.setenv("LOG_LEVEL", "WARNING")

        cfg = load_config(str(path))
        assert cfg.repo_path == "/env/repo"
        assert cfg.log_level == "WARNING"

    def test_config_is_frozen(self):
        with pytest.raises(AttributeError):
            RepositoryConfig().repo_path = "x"

    def test_get_config_caches(self, tmp_path, monkeypatch):
        path = tmp_path / "repository.yaml"
        path.write_text("processor:\n  name: first\n")
        monkeypatch.setenv("PKGREPO_CONFIG_PATH", str(path))
        monkeypatch.setattr(config_module, "_config", None)

        assert config_module.get_config().processor_name == "first"
        path.write_text("processor:\n  name: second\n")
        assert config_module.get_config().processor_name == "first"
        assert config_module.reload_config().processor_name == "second"
        monkeypatch.setattr(config_module, "_config", None)


class TestLogging:
    """Test structured logging helpers"""

    def test_json_formatter(self):
        record = logging.LogRecord("pkgrepo.manager", logging.INFO, __file__, 1, "installed", None, None)
        record.operation = "install"
        record.package_id = "pkg3-10.0"
        record.unrelated = "dropped"
        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "pkgrepo.manager"
        assert data["message"] == "installed"
        assert data["operation"] == "install"
        assert data["package_id"] == "pkg3-10.0"
        assert "unrelated" not in data
        assert "lineno" not in data

    def test_text_formatter_appends_context(self):
        record = logging.LogRecord("pkgrepo.manager", logging.INFO, __file__, 1, "package_deleted", None, None)
        record.operation = "delete"
        record.target = "pkg3"
        line = TextFormatter().format(record)

        assert line.endswith("package_deleted [operation=delete target=pkg3]")
        plain = logging.LogRecord("pkgrepo.index", logging.INFO, __file__, 1, "loaded", None, None)
        assert TextFormatter().format(plain).endswith("loaded")

    def test_operation_logger_binds_context(self, caplog):
        base = logging.getLogger("pkgrepo.manager")
        log = operation_logger(base, TransactionOperation.INSTALL, "pkg3.xar", "txn-1")
        with caplog.at_level(logging.INFO, logger="pkgrepo"):
            log.info("package_installed", extra={"package_id": "pkg3-10.0"})
            log.bind(package_id="pkg3-10.0").warning("cleanup failed")

        first, second = caplog.records
        assert (first.operation, first.target, first.transaction_id) == ("install", "pkg3.xar", "txn-1")
        assert first.package_id == "pkg3-10.0"
        assert second.package_id == "pkg3-10.0"

    def test_configure_logging_replaces_handlers(self, tmp_path):
        log_file = tmp_path / "logs" / "repo.log"
        configure_logging(log_format="text")
        logger = configure_logging("DEBUG", log_file=log_file)

        assert logger.name == "pkgrepo"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

        log = operation_logger(logging.getLogger("pkgrepo.manager"), TransactionOperation.DELETE, "pkg3")
        log.info("package_deleted", extra={"package_id": "pkg3-10.0"})
        for handler in logger.handlers:
            handler.flush()
        line = json.loads(log_file.read_text().splitlines()[-1])
        assert line["message"] == "package_deleted"
        assert line["operation"] == "delete"
        assert line["package_id"] == "pkg3-10.0"
        assert "transaction_id" not in line
        logger.handlers[1].close()


class TestErrorPayloads:
    """Test errors rendered for front ends"""

    def test_to_dict(self):
        error = NotFoundError("xyz")
        assert error.to_dict() == {
            "error": "NotFoundError",
            "message": "Package not found: xyz",
            "details": {}
        }

    def test_dependency_conflict_message(self):
        error = DependencyConflictError("pkg3-10.0", {"pkg5-1.0", "pkg4-2.0"})
        assert error.dependents == ["pkg4-2.0", "pkg5-1.0"]
        assert "pkg4-2.0, pkg5-1.0" in str(error)
