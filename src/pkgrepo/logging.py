# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Structured logging for the package repository.

Every install and delete logs through an OperationLogger bound to its
transaction, so each line carries the operation, the transaction id and the
install source or delete argument. Both formatters render that context: JSON
for log aggregation, text for terminals.
"""

import json
import logging
import sys
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional, Tuple

from .models import TransactionOperation

ROOT_LOGGER = "pkgrepo"

# Record attributes rendered as repository context, in output order
CONTEXT_FIELDS = ("operation", "transaction_id", "target", "package_id")


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        field: getattr(record, field)
        for field in CONTEXT_FIELDS
        if getattr(record, field, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line with the repository context flattened in"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_context(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines; context is appended as key=value pairs"""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = " ".join(f"{key}={value}" for key, value in _context(record).items())
        return f"{line} [{context}]" if context else line


class OperationLogger(logging.LoggerAdapter):
    """Logger bound to one install or delete; per-call extras are merged in"""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def bind(self, **fields: Any) -> "OperationLogger":
        """Copy of this logger with more context, e.g. the resolved package id"""
        return OperationLogger(self.logger, {**self.extra, **fields})


def operation_logger(
    logger: logging.Logger,
    operation: TransactionOperation,
    target: str,
    transaction_id: Optional[str] = None
) -> OperationLogger:
    """
    Bind a module logger to a repository operation.

    Args:
        logger: Module logger
        operation: Install or delete
        target: Install source or delete argument
        transaction_id: Id of the transaction record, if the log is enabled
    """
    return OperationLogger(logger, {
        "operation": operation.value,
        "target": target,
        "transaction_id": transaction_id,
    })


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Path] = None
) -> logging.Logger:
    """
    Configure the package's root logger.

    Replaces existing handlers, so calling it again (for instance after
    reload_config) does not duplicate output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: json or text
        log_file: Optional file receiving the same lines as stdout

    Returns:
        The configured `pkgrepo` logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.handlers = []

    formatter = JSONFormatter() if log_format == "json" else TextFormatter()
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
