"""Logging utilities for storage engines.

Engines log through module-level loggers; this module configures the root
logger for applications and scripts, with an optional JSON format for log
aggregation.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from objectstore.lib.errors import StorageError

__all__ = [
    "setup_logging",
    "JSONFormatter",
]

# Attributes present on every LogRecord; anything else came from extra=
_RESERVED_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
}

# Storage context lifted to the top level of each JSON line
CONTEXT_FIELDS = ("key", "token", "part")


class JSONFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per log record.

    ``key``, ``token`` and ``part`` passed via ``extra=`` become top-level
    fields. When the record carries a StorageError, its structured context
    is added under ``error`` and fills in any of those fields not already
    set. Other ``extra=`` attributes land under ``extra``.

    Example output:
        {"timestamp": "2025-01-15T10:30:00.123Z", "level": "INFO",
         "logger": "objectstore.lib.storage.filesystem", "pid": 4242,
         "message": "Finalized multipart upload ...", "key": "docs/a.txt"}
    """

    def __init__(self, exclude_fields: Optional[List[str]] = None):
        super().__init__()
        self.exclude_fields = set(exclude_fields or [])

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "pid": record.process,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.lineno}",
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if record.exc_info:
            exc = record.exc_info[1]
            if isinstance(exc, StorageError):
                error = exc.to_dict()
                log_data["error"] = error
                for field in CONTEXT_FIELDS:
                    if error.get(field) is not None:
                        log_data.setdefault(field, error[field])
            log_data["exception"] = self.formatException(record.exc_info)

        extra_attrs = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _RESERVED_ATTRS and k not in CONTEXT_FIELDS and k not in self.exclude_fields
        }
        if extra_attrs:
            log_data["extra"] = extra_attrs

        return json.dumps(log_data, default=str)


def setup_logging(
    verbose: bool = False,
    json_format: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure the root logger.

    Args:
        verbose: Enable debug-level logging (lock acquisition, part writes)
        json_format: Use JSON output format (for log aggregation)
        log_file: Optional file path to write logs to
    """
    level = logging.DEBUG if verbose else logging.INFO

    if json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # boto3 is chatty at DEBUG
    for name in ("boto3", "botocore", "urllib3", "s3transfer"):
        logging.getLogger(name).setLevel(logging.WARNING)
