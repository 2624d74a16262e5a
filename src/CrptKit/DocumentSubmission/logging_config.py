"""
Structured Logging Utilities

This module centralizes logging setup for the document submission client. It
provides helpers for masking credentials and signatures, emitting JSON log
records, and managing correlation identifiers that tie the log lines of one
submission together.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

import platformdirs

from .settings import LoggingSettings

LOGGER_NAME = "CrptKit.DocumentSubmission"
MASK = "***masked***"
_SENSITIVE_KEYS = {"authorization", "token", "bearer", "signature", "secret", "password"}


def mask_sensitive_data(payload: Dict[str, object]) -> Dict[str, object]:
    """Remove secrets from structured payloads prior to logging.

    Args:
        payload: Arbitrary key-value pairs that may contain bearer tokens or
            document signatures.

    Returns:
        Copy of the payload where sensitive fields are replaced with
        `***masked***`.

    Examples:
        >>> mask_sensitive_data({"token": "secret", "status": "ok"})
        {'token': '***masked***', 'status': 'ok'}
    """
    masked: Dict[str, object] = {}
    for key, value in payload.items():
        if key.lower() in _SENSITIVE_KEYS:
            masked[key] = MASK
        elif isinstance(value, str) and value.lower().startswith("bearer "):
            masked[key] = MASK
        else:
            masked[key] = value
    return masked


def generate_correlation_id() -> str:
    """Create a short identifier that links the log entries of one submission.

    Examples:
        >>> len(generate_correlation_id())
        12
    """
    return uuid.uuid4().hex[:12]


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        log_obj = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
        }
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_obj.update(extra_fields)
        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(log_obj), default=str)


def default_log_dir() -> Path:
    return Path(platformdirs.user_log_dir("crptkit"))


def setup_logging(config: LoggingSettings, log_dir: Optional[Path] = None) -> logging.Logger:
    """Configure console and optional JSON file handlers.

    Handlers installed by a previous call are replaced, so calling this twice
    does not duplicate output.

    Args:
        config: Logging settings (level, JSON toggle, rotation size).
        log_dir: Directory override for JSON log files.

    Returns:
        The package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.level_int())

    for handler in list(logger.handlers):
        if getattr(handler, "_crptkit_managed", False):
            logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    stream_handler._crptkit_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    if config.emit_json_logs:
        target_dir = log_dir or config.log_dir or default_log_dir()
        target_dir.mkdir(parents=True, exist_ok=True)
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        file_handler = RotatingFileHandler(
            target_dir / f"crpt-submit-{today}.jsonl",
            maxBytes=int(config.max_log_size_mb * 1024 * 1024),
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler._crptkit_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = True
    return logger


__all__ = [
    "setup_logging",
    "mask_sensitive_data",
    "generate_correlation_id",
    "JSONFormatter",
    "default_log_dir",
]
