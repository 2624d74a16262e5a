"""Typed configuration for the document submission client.

Settings are resolved once per process from defaults and ``CRPT_``-prefixed
environment variables (nested groups use ``__``, for example
``CRPT_HTTP__TIMEOUT_READ=60``). Every group is a frozen pydantic model so a
bound client cannot observe a half-updated configuration.

Example:
    >>> from CrptKit.DocumentSubmission.settings import get_settings
    >>> settings = get_settings()
    >>> settings.request_limit, settings.time_unit
    (10, <TimeUnit.SECONDS: 1.0>)
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .ratelimit.gate import TimeUnit

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_BASE_URL",
    "HttpSettings",
    "LoggingSettings",
    "SubmissionSettings",
    "get_settings",
    "reset_settings",
]

DEFAULT_BASE_URL = "https://ismp.crpt.ru/api/v3"


class HttpSettings(BaseModel):
    """HTTP client settings for the HTTPX transport."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    http2: bool = Field(default=False, description="Enable HTTP/2 support")
    timeout_connect: float = Field(default=5.0, gt=0.0, le=60.0, description="Connect timeout in seconds")
    timeout_read: float = Field(default=30.0, gt=0.0, le=300.0, description="Read timeout in seconds")
    timeout_write: float = Field(default=30.0, gt=0.0, le=300.0, description="Write timeout in seconds")
    timeout_pool: float = Field(
        default=5.0,
        gt=0.0,
        le=60.0,
        description="Acquire-from-pool timeout in seconds",
    )
    pool_max_connections: int = Field(default=32, ge=1, le=1024, description="Max concurrent connections")
    verify_tls: bool = Field(default=True, description="Verify server certificates against certifi")
    trust_env: bool = Field(
        default=True,
        description="Honor HTTP(S)_PROXY and NO_PROXY environment variables",
    )
    user_agent: str = Field(default="CrptKit/DocumentSubmission", description="User-Agent header value")


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    emit_json_logs: bool = Field(default=False, description="Also write JSON lines to log_dir")
    log_dir: Optional[Path] = Field(default=None, description="Directory for JSON log files")
    max_log_size_mb: float = Field(default=10.0, gt=0.0, description="Rotate JSON logs at this size")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Normalize and validate logging level."""
        upper = str(v).upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {sorted(valid_levels)}, got '{v}'")
        return upper

    def level_int(self) -> int:
        """Convert level string to logging module integer."""
        return logging.getLevelName(self.level)


class SubmissionSettings(BaseSettings):
    """Root settings object for the submission client."""

    model_config = SettingsConfigDict(
        env_prefix="CRPT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    base_url: str = Field(default=DEFAULT_BASE_URL, description="Marking API root URL")
    request_limit: int = Field(default=10, ge=1, description="Submissions admitted per window")
    time_delay: float = Field(default=1.0, gt=0.0, description="Window length in time_unit units")
    time_unit: TimeUnit = Field(default=TimeUnit.SECONDS, description="Unit of time_delay")
    token: Optional[SecretStr] = Field(default=None, description="Static bearer token")
    http: HttpSettings = Field(default_factory=HttpSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("time_unit", mode="before")
    @classmethod
    def parse_time_unit(cls, v: Any) -> TimeUnit:
        try:
            return TimeUnit.parse(v)
        except ConfigurationError as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got '{v}'")
        return v.rstrip("/")

    def config_hash(self) -> str:
        """Stable fingerprint of the effective configuration, secrets excluded."""
        data = self.model_dump(mode="json", exclude={"token"})
        data["time_unit"] = self.time_unit.name
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    @classmethod
    def load(cls, **overrides: Any) -> "SubmissionSettings":
        """Build settings from the environment plus explicit overrides.

        Raises:
            ConfigurationError: If any value fails validation.
        """
        try:
            return cls(**overrides)
        except PydanticValidationError as exc:
            raise ConfigurationError(f"Invalid submission settings: {exc}") from exc


# ============================================================================
# Singleton API
# ============================================================================

_settings: Optional[SubmissionSettings] = None
_settings_lock = threading.Lock()


def get_settings() -> SubmissionSettings:
    """Return the process-wide settings, loading them on first use."""
    global _settings

    if _settings is not None:
        return _settings
    with _settings_lock:
        if _settings is None:
            _settings = SubmissionSettings.load()
            logger.debug(
                "Settings loaded",
                extra={"extra_fields": {"config_hash": _settings.config_hash()}},
            )
        return _settings


def reset_settings() -> None:
    """Forget cached settings (primarily for testing)."""
    global _settings

    with _settings_lock:
        _settings = None
