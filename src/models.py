"""Shared Pydantic data models for the WhatsApp → n8n relay."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

_REQUIRED_ENV = {
    "n8n_url": "N8N_URL",
    "business_phone_msisdn": "BUSINESS_PHONE_MSISDN",
    "verify_token": "VERIFY_TOKEN",
}

_OPTIONAL_ENV = {
    "webhook_path": "WEBHOOK_PATH",
    "forward_timeout": "FORWARD_TIMEOUT_SECONDS",
    "log_level": "LOG_LEVEL",
}


class ConfigError(Exception):
    """Raised when the relay configuration is missing or invalid."""


# --- Enums ---


class RelayOutcome(str, Enum):
    HANDSHAKE_ACCEPTED = "handshake_accepted"
    HANDSHAKE_REJECTED = "handshake_rejected"
    BAD_JSON = "bad_json"
    DROPPED_STATUS = "dropped_status"
    DROPPED_ECHO = "dropped_echo"
    FORWARDED = "forwarded"
    FORWARD_FAILED = "forward_failed"


# --- Config Models ---


class RelayConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    n8n_url: str = Field(min_length=1)
    business_phone_msisdn: str = Field(min_length=1)  # digits, no leading "+"
    verify_token: str = Field(min_length=1)
    webhook_path: str = "/webhook/whatsapp"
    forward_timeout: float = Field(default=30.0, gt=0)
    log_level: str = "INFO"

    @field_validator("n8n_url")
    @classmethod
    def _check_url_scheme(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("must be an http:// or https:// URL")
        return value

    @field_validator("webhook_path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("must start with '/'")
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return level

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RelayConfig:
        """Build the config from environment variables.

        Raises ConfigError naming every missing required variable, or
        wrapping the validation failure for malformed values.
        """
        env = os.environ if environ is None else environ
        missing = [name for name in _REQUIRED_ENV.values() if not env.get(name)]
        if missing:
            raise ConfigError(
                f"Missing required environment variables: {', '.join(missing)}",
            )

        values: dict[str, str] = {
            field: env[name] for field, name in _REQUIRED_ENV.items()
        }
        for field, name in _OPTIONAL_ENV.items():
            if env.get(name):
                values[field] = env[name]

        try:
            return cls(**values)  # type: ignore[arg-type]
        except ValidationError as exc:
            raise ConfigError(f"Invalid relay configuration: {exc}") from exc

    def redacted(self) -> dict[str, object]:
        """Config as a dict with the verify token masked."""
        data = self.model_dump()
        data["verify_token"] = "***"
        return data


# --- Relay Event Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class RelayEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: str = Field(default_factory=_now_iso)
    method: str
    outcome: RelayOutcome
    sender: str | None = None
    upstream_status: int | None = None
    content_length: str | None = None
    details: dict[str, object] | None = None
