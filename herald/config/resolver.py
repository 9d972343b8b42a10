"""
Resolver Configuration
"""

import os
from typing import Any

from pydantic import BaseModel, Field, field_validator

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ResolverConfig(BaseModel):
    """
    Configuration for the HTTP binding and the dispatcher.
    """
    binary_header_prefix: str = Field("ce-", description="Prefix of binary-mode attribute headers")
    legacy_enabled: bool = Field(True, description="Attempt legacy-event translation")
    max_batch_size: int | None = Field(None, ge=1, description="Upper bound on events per batch")
    log_level: str = "INFO"
    json_logs: bool = False

    @field_validator("binary_header_prefix")
    @classmethod
    def _lower_prefix(cls, value: str) -> str:
        if not value:
            raise ValueError("binary_header_prefix cannot be empty")
        return value.lower()

    @classmethod
    def from_env(cls, overrides: dict[str, Any] | None = None) -> "ResolverConfig":
        """
        Build a config from HERALD_* environment variables.
        Priority: overrides > Env > Default
        """
        values: dict[str, Any] = {}

        prefix = os.getenv("HERALD_BINARY_HEADER_PREFIX")
        if prefix:
            values["binary_header_prefix"] = prefix

        legacy = os.getenv("HERALD_LEGACY_ENABLED")
        if legacy is not None:
            values["legacy_enabled"] = legacy.strip().lower() in _TRUE_VALUES

        max_batch = os.getenv("HERALD_MAX_BATCH_SIZE")
        if max_batch:
            values["max_batch_size"] = int(max_batch)

        log_level = os.getenv("HERALD_LOG_LEVEL")
        if log_level:
            values["log_level"] = log_level

        json_logs = os.getenv("HERALD_JSON_LOGS")
        if json_logs is not None:
            values["json_logs"] = json_logs.strip().lower() in _TRUE_VALUES

        values.update(overrides or {})
        return cls(**values)
