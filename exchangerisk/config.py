"""Runtime settings for ExchangeRisk.

Defaults match the deployed web client. Every field can be overridden with an
``EXCHANGERISK_<FIELD>`` environment variable, e.g. ``EXCHANGERISK_DB_PATH``.
"""

import os
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from .core.exceptions import ConfigurationError

ENV_PREFIX = "EXCHANGERISK_"


class Settings(BaseModel):
    """ExchangeRisk settings."""

    index_key: str = Field(default="exchange_keys", min_length=1)
    record_key_prefix: str = Field(default="exchange_", min_length=1)
    status_display_seconds: float = Field(default=3.0, ge=0)
    processing_delay_seconds: float = Field(default=2.0, ge=0)
    index_write_mode: Literal["overwrite", "conditional"] = "overwrite"
    index_max_retries: int = Field(default=5, ge=1)
    backend: Literal["memory", "sqlite"] = "memory"
    db_path: str = "exchangerisk.db"
    signer_algorithm: str = "ED25519"
    log_level: str = "INFO"

    @classmethod
    def load(cls, **overrides) -> "Settings":
        """Build settings, raising ConfigurationError on invalid values."""
        try:
            return cls(**overrides)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid settings: {e}")

    @classmethod
    def from_env(cls, environ: Optional[dict] = None, **overrides) -> "Settings":
        """Build settings from ``EXCHANGERISK_*`` variables plus overrides."""
        values = {}
        for name in cls.model_fields:
            env_name = ENV_PREFIX + name.upper()
            raw = environ.get(env_name) if environ is not None else os.getenv(env_name)
            if raw is not None:
                values[name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.load(**values)
