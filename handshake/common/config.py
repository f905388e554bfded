"""Environment-driven settings for the DH core (.env supported)."""

import os
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

# Load environment variables
load_dotenv()


class ConfigError(Exception):
    """Raised when settings from the environment are invalid."""
    pass


class DHSettings(BaseModel):
    """Tunable knobs for key generation and backend selection."""
    key_bits: int = Field(default=1024, gt=0)
    backend: str = Field(default="native")
    max_retries: int = Field(default=16, ge=0)  # 0 = retry until success
    log_level: str = Field(default="INFO")

    @field_validator("backend")
    @classmethod
    def _known_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("native", "pyca"):
            raise ValueError(f"unknown backend '{v}'")
        return v

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level '{v}'")
        return v


def load_settings() -> DHSettings:
    """
    Read DH_KEY_BITS, DH_BACKEND, DH_MAX_RETRIES and DH_LOG_LEVEL.

    Returns:
        validated DHSettings

    Raises:
        ConfigError if any value is malformed
    """
    raw = {
        "key_bits": os.getenv("DH_KEY_BITS", "1024"),
        "backend": os.getenv("DH_BACKEND", "native"),
        "max_retries": os.getenv("DH_MAX_RETRIES", "16"),
        "log_level": os.getenv("DH_LOG_LEVEL", "INFO"),
    }
    try:
        return DHSettings(**raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid DH settings: {e}")
