"""Common utilities and configuration."""

from .utils import (
    hex_dump,
    sha256_bytes,
    constant_time_compare,
)
from .config import DHSettings, ConfigError, load_settings

__all__ = [
    "hex_dump",
    "sha256_bytes",
    "constant_time_compare",
    "DHSettings",
    "ConfigError",
    "load_settings",
]
