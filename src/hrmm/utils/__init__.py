"""Configuration utilities."""

from .config_validator import (
    ConfigurationError,
    HrmmConfig,
    load_config,
    split_list_values,
    validate_config_file,
)

__all__ = [
    "ConfigurationError",
    "HrmmConfig",
    "load_config",
    "split_list_values",
    "validate_config_file",
]
