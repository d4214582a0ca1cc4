"""
Configuration loading and validation.

A configuration names the endpoints to scrape and the filters to apply.
It can be written as YAML or JSON and is merged with command-line flags
by the CLI before it reaches the collector.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import HrmmError

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


class ConfigurationError(HrmmError):
    """Raised when configuration validation fails."""
    pass


def split_list_values(values: Any) -> List[str]:
    """Flatten ``["a,b", "c"]`` into ``["a", "b", "c"]``, dropping empty items."""
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    elif not isinstance(values, (list, tuple)):
        raise ValueError(f"expected a list or a comma-separated string, got {type(values).__name__}")
    items = []
    for value in values:
        items.extend(part.strip() for part in str(value).split(",") if part.strip())
    return items


class HrmmConfig(BaseModel):
    """Endpoints, filters and output options for one run."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    urls: List[str] = Field(min_length=1)
    metrics: List[str] = Field(default_factory=list)
    labels: List[str] = Field(default_factory=list)
    json_output: bool = False
    timeout_s: float = Field(default=10.0, gt=0)
    max_workers: int = Field(default=4, ge=1)

    @field_validator("urls", "metrics", "labels", mode="before")
    @classmethod
    def _split_comma_separated(cls, value: Any) -> List[str]:
        return split_list_values(value)

    @field_validator("urls")
    @classmethod
    def _check_scheme(cls, urls: List[str]) -> List[str]:
        for url in urls:
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"URL must start with http:// or https://: {url}")
        return urls

    def merged_with(
        self,
        urls: Optional[List[str]] = None,
        metrics: Optional[List[str]] = None,
        labels: Optional[List[str]] = None,
        **overrides: Any,
    ) -> "HrmmConfig":
        """Return a copy with extra list entries appended and scalars replaced."""
        data = self.model_dump()
        data["urls"] = data["urls"] + split_list_values(urls)
        data["metrics"] = data["metrics"] + split_list_values(metrics)
        data["labels"] = data["labels"] + split_list_values(labels)
        data.update({key: value for key, value in overrides.items() if value is not None})
        return HrmmConfig(**data)


def format_validation_errors(exc: ValidationError) -> List[str]:
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "config"
        errors.append(f"{location}: {error['msg']}")
    return errors


def read_config_data(config_path: str) -> Dict[str, Any]:
    """Read a YAML or JSON configuration file into a dictionary."""
    config_file = Path(config_path)
    try:
        with open(config_file, "r") as f:
            if config_file.suffix in YAML_SUFFIXES:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read configuration {config_path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration {config_path} must be a mapping, got {type(data).__name__}"
        )
    return data


def load_config(config_path: str) -> HrmmConfig:
    """Load and validate a configuration file.

    Raises:
        ConfigurationError: If the file cannot be read or is invalid
    """
    data = read_config_data(config_path)
    try:
        config = HrmmConfig(**data)
    except ValidationError as exc:
        errors = format_validation_errors(exc)
        raise ConfigurationError(
            f"Invalid configuration {config_path}: " + "; ".join(errors)
        ) from exc

    logger.info(f"Loaded configuration with {len(config.urls)} URLs from {config_path}")
    return config


def validate_config_file(config_path: str) -> Tuple[bool, List[str], Optional[HrmmConfig]]:
    """
    Load and validate a configuration file without raising.

    Returns:
        (is_valid, errors, config)
    """
    try:
        data = read_config_data(config_path)
    except ConfigurationError as exc:
        return False, [str(exc)], None

    try:
        config = HrmmConfig(**data)
    except ValidationError as exc:
        errors = format_validation_errors(exc)
        logger.warning(f"Configuration has {len(errors)} validation errors")
        for error in errors[:10]:
            logger.warning(f"  - {error}")
        if len(errors) > 10:
            logger.warning(f"  ... and {len(errors) - 10} more errors")
        return False, errors, None

    return True, [], config
