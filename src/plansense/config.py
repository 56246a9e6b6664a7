"""
Configuration system for PlanSense.

Implements 12-factor config principles:
- Environment variables as primary config source
- Optional JSON or YAML config file for local development

The thresholds here drive every warning and recommendation the translator
produces, so tuning them changes what counts as "large" or "expensive".

Usage:
    from plansense.config import get_config

    config = get_config()
    if node.estimated_rows > config.seq_scan_row_threshold:
        ...
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from plansense.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "PLANSENSE_"


class Config(BaseModel):
    """
    PlanSense configuration.

    Loaded from environment variables and an optional config file.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    seq_scan_row_threshold: int = Field(
        default=10_000,
        gt=0,
        description="Estimated rows above which a sequential scan is flagged",
    )
    parallel_seq_scan_row_threshold: int = Field(
        default=50_000,
        gt=0,
        description="Estimated rows above which a parallel sequential scan is flagged",
    )
    nested_loop_row_threshold: int = Field(
        default=1_000,
        gt=0,
        description="Estimated rows above which a nested loop join is flagged",
    )
    seq_scan_index_row_threshold: int = Field(
        default=1_000,
        gt=0,
        description="Estimated rows above which a filtered sequential scan gets an index suggestion",
    )
    high_cost_threshold: float = Field(
        default=10_000.0,
        gt=0,
        description="Total cost above which a node (or query) counts as costly",
    )
    expensive_query_cost: float = Field(
        default=50_000.0,
        gt=0,
        description="Total cost above which the whole query is called expensive",
    )
    row_estimate_error_ratio: float = Field(
        default=0.5,
        gt=0,
        description="Relative error |actual - estimated| / estimated that counts as a misestimate",
    )
    step_cost_display_threshold: float = Field(
        default=100.0,
        ge=0,
        description="Node cost below which steps omit the cost metric",
    )


def _parse_env_int(key: str, value: str | None, default: int) -> int:
    """Parse integer from environment variable."""
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Could not parse %s=%s as an integer", key, value)
        return default


def _parse_env_float(key: str, value: str | None, default: float) -> float:
    """Parse float from environment variable."""
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Could not parse %s=%s as a number", key, value)
        return default


def load_config_from_env() -> Config:
    """
    Load configuration from environment variables.

    Each field maps to PLANSENSE_<FIELD_NAME_UPPERCASE>, e.g.:
    - PLANSENSE_SEQ_SCAN_ROW_THRESHOLD=100000
    - PLANSENSE_ROW_ESTIMATE_ERROR_RATIO=0.75
    """
    kwargs: dict[str, Any] = {}

    for name, field_info in Config.model_fields.items():
        key = f"{ENV_PREFIX}{name.upper()}"
        value = os.environ.get(key)
        if value is None:
            continue
        if field_info.annotation is int:
            kwargs[name] = _parse_env_int(key, value, field_info.default)
        else:
            kwargs[name] = _parse_env_float(key, value, field_info.default)

    try:
        return Config(**kwargs)
    except ValidationError as e:
        logger.warning("Invalid threshold in environment, using defaults: %s", e)
        return Config()


def load_config_from_file(path: Path, strict: bool = False) -> Config:
    """
    Load configuration from a JSON or YAML file.

    Args:
        path: Config file; ".yaml"/".yml" are read as YAML, anything else as JSON
        strict: Raise ConfigurationError instead of falling back to the
            environment when the file is missing or invalid

    Raises:
        ConfigurationError: In strict mode, if the file cannot be loaded
    """
    if not path.exists():
        if strict:
            raise ConfigurationError(f"Config file not found: {path}")
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()

    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
        return Config(**(data or {}))
    except ValidationError as e:
        errors = e.errors()
        config_key = str(errors[0]["loc"][0]) if errors and errors[0]["loc"] else None
        if strict:
            raise ConfigurationError(
                f"Invalid config in {path}: {e}", config_key=config_key
            ) from e
        logger.error("Invalid config in %s (%s): %s", path, config_key, e)
        return load_config_from_env()
    except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
        if strict:
            raise ConfigurationError(f"Failed to load config from {path}: {e}") from e
        logger.error("Failed to load config from %s: %s", path, e)
        return load_config_from_env()


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Get the global configuration instance.

    Loads from:
    1. PLANSENSE_CONFIG_FILE environment variable (if set)
    2. Environment variables (default)

    Result is cached for the lifetime of the process.
    """
    config_file = os.environ.get(f"{ENV_PREFIX}CONFIG_FILE")

    if config_file:
        return load_config_from_file(Path(config_file))

    return load_config_from_env()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()
