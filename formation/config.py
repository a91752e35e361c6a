import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "formation.yaml"

# Pattern to match $VAR_NAME environment variable references
ENV_VAR_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")


def interpolate_env_vars(value):
    """Recursively replace $VAR_NAME with os.environ values."""
    if isinstance(value, str):

        def replace(match):
            var = match.group(1)
            val = os.environ.get(var)
            if val is None:
                raise ValueError(f"Environment variable ${var} not set")
            return val

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def load_config_file(path: Path | None = None) -> dict:
    """Load and parse formation.yaml with environment variable interpolation."""
    config_path = path or Path.cwd() / CONFIG_FILE_NAME

    if not config_path.exists():
        raise FileNotFoundError(f"{CONFIG_FILE_NAME} not found at {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        logger.warning("Ignoring %s: expected a mapping at the top level", config_path)
        return {}

    return interpolate_env_vars(config)


class FormationSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FORMATION_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Horizontal layout
    group_class: str = "form-group"
    label_class: str = "col-sm-2 control-label"
    field_wrapper_class: str = "col-sm-10"
    submit_wrapper_class: str = "col-sm-10 col-sm-offset-2"
    input_class: str = "form-control"

    # Date picker
    datepicker_class: str = "js-datepicker"
    datepicker_format: str = "DD/MMM/YYYY"
    default_date_format: str = "%d/%b/%Y"

    # Textarea size when none is given
    textarea_cols: int = 50
    textarea_rows: int = 10

    # Word order of labels derived from field names
    label_word_order: Literal["reversed", "natural"] = "reversed"


@lru_cache
def get_settings() -> FormationSettings:
    """Load settings from the environment, .env and formation.yaml."""
    base_settings = FormationSettings()

    try:
        file_config = load_config_file()
    except FileNotFoundError:
        return base_settings

    if file_config:
        return FormationSettings.model_validate({**base_settings.model_dump(), **file_config})

    return base_settings
