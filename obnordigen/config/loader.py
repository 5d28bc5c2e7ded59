"""Configuration loading utilities."""

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from obnordigen.config.schema import Config
from obnordigen.utils.helpers import get_data_path

logger = logging.getLogger(__name__)

ENV_SECRET_ID = "NORDIGEN_SECRET_ID"
ENV_SECRET_KEY = "NORDIGEN_SECRET_KEY"


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return get_data_path() / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object, with secrets overridden from the
        environment when NORDIGEN_SECRET_ID / NORDIGEN_SECRET_KEY are set.
    """
    path = config_path or get_config_path()

    config = Config()
    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            config = Config.model_validate(convert_keys(data))
        except (OSError, json.JSONDecodeError, ValidationError, ValueError) as e:
            logger.warning("Failed to load config from %s: %s", path, e)
            logger.warning("Using default configuration.")

    if os.environ.get(ENV_SECRET_ID):
        config.nordigen.secret_id = os.environ[ENV_SECRET_ID]
    if os.environ.get(ENV_SECRET_KEY):
        config.nordigen.secret_key = os.environ[ENV_SECRET_KEY]
    return config


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump())

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    try:
        os.chmod(path, 0o600)
    except OSError:
        pass


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """Convert snake_case keys to camelCase."""
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
