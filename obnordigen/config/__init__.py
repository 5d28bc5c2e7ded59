"""Configuration module for obnordigen."""

from obnordigen.config.loader import get_config_path, load_config, save_config
from obnordigen.config.schema import Config

__all__ = ["Config", "get_config_path", "load_config", "save_config"]
