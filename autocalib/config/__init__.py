"""Configuration module."""

from autocalib.config.config_manager import ConfigManager

__all__ = ["ConfigManager"]
