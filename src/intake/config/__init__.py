"""Configuration package."""

from intake.config.registry import AppConfig, ConfigRegistry, ConfigValidation, check_config
from intake.config.settings import Settings

__all__ = ["AppConfig", "ConfigRegistry", "ConfigValidation", "Settings", "check_config"]
