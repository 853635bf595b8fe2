"""
Configuration module for the application.
Exports the settings instance and the persisted validation configuration.
"""

from config.settings import settings
from config.validation_config import ConfigurationManager, ValidationConfig

__all__ = ["settings", "ConfigurationManager", "ValidationConfig"]
