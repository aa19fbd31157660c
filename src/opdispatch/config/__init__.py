"""
Configuration module.
"""

from .settings import DispatchConfig, LoggingConfig, Settings
from .validated_settings import SettingsModel, load_validated_settings

__all__ = ["DispatchConfig", "LoggingConfig", "Settings", "SettingsModel", "load_validated_settings"]
