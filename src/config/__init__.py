"""Configuration management package.

Provides centralized configuration access with defaults, file loading,
and environment variable overrides.
"""

from src.config.config_manager import ConfigManager
from src.config.config_models import (
    Config,
    SerialConfig,
    SessionConfig,
    LoggingConfig,
    LogLevel
)
from src.config.config_schema import ConfigSchema
from src.config.defaults import get_default_config

__all__ = [
    'ConfigManager',
    'ConfigSchema',
    'Config',
    'SerialConfig',
    'SessionConfig',
    'LoggingConfig',
    'LogLevel',
    'get_default_config',
]
