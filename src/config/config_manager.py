"""Configuration manager for AT Link.

Provides singleton access to application configuration with support for
defaults, file loading, environment variable overrides and hot reload.
"""

from pathlib import Path
from typing import Optional, Dict, Any, List, Callable
import os
import sys
import time
from copy import deepcopy

import yaml
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler, FileModifiedEvent

from src.config.config_models import (
    Config,
    SerialConfig,
    SessionConfig,
    LoggingConfig,
    LogLevel
)
from src.config.defaults import get_default_config
from src.config.config_schema import ConfigSchema
from src.core.exceptions import ConfigError

ENV_PREFIX = "AT_LINK_"


class ConfigFileEventHandler(FileSystemEventHandler):
    """Reloads the configuration when the watched file is modified."""

    def __init__(self, config_manager: 'ConfigManager', config_path: Path, debounce_seconds: float = 2.0):
        super().__init__()
        self.config_manager = config_manager
        self.config_path = config_path
        self._last_reload_time = 0.0
        self._debounce_seconds = debounce_seconds

    def on_modified(self, event):
        if not isinstance(event, FileModifiedEvent):
            return

        if Path(event.src_path).resolve() != self.config_path.resolve():
            return

        # Editors often write a file more than once per save
        current_time = time.time()
        if current_time - self._last_reload_time < self._debounce_seconds:
            return
        self._last_reload_time = current_time

        print(f"Configuration file changed: {self.config_path}", file=sys.stderr)
        if not self.config_manager.reload(self.config_path):
            print("Configuration reload failed - using previous configuration", file=sys.stderr)


class ConfigManager:
    """Singleton configuration manager.

    Layered loading:
    1. Load defaults
    2. Load from YAML file (if found)
    3. Apply AT_LINK_<SECTION>_<KEY> environment overrides
    4. Validate against JSON schema
    5. Convert to frozen Config
    """

    _instance: Optional['ConfigManager'] = None

    def __init__(self):
        """Private constructor. Use initialize() and instance()."""
        if ConfigManager._instance is not None:
            raise RuntimeError("Use ConfigManager.instance() instead of constructor")
        self._config: Optional[Config] = None
        self._config_source: Dict[str, str] = {}
        self._config_path: Optional[Path] = None
        self._file_observer: Optional[Observer] = None
        self._reload_callbacks: List[Callable[[Config], None]] = []

    @classmethod
    def instance(cls) -> 'ConfigManager':
        """Get the initialized singleton.

        Raises:
            RuntimeError: If not yet initialized.
        """
        if cls._instance is None:
            raise RuntimeError("ConfigManager not initialized. Call initialize() first.")
        return cls._instance

    @classmethod
    def initialize(cls,
                   config_path: Optional[Path] = None,
                   skip_validation: bool = False,
                   enable_hot_reload: bool = False) -> 'ConfigManager':
        """Load configuration and return the singleton.

        Args:
            config_path: Path to a YAML config file. If None, searches default paths.
            skip_validation: Skip schema validation.
            enable_hot_reload: Watch the config file and reload on change.

        Raises:
            ConfigError: Configuration failed validation.
        """
        if cls._instance is None:
            cls._instance = cls()

        manager = cls._instance
        config, sources, loaded_path = cls._load(config_path, skip_validation)
        manager._config = config
        manager._config_source = sources
        manager._config_path = loaded_path

        if enable_hot_reload and loaded_path:
            manager.enable_hot_reload()

        return manager

    @classmethod
    def _load(cls, config_path: Optional[Path], skip_validation: bool):
        sources: Dict[str, str] = {}

        config_dict = get_default_config().to_dict()
        cls._mark_source(sources, config_dict, "default")

        if config_path is None:
            config_path = cls._search_config_paths()

        loaded_path = None
        if config_path is not None:
            config_path = Path(config_path).expanduser()
            if config_path.exists():
                try:
                    file_config = cls._load_from_file(config_path)
                except (OSError, yaml.YAMLError) as e:
                    raise ConfigError(f"Failed to load config from {config_path}: {e}")
                config_dict = cls._merge_configs(config_dict, file_config)
                cls._mark_source(sources, file_config, "file")
                loaded_path = config_path

        env_overrides = cls._apply_env_overrides()
        if env_overrides:
            config_dict = cls._merge_configs(config_dict, env_overrides)
            cls._mark_source(sources, env_overrides, "env")

        if not skip_validation:
            is_valid, validation_errors = ConfigSchema.validate_config(config_dict, strict=True)
            if not is_valid:
                raise ConfigError("Configuration validation failed", validation_errors)

        return cls._dict_to_config(config_dict), sources, loaded_path

    @staticmethod
    def _search_config_paths() -> Optional[Path]:
        """First existing of ./at-link.yaml and ~/.at-link/config.yaml."""
        search_paths = [
            Path("./at-link.yaml"),
            Path.home() / ".at-link" / "config.yaml"
        ]

        for path in search_paths:
            if path.exists() and path.is_file():
                return path

        return None

    @staticmethod
    def _load_from_file(path: Path) -> Dict[str, Any]:
        with open(path, 'r', encoding='utf-8') as f:
            config_dict = yaml.safe_load(f)

        if config_dict is None:
            return {}
        if not isinstance(config_dict, dict):
            raise ConfigError(f"Config file {path} must contain a mapping at top level")
        return config_dict

    @staticmethod
    def _apply_env_overrides() -> Dict[str, Any]:
        """Collect AT_LINK_<SECTION>_<KEY> environment overrides.

        Examples:
            AT_LINK_SERIAL_PORT=/dev/ttyUSB0
            AT_LINK_SESSION_RESPONSE_TIMEOUT=2.5
            AT_LINK_LOGGING_ENABLED=true
        """
        overrides: Dict[str, Dict[str, Any]] = {}

        for env_name, env_value in os.environ.items():
            if not env_name.startswith(ENV_PREFIX):
                continue

            # AT_LINK_SESSION_RESPONSE_TIMEOUT -> ["session", "response_timeout"]
            parts = env_name[len(ENV_PREFIX):].lower().split('_', 1)
            if len(parts) != 2:
                continue

            section, key = parts
            overrides.setdefault(section, {})[key] = ConfigManager._parse_env_value(env_value)

        return overrides

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        """Parse an environment value to bool, None, int, float or str."""
        lowered = value.strip().lower()
        if lowered in ('true', 'yes', 'on'):
            return True
        if lowered in ('false', 'no', 'off'):
            return False
        if lowered in ('null', 'none'):
            return None

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    @staticmethod
    def _merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Merge section by section; override takes precedence."""
        merged = deepcopy(base)

        for section, section_values in override.items():
            if isinstance(section_values, dict) and isinstance(merged.get(section), dict):
                merged[section].update(section_values)
            else:
                merged[section] = section_values

        return merged

    @staticmethod
    def _mark_source(sources: Dict[str, str], config: Dict[str, Any], source: str) -> None:
        for section, section_values in config.items():
            if isinstance(section_values, dict):
                for key in section_values.keys():
                    sources[f"{section}.{key}"] = source

    @staticmethod
    def _dict_to_config(config_dict: Dict[str, Any]) -> Config:
        """Convert a merged, validated dictionary to Config."""
        defaults = get_default_config()

        serial_dict = config_dict.get('serial', {})
        serial = SerialConfig(
            port=serial_dict.get('port', defaults.serial.port),
            baud_rate=serial_dict.get('baud_rate', defaults.serial.baud_rate),
            read_timeout=float(serial_dict.get('read_timeout', defaults.serial.read_timeout)),
            write_timeout=float(serial_dict.get('write_timeout', defaults.serial.write_timeout))
        )

        session_dict = config_dict.get('session', {})
        session = SessionConfig(
            tick_interval_ms=session_dict.get('tick_interval_ms', defaults.session.tick_interval_ms),
            response_timeout=float(session_dict.get('response_timeout', defaults.session.response_timeout)),
            keepalive_interval=float(session_dict.get('keepalive_interval', defaults.session.keepalive_interval))
        )

        log_dict = config_dict.get('logging', {})
        level = log_dict.get('level', defaults.logging.level)
        if isinstance(level, str):
            level = LogLevel(level.upper())
        logging = LoggingConfig(
            enabled=log_dict.get('enabled', defaults.logging.enabled),
            level=level,
            log_to_file=log_dict.get('log_to_file', defaults.logging.log_to_file),
            log_to_console=log_dict.get('log_to_console', defaults.logging.log_to_console),
            log_file_path=log_dict.get('log_file_path', defaults.logging.log_file_path),
            max_file_size_mb=log_dict.get('max_file_size_mb', defaults.logging.max_file_size_mb),
            backup_count=log_dict.get('backup_count', defaults.logging.backup_count)
        )

        return Config(serial=serial, session=session, logging=logging)

    @property
    def config_path(self) -> Optional[Path]:
        return self._config_path

    def get_config(self) -> Config:
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call initialize() first.")
        return self._config

    def reload(self, config_path: Optional[Path] = None) -> bool:
        """Reload from file and environment.

        The previous configuration is kept if the new one is invalid.

        Returns:
            True if reload succeeded, False otherwise.
        """
        if config_path is None:
            config_path = self._config_path

        try:
            config, sources, loaded_path = self._load(config_path, skip_validation=False)
        except ConfigError as e:
            print(f"Error reloading configuration: {e}", file=sys.stderr)
            return False

        self._config = config
        self._config_source = sources
        self._config_path = loaded_path

        for callback in list(self._reload_callbacks):
            try:
                callback(config)
            except Exception as e:
                print(f"Error in reload callback: {e}", file=sys.stderr)

        return True

    def validate(self) -> List[str]:
        """Validation errors of the current configuration (empty if valid)."""
        if self._config is None:
            return ["Configuration not loaded"]
        _, errors = ConfigSchema.validate_config(self._config.to_dict(), strict=True)
        return errors

    def show_config(self) -> Dict[str, Any]:
        """Current configuration with the source of each value.

        Example:
            {"serial": {"baud_rate": {"value": 9600, "source": "default"}}}
        """
        config_dict = self.get_config().to_dict()

        result: Dict[str, Any] = {}
        for section, section_values in config_dict.items():
            result[section] = {
                key: {
                    "value": value,
                    "source": self._config_source.get(f"{section}.{key}", "unknown")
                }
                for key, value in section_values.items()
            }
        return result

    def enable_hot_reload(self) -> bool:
        """Watch the loaded config file with watchdog and reload on change.

        Returns:
            True if watching, False if no file is loaded or the watcher failed.
        """
        if not self._config_path:
            return False

        if self._file_observer is not None:
            return True

        try:
            event_handler = ConfigFileEventHandler(self, self._config_path)
            observer = Observer()
            observer.schedule(event_handler, str(self._config_path.resolve().parent), recursive=False)
            observer.start()
        except OSError as e:
            print(f"Error enabling hot reload: {e}", file=sys.stderr)
            return False

        self._file_observer = observer
        return True

    def disable_hot_reload(self) -> None:
        if self._file_observer is None:
            return
        self._file_observer.stop()
        self._file_observer.join(timeout=2.0)
        self._file_observer = None

    def is_hot_reload_enabled(self) -> bool:
        return self._file_observer is not None

    def register_reload_callback(self, callback: Callable[[Config], None]) -> None:
        """Call `callback(new_config)` after every successful reload."""
        if callback not in self._reload_callbacks:
            self._reload_callbacks.append(callback)

    def unregister_reload_callback(self, callback: Callable[[Config], None]) -> None:
        if callback in self._reload_callbacks:
            self._reload_callbacks.remove(callback)

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton (for testing)."""
        if cls._instance is not None:
            cls._instance.disable_hot_reload()
        cls._instance = None
