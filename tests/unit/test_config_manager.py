"""Unit tests for ConfigManager."""

import os

import pytest
import yaml
from unittest.mock import Mock

from src.config.config_manager import ConfigManager, ConfigFileEventHandler
from src.config.config_models import LogLevel
from src.core.exceptions import ConfigError


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Fresh singleton, no config files on the search path, no AT_LINK_ vars."""
    ConfigManager.reset()
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for name in list(os.environ):
        if name.startswith("AT_LINK_"):
            monkeypatch.delenv(name)
    yield
    ConfigManager.reset()


def write_yaml(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding='utf-8')
    return path


class TestSingleton:
    """Test singleton access."""

    def test_instance_before_initialize(self):
        with pytest.raises(RuntimeError):
            ConfigManager.instance()

    def test_initialize_returns_instance(self):
        manager = ConfigManager.initialize()
        assert ConfigManager.instance() is manager

    def test_direct_construction_rejected(self):
        ConfigManager.initialize()
        with pytest.raises(RuntimeError):
            ConfigManager()


class TestLayering:
    """Test defaults, file and environment layers."""

    def test_defaults(self):
        config = ConfigManager.initialize().get_config()

        assert config.serial.port is None
        assert config.serial.baud_rate == 9600
        assert config.session.tick_interval_ms == 100
        assert config.session.response_timeout == 10.0
        assert config.session.keepalive_interval == 0.0
        assert config.logging.enabled is False
        assert ConfigManager.instance().config_path is None

    def test_explicit_file(self, tmp_path):
        path = write_yaml(tmp_path / "custom.yaml", {
            "serial": {"port": "/dev/ttyACM0", "baud_rate": 115200},
            "logging": {"level": "DEBUG"}
        })

        manager = ConfigManager.initialize(config_path=path)
        config = manager.get_config()

        assert config.serial.port == "/dev/ttyACM0"
        assert config.serial.baud_rate == 115200
        assert config.serial.read_timeout == 0.1
        assert config.logging.level == LogLevel.DEBUG
        assert manager.config_path == path

    def test_searches_working_directory(self, tmp_path):
        write_yaml(tmp_path / "at-link.yaml", {"serial": {"port": "COM4"}})

        assert ConfigManager.initialize().get_config().serial.port == "COM4"

    def test_searches_home_directory(self, tmp_path):
        write_yaml(tmp_path / "home" / ".at-link" / "config.yaml", {"session": {"response_timeout": 2}})

        assert ConfigManager.initialize().get_config().session.response_timeout == 2.0

    def test_missing_explicit_file_uses_defaults(self, tmp_path):
        manager = ConfigManager.initialize(config_path=tmp_path / "missing.yaml")

        assert manager.get_config().serial.baud_rate == 9600
        assert manager.config_path is None

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding='utf-8')

        assert ConfigManager.initialize(config_path=path).get_config().serial.baud_rate == 9600

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = write_yaml(tmp_path / "custom.yaml", {"serial": {"port": "COM1"}})
        monkeypatch.setenv("AT_LINK_SERIAL_PORT", "/dev/ttyUSB3")
        monkeypatch.setenv("AT_LINK_SESSION_RESPONSE_TIMEOUT", "2.5")
        monkeypatch.setenv("AT_LINK_SESSION_TICK_INTERVAL_MS", "50")
        monkeypatch.setenv("AT_LINK_LOGGING_ENABLED", "true")

        config = ConfigManager.initialize(config_path=path).get_config()

        assert config.serial.port == "/dev/ttyUSB3"
        assert config.session.response_timeout == 2.5
        assert config.session.tick_interval_ms == 50
        assert config.logging.enabled is True

    def test_sources(self, tmp_path, monkeypatch):
        path = write_yaml(tmp_path / "custom.yaml", {"serial": {"port": "COM1"}})
        monkeypatch.setenv("AT_LINK_SERIAL_BAUD_RATE", "115200")

        shown = ConfigManager.initialize(config_path=path).show_config()

        assert shown["serial"]["port"] == {"value": "COM1", "source": "file"}
        assert shown["serial"]["baud_rate"] == {"value": 115200, "source": "env"}
        assert shown["session"]["response_timeout"]["source"] == "default"
        assert shown["logging"]["level"]["value"] == "INFO"


class TestValidation:
    """Test schema rejection."""

    def test_invalid_file_raises(self, tmp_path):
        path = write_yaml(tmp_path / "bad.yaml", {"serial": {"baud_rate": 12345}})

        with pytest.raises(ConfigError) as exc_info:
            ConfigManager.initialize(config_path=path)

        assert any("baud_rate" in error for error in exc_info.value.errors)

    def test_unknown_section_rejected(self, tmp_path):
        path = write_yaml(tmp_path / "bad.yaml", {"plugins": {"enabled": True}})

        with pytest.raises(ConfigError):
            ConfigManager.initialize(config_path=path)

    def test_invalid_env_rejected(self, monkeypatch):
        monkeypatch.setenv("AT_LINK_SESSION_RESPONSE_TIMEOUT", "soon")

        with pytest.raises(ConfigError):
            ConfigManager.initialize()

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("serial: [unclosed", encoding='utf-8')

        with pytest.raises(ConfigError):
            ConfigManager.initialize(config_path=path)

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding='utf-8')

        with pytest.raises(ConfigError):
            ConfigManager.initialize(config_path=path)

    def test_skip_validation(self, tmp_path):
        path = write_yaml(tmp_path / "bad.yaml", {"serial": {"baud_rate": 12345}})

        config = ConfigManager.initialize(config_path=path, skip_validation=True).get_config()

        assert config.serial.baud_rate == 12345

    def test_validate_current(self):
        assert ConfigManager.initialize().validate() == []


class TestParseEnvValue:
    """Test environment value parsing."""

    @pytest.mark.parametrize("raw,expected", [
        ("true", True),
        ("Yes", True),
        ("off", False),
        ("none", None),
        ("1", 1),
        ("0", 0),
        ("2.5", 2.5),
        ("/dev/ttyUSB0", "/dev/ttyUSB0"),
    ])
    def test_parse(self, raw, expected):
        assert ConfigManager._parse_env_value(raw) == expected


class TestReload:
    """Test reload and callbacks."""

    def test_reload_picks_up_changes(self, tmp_path):
        path = write_yaml(tmp_path / "custom.yaml", {"serial": {"port": "COM1"}})
        manager = ConfigManager.initialize(config_path=path)
        callback = Mock()
        manager.register_reload_callback(callback)

        write_yaml(path, {"serial": {"port": "COM2"}})

        assert manager.reload() is True
        assert manager.get_config().serial.port == "COM2"
        callback.assert_called_once_with(manager.get_config())

    def test_invalid_reload_keeps_previous(self, tmp_path):
        path = write_yaml(tmp_path / "custom.yaml", {"serial": {"port": "COM1"}})
        manager = ConfigManager.initialize(config_path=path)
        callback = Mock()
        manager.register_reload_callback(callback)

        write_yaml(path, {"serial": {"baud_rate": 1}})

        assert manager.reload() is False
        assert manager.get_config().serial.port == "COM1"
        callback.assert_not_called()

    def test_unregister_callback(self, tmp_path):
        path = write_yaml(tmp_path / "custom.yaml", {})
        manager = ConfigManager.initialize(config_path=path)
        callback = Mock()
        manager.register_reload_callback(callback)
        manager.unregister_reload_callback(callback)

        manager.reload()

        callback.assert_not_called()

    def test_failing_callback_does_not_break_reload(self, tmp_path):
        path = write_yaml(tmp_path / "custom.yaml", {})
        manager = ConfigManager.initialize(config_path=path)
        manager.register_reload_callback(Mock(side_effect=RuntimeError("boom")))

        assert manager.reload() is True


class TestHotReload:
    """Test the watchdog file watcher."""

    def test_enable_without_file(self):
        manager = ConfigManager.initialize()
        assert manager.enable_hot_reload() is False
        assert manager.is_hot_reload_enabled() is False

    def test_enable_and_disable(self, tmp_path):
        path = write_yaml(tmp_path / "custom.yaml", {})
        manager = ConfigManager.initialize(config_path=path, enable_hot_reload=True)

        assert manager.is_hot_reload_enabled() is True

        manager.disable_hot_reload()
        assert manager.is_hot_reload_enabled() is False

    def test_event_handler_reloads_matching_file(self, tmp_path):
        from watchdog.events import FileModifiedEvent

        path = write_yaml(tmp_path / "custom.yaml", {})
        manager = Mock()
        handler = ConfigFileEventHandler(manager, path)

        handler.on_modified(FileModifiedEvent(str(tmp_path / "other.yaml")))
        manager.reload.assert_not_called()

        handler.on_modified(FileModifiedEvent(str(path)))
        manager.reload.assert_called_once_with(path)

    def test_event_handler_debounces(self, tmp_path):
        from watchdog.events import FileModifiedEvent

        path = write_yaml(tmp_path / "custom.yaml", {})
        manager = Mock()
        handler = ConfigFileEventHandler(manager, path, debounce_seconds=60)

        handler.on_modified(FileModifiedEvent(str(path)))
        handler.on_modified(FileModifiedEvent(str(path)))

        assert manager.reload.call_count == 1
