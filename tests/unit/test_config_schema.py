"""Unit tests for ConfigSchema validation."""

import pytest

from src.config.config_schema import ConfigSchema
from src.config.defaults import get_default_config


class TestConfigSchema:
    """Test JSON schema validation."""

    def test_defaults_are_valid(self):
        is_valid, errors = ConfigSchema.validate_config(get_default_config().to_dict())

        assert is_valid is True
        assert errors == []

    def test_empty_config_valid(self):
        assert ConfigSchema.validate_config({}) == (True, [])

    def test_invalid_baud_rate(self):
        is_valid, errors = ConfigSchema.validate_config({"serial": {"baud_rate": 12345}})

        assert is_valid is False
        assert errors[0].startswith("Section 'serial', field 'baud_rate': Expected one of")

    def test_wrong_type(self):
        is_valid, errors = ConfigSchema.validate_config({"session": {"response_timeout": "soon"}})

        assert is_valid is False
        assert "Expected type number" in errors[0]

    def test_negative_timeout(self):
        is_valid, errors = ConfigSchema.validate_config({"session": {"response_timeout": -1}})

        assert is_valid is False
        assert "Value must be >= 0" in errors[0]

    def test_zero_read_timeout_rejected(self):
        is_valid, _ = ConfigSchema.validate_config({"serial": {"read_timeout": 0}})
        assert is_valid is False

    def test_bool_is_not_a_number(self):
        is_valid, _ = ConfigSchema.validate_config({"session": {"keepalive_interval": True}})
        assert is_valid is False

    def test_unknown_field_strict(self):
        is_valid, errors = ConfigSchema.validate_config({"serial": {"parity": "N"}})

        assert is_valid is False
        assert errors == ["Section 'serial': Unknown fields ['parity'] not allowed"]

    def test_unknown_field_permissive(self):
        is_valid, _ = ConfigSchema.validate_config({"serial": {"parity": "N"}}, strict=False)
        assert is_valid is True

    def test_invalid_log_level(self):
        is_valid, _ = ConfigSchema.validate_config({"logging": {"level": "TRACE"}})
        assert is_valid is False

    def test_port_with_newline(self):
        is_valid, errors = ConfigSchema.validate_config({"serial": {"port": "/dev/tty\nUSB0"}})

        assert is_valid is False
        assert "invalid characters" in errors[0]

    def test_multiple_errors_reported(self):
        is_valid, errors = ConfigSchema.validate_config({
            "serial": {"baud_rate": 1},
            "session": {"tick_interval_ms": 1}
        })

        assert is_valid is False
        assert len(errors) == 2

    @pytest.mark.parametrize("baud,expected", [(9600, True), (115200, True), (12345, False)])
    def test_validate_baud_rate(self, baud, expected):
        assert ConfigSchema.validate_baud_rate(baud) is expected

    @pytest.mark.parametrize("path,expected", [
        ("/dev/ttyUSB0", True),
        ("COM3", True),
        ("", False),
        ("   ", False),
        ("bad\0path", False),
    ])
    def test_validate_path(self, path, expected):
        assert ConfigSchema.validate_path(path) is expected
