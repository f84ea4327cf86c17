"""Unit tests for custom exception hierarchy.

Tests all custom exceptions including:
- Inheritance hierarchy
- Custom attributes
- String formatting
"""

import pytest
from src.core.exceptions import (
    LinkError,
    TransportError,
    TransportBusyError,
    ConnectionTimeoutError,
    InvalidCommandError,
    StepReentryError,
    ConfigError
)


class TestLinkError:
    """Test base exception class."""

    def test_is_exception(self):
        assert issubclass(LinkError, Exception)

    def test_raise_and_catch(self):
        with pytest.raises(LinkError):
            raise LinkError("Test error")

    @pytest.mark.parametrize("exc_class", [
        TransportError,
        TransportBusyError,
        ConnectionTimeoutError,
        InvalidCommandError,
        StepReentryError,
        ConfigError,
    ])
    def test_all_inherit_from_base(self, exc_class):
        assert issubclass(exc_class, LinkError)


class TestTransportError:
    """Test TransportError and subclasses."""

    def test_attributes(self):
        cause = OSError("No such file")
        error = TransportError("Failed to open", "/dev/ttyUSB0", cause)

        assert error.port == "/dev/ttyUSB0"
        assert error.os_error is cause

    def test_str_with_cause(self):
        error = TransportError("Failed to open", "COM3", OSError("gone"))
        assert str(error) == "Failed to open (port: COM3, cause: gone)"

    def test_str_without_cause(self):
        error = TransportError("Failed to open", "COM3")
        assert str(error) == "Failed to open (port: COM3)"

    def test_subclasses_caught_as_transport_error(self):
        with pytest.raises(TransportError):
            raise TransportBusyError("busy", "COM3")
        with pytest.raises(TransportError):
            raise ConnectionTimeoutError("slow", "COM3")


class TestInvalidCommandError:
    """Test InvalidCommandError."""

    def test_command_attribute(self):
        error = InvalidCommandError("Command text must not be empty", "   ")
        assert error.command == "   "

    def test_str_includes_command(self):
        error = InvalidCommandError("Command text must not be empty", "")
        assert str(error) == "Command text must not be empty (command: '')"


class TestConfigError:
    """Test ConfigError."""

    def test_without_errors(self):
        error = ConfigError("Bad config")
        assert error.errors == []
        assert str(error) == "Bad config"

    def test_lists_errors(self):
        error = ConfigError("Configuration validation failed", ["first", "second"])
        assert str(error) == "Configuration validation failed\n  - first\n  - second"
