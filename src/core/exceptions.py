"""Custom exception hierarchy for AT Link.

Transport failures are raised inside the transport and converted to boolean
results at its public boundary; the remaining errors reach callers of the
session API directly.
"""

from typing import Optional


class LinkError(Exception):
    """Base exception for all AT Link errors.

    All custom exceptions inherit from this base class to allow
    catching all tool-specific errors with a single except clause.
    """
    pass


class TransportError(LinkError):
    """Serial transport error.

    Raised when serial port operations fail (open, read, write).
    Captures port identifier and underlying OS error for diagnostics.

    Attributes:
        port: Serial port identifier (e.g., '/dev/ttyUSB0', 'COM3')
        os_error: Original exception from pyserial or OS (if available)
    """

    def __init__(self, message: str, port: str, os_error: Optional[Exception] = None):
        """Initialize TransportError.

        Args:
            message: Human-readable error description
            port: Serial port identifier
            os_error: Original exception from pyserial/OS
        """
        super().__init__(message)
        self.port = port
        self.os_error = os_error

    def __str__(self) -> str:
        """Format error message with port context."""
        base_msg = super().__str__()
        if self.os_error:
            return f"{base_msg} (port: {self.port}, cause: {self.os_error})"
        return f"{base_msg} (port: {self.port})"


class TransportBusyError(TransportError):
    """Port is already in use by another process."""
    pass


class ConnectionTimeoutError(TransportError):
    """Opening the port did not complete within the configured timeout."""
    pass


class InvalidCommandError(LinkError):
    """Command text rejected before it reached the command queue.

    Attributes:
        command: The rejected command text (may be empty or blank)
    """

    def __init__(self, message: str, command: Optional[str]):
        super().__init__(message)
        self.command = command

    def __str__(self) -> str:
        base_msg = super().__str__()
        return f"{base_msg} (command: {self.command!r})"


class StepReentryError(LinkError):
    """step() was invoked while another step was still running."""
    pass


class ConfigError(LinkError):
    """Configuration could not be loaded or failed validation.

    Attributes:
        errors: List of validation error messages
    """

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = errors or []

    def __str__(self) -> str:
        base_msg = super().__str__()
        if not self.errors:
            return base_msg
        error_list = '\n  - '.join(self.errors)
        return f"{base_msg}\n  - {error_list}"
