"""AT Link - half-duplex AT command terminal for serial modems.

This package provides:
- Response framing of the incoming character stream
- A step-driven command/response session state machine
- A pyserial transport with a background reader
- Communication logging and layered configuration
"""

from src.core import (
    ResponseFramer,
    FullResponse,
    ResponseStatus,
    SessionState,
    SessionStateMachine,
    SessionResponse,
    Transport,
    SerialTransport,
    PortInfo,
    LinkSession,
    LinkError,
    TransportError,
    InvalidCommandError,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "ResponseFramer",
    "FullResponse",
    "ResponseStatus",
    "SessionState",
    "SessionStateMachine",
    "SessionResponse",
    "Transport",
    "SerialTransport",
    "PortInfo",
    "LinkSession",
    # Exceptions
    "LinkError",
    "TransportError",
    "InvalidCommandError",
]
