"""Core serial link components.

This package provides the response framer, the command/response state
machine and the transport they drive.
"""

from src.core.command_queue import CommandQueue, PendingCommand, CANCEL_COMMAND
from src.core.events import EventEmitter
from src.core.exceptions import (
    LinkError,
    TransportError,
    TransportBusyError,
    ConnectionTimeoutError,
    InvalidCommandError,
    StepReentryError,
    ConfigError
)
from src.core.response_framer import (
    ResponseFramer,
    FullResponse,
    ResponseStatus,
    OK_DELIMITER,
    ERROR_DELIMITER,
    ACCESS_DENIED_DELIMITER
)
from src.core.session_state import SessionState
from src.core.transport import Transport, SerialTransport, PortInfo, LINE_TERMINATOR
from src.core.session_fsm import SessionStateMachine, SessionResponse, PING_COMMAND
from src.core.link_session import LinkSession, INCOMING_INTENTION, COMMAND_INTENTION

__all__ = [
    'CommandQueue',
    'PendingCommand',
    'CANCEL_COMMAND',
    'EventEmitter',
    'LinkError',
    'TransportError',
    'TransportBusyError',
    'ConnectionTimeoutError',
    'InvalidCommandError',
    'StepReentryError',
    'ConfigError',
    'ResponseFramer',
    'FullResponse',
    'ResponseStatus',
    'OK_DELIMITER',
    'ERROR_DELIMITER',
    'ACCESS_DENIED_DELIMITER',
    'SessionState',
    'Transport',
    'SerialTransport',
    'PortInfo',
    'LINE_TERMINATOR',
    'SessionStateMachine',
    'SessionResponse',
    'PING_COMMAND',
    'LinkSession',
    'INCOMING_INTENTION',
    'COMMAND_INTENTION',
]
