"""Wiring of transport, framer and state machine for one serial link."""

from typing import Any, Callable, Optional, TYPE_CHECKING
import time

from src.core.command_queue import PendingCommand
from src.core.response_framer import ResponseFramer
from src.core.session_fsm import SessionStateMachine
from src.core.session_state import SessionState
from src.core.transport import SerialTransport, Transport

if TYPE_CHECKING:
    from src.config.config_models import Config
    from src.logging.communication_logger import CommunicationLogger

# Intention tags
INCOMING_INTENTION = "DATA"
COMMAND_INTENTION = "COMMAND"


class LinkSession:
    """One framer, one transport and one state machine, owned together.

    Incoming characters are appended to the framer with the DATA intention.
    The caller owns the step timer (see src.terminal.driver.StepDriver).

    Example:
        >>> session = LinkSession(SerialTransport('/dev/ttyUSB0'))
        >>> session.connect()
        >>> session.send('at')
        >>> while True:
        ...     session.step()
        ...     time.sleep(0.1)
    """

    def __init__(self,
                 transport: Transport,
                 response_timeout: float = 10.0,
                 keepalive_interval: float = 0.0,
                 echo: bool = True,
                 logger: Optional['CommunicationLogger'] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.transport = transport
        self.echo = echo
        self.logger = logger
        self.framer = ResponseFramer(logger=logger)
        self.fsm = SessionStateMachine(
            transport,
            self.framer,
            response_timeout=response_timeout,
            keepalive_interval=keepalive_interval,
            logger=logger,
            clock=clock
        )
        transport.set_receiver(self._receive)

    @classmethod
    def from_config(cls,
                    config: 'Config',
                    port: Optional[str] = None,
                    baud_rate: Optional[int] = None,
                    logger: Optional['CommunicationLogger'] = None) -> 'LinkSession':
        """Build a session over a SerialTransport from configuration.

        Args:
            config: Loaded configuration
            port: Port override (falls back to config.serial.port)
            baud_rate: Baud rate override (falls back to config.serial.baud_rate)
            logger: Optional CommunicationLogger

        Raises:
            ValueError: No port given and none configured
        """
        port = port or config.serial.port
        if not port:
            raise ValueError("No serial port specified (use --port or serial.port in config)")

        transport = SerialTransport(
            port,
            baud_rate=baud_rate or config.serial.baud_rate,
            read_timeout=config.serial.read_timeout,
            write_timeout=config.serial.write_timeout,
            logger=logger
        )
        return cls(
            transport,
            response_timeout=config.session.response_timeout,
            keepalive_interval=config.session.keepalive_interval,
            logger=logger
        )

    def _receive(self, char: str) -> None:
        self.framer.append(char, INCOMING_INTENTION, self.echo)

    @property
    def state(self) -> SessionState:
        return self.fsm.current_state

    def is_connected(self) -> bool:
        return self.fsm.is_connected()

    def connect(self) -> None:
        """Request a connection; the next step opens the transport."""
        self.fsm.change_state(SessionState.CONNECTING)

    def disconnect(self) -> None:
        """Request a disconnect; the next step closes the transport."""
        self.fsm.change_state(SessionState.DISCONNECTING)

    def send(self, command: str, intention: Any = COMMAND_INTENTION) -> PendingCommand:
        """Queue a command for transmission.

        Raises:
            InvalidCommandError: Command text is empty or blank
        """
        return self.fsm.add_command(intention, command)

    def step(self) -> SessionState:
        return self.fsm.step()

    def apply_config(self, config: 'Config') -> None:
        """Take the session timing from a reloaded configuration.

        Usable as a ConfigManager reload callback. Serial settings are
        fixed for the life of the transport and are not applied.
        """
        self.fsm.response_timeout = config.session.response_timeout
        self.fsm.keepalive_interval = config.session.keepalive_interval

    def __repr__(self) -> str:
        return f"LinkSession(transport={self.transport!r}, state={self.state.name})"
