"""Interactive line terminal for a LinkSession.

Lines received from the device and session state changes are printed as
they arrive. Input lines are queued as commands; lines starting with ':'
are console commands.
"""

from typing import Callable, Optional, TextIO, TYPE_CHECKING
import sys
import threading

from src.core.exceptions import InvalidCommandError
from src.core.session_fsm import SessionResponse
from src.core.session_state import SessionState
from src.terminal.driver import StepDriver

if TYPE_CHECKING:
    from src.core.link_session import LinkSession
    from src.logging.communication_logger import CommunicationLogger

# States announced even when verbose is off
LIFECYCLE_STATES = (
    SessionState.CONNECTED,
    SessionState.DISCONNECTED,
    SessionState.TIMEOUT,
)

HELP_TEXT = """Console commands:
  :connect      Open the serial port
  :disconnect   Close the serial port
  :clear        Drop queued commands that were not sent yet
  :status       Show session state and queue
  :help         Show this help
  :quit         Disconnect and exit
Anything else is sent to the device (trimmed, upper-cased unless exactly 'c')."""


class TerminalConsole:
    """Renders session events and turns input lines into queued commands.

    Example:
        >>> session = LinkSession(SerialTransport('/dev/ttyUSB0'))
        >>> console = TerminalConsole(session, tick_interval=0.1)
        >>> console.run(auto_connect=True)
        >>> at+cgmi
        Quectel
        OK
    """

    def __init__(self,
                 session: 'LinkSession',
                 tick_interval: float = 0.1,
                 verbose: bool = False,
                 input_func: Callable[[str], str] = input,
                 output: Optional[TextIO] = None,
                 logger: Optional['CommunicationLogger'] = None):
        """Initialize console and subscribe to session events.

        Args:
            session: Session to drive
            tick_interval: Seconds between state machine steps
            verbose: Print every state change instead of only lifecycle ones
            input_func: Line reader, replaceable in tests
            output: Stream to print to (default: stdout)
            logger: Optional CommunicationLogger passed to the step driver
        """
        self.session = session
        self.tick_interval = tick_interval
        self.verbose = verbose
        self.input_func = input_func
        self.output = output if output is not None else sys.stdout
        self.logger = logger
        self._print_lock = threading.Lock()
        self._driver: Optional[StepDriver] = None

        session.fsm.on_end_of_line(self._on_line)
        session.fsm.on_state_change(self._on_state_change)
        session.fsm.on_error(self._on_error)

    # Rendering (called from the reader and step threads)

    def write(self, text: str) -> None:
        with self._print_lock:
            print(text, file=self.output, flush=True)

    def _on_line(self, line: str) -> None:
        self.write(line)

    def _on_state_change(self, state: SessionState) -> None:
        if self.verbose or state in LIFECYCLE_STATES:
            self.write(f"[{state.name}]")

    def _on_error(self, message: str) -> None:
        self.write(f"[ERROR] {message}")

    # Input

    def handle_input(self, text: str) -> bool:
        """Process one input line.

        Returns:
            False when the console should exit, True otherwise
        """
        stripped = text.strip()
        if stripped.startswith(':'):
            return self._handle_console_command(stripped[1:].lower())

        try:
            self.session.send(text)
        except InvalidCommandError as e:
            self.write(f"[ERROR] {e}")
            return True

        if not self.session.is_connected():
            self.write("[WARN] Not connected; command queued until :connect")
        return True

    def _handle_console_command(self, name: str) -> bool:
        if name == 'quit':
            return False

        if name == 'connect':
            if self.session.is_connected():
                self.write("[WARN] Already connected")
            else:
                self.session.connect()
        elif name == 'disconnect':
            if self.session.is_connected():
                self.session.disconnect()
            else:
                self.write("[WARN] Not connected")
        elif name == 'clear':
            dropped = self.session.fsm.clear_queue()
            self.write(f"Cleared {dropped} queued command(s)")
        elif name == 'status':
            self.write(self.status_text())
        elif name == 'help':
            self.write(HELP_TEXT)
        else:
            self.write(f"[ERROR] Unknown console command ':{name}' (try :help)")
        return True

    def status_text(self) -> str:
        fsm = self.session.fsm
        in_flight = fsm.in_flight.normalized() if fsm.in_flight else "-"
        port = getattr(self.session.transport, 'port', None) or "-"
        return (f"State: {fsm.current_state.name}  Port: {port}  "
                f"Queued: {fsm.pending_count()}  In flight: {in_flight}")

    # Main loop

    def run(self, auto_connect: bool = True, shutdown_timeout: float = 5.0) -> int:
        """Read input until :quit, EOF or Ctrl+C, then disconnect.

        Returns:
            Exit code (0 for success)
        """
        self._driver = StepDriver(self.session, self.tick_interval, logger=self.logger)
        self._driver.start()
        self.write("AT Link terminal - type :help for console commands")

        if auto_connect:
            self.session.connect()

        try:
            while True:
                try:
                    line = self.input_func("")
                except EOFError:
                    break
                if not self.handle_input(line):
                    break
        except KeyboardInterrupt:
            self.write("")
        finally:
            self.shutdown(shutdown_timeout)

        return 0

    def shutdown(self, timeout: float = 5.0) -> None:
        """Disconnect (if connected) and stop the step driver."""
        if self._driver is None:
            return

        if self.session.is_connected():
            self.session.disconnect()
            StepDriver.wait_until(
                lambda: self.session.state == SessionState.DISCONNECTED,
                timeout=timeout
            )

        self._driver.stop()
        self._driver = None


def send_once(session: 'LinkSession',
              command: str,
              tick_interval: float = 0.1,
              connect_timeout: float = 5.0,
              response_timeout: float = 15.0,
              logger: Optional['CommunicationLogger'] = None) -> Optional[SessionResponse]:
    """Connect, send one command, wait for its response and disconnect.

    Args:
        session: Disconnected session
        command: Command text
        tick_interval: Seconds between state machine steps
        connect_timeout: Seconds to wait for the link to open
        response_timeout: Seconds to wait for the full response
        logger: Optional CommunicationLogger passed to the step driver

    Returns:
        The response, or None if the link failed to open, the write
        failed or no response arrived in time

    Raises:
        InvalidCommandError: Command text is empty or blank
    """
    pending = session.send(command)

    done = threading.Event()
    result = {}

    def on_response(response: SessionResponse) -> None:
        if response.command is pending:
            result['response'] = response
            done.set()

    def on_state_change(state: SessionState) -> None:
        if state in (SessionState.DISCONNECTED, SessionState.TIMEOUT):
            done.set()

    def on_error(message: str) -> None:
        done.set()

    session.fsm.on_end_of_response(on_response)
    session.fsm.on_state_change(on_state_change)
    session.fsm.on_error(on_error)

    driver = StepDriver(session, tick_interval, logger=logger)
    driver.start()
    try:
        session.connect()
        StepDriver.wait_until(lambda: session.state != SessionState.CONNECTING, timeout=connect_timeout)
        if not session.is_connected():
            return None

        done.wait(response_timeout)
        return result.get('response')
    finally:
        if session.is_connected():
            session.disconnect()
            StepDriver.wait_until(
                lambda: session.state == SessionState.DISCONNECTED,
                timeout=connect_timeout
            )
        driver.stop()
