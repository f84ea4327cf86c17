"""Command/response state machine for a half-duplex serial session.

The machine is advanced one step at a time by an external driver. Full
responses arrive from the framer on the transport's reader thread and move
the machine back to IDLE, so every transition goes through change_state()
under a single re-entrant lock.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple, TYPE_CHECKING
import threading
import time

from src.core.command_queue import CommandQueue, PendingCommand
from src.core.events import EventEmitter
from src.core.exceptions import InvalidCommandError, StepReentryError
from src.core.response_framer import FullResponse, ResponseFramer, ResponseStatus
from src.core.session_state import SessionState
from src.core.transport import Transport

if TYPE_CHECKING:
    from src.logging.communication_logger import CommunicationLogger

# Keepalive probe
PING_COMMAND = "AT"


@dataclass(frozen=True)
class SessionResponse:
    """Full response as seen by session subscribers.

    Attributes:
        intention: Intention the framer attached to the incoming data
        response: Trimmed response text
        status: Delimiter status of the response
        command: Command that was in flight, None for unsolicited data or pings
        timestamp: Unix timestamp when the response was completed
    """
    intention: Any
    response: str
    status: ResponseStatus
    command: Optional[PendingCommand] = None
    timestamp: float = field(default_factory=time.time)

    def is_successful(self) -> bool:
        return self.status == ResponseStatus.OK


class SessionStateMachine:
    """Owns the connection lifecycle and the outgoing command queue.

    One command is in flight at a time: SEND transmits the head of the
    queue and moves to RECEIVE, and only a full response from the framer
    brings the machine back to IDLE.

    Timeout policy: with response_timeout > 0, a step taken while in
    RECEIVE or PING_RECEIVE for at least that many seconds moves the
    machine to TIMEOUT. TIMEOUT is left by an explicit change_state() or
    by a late full response.

    Keepalive policy: with keepalive_interval > 0, a step taken in IDLE
    with an empty queue after that many seconds moves to PING_SEND.

    Example:
        >>> framer = ResponseFramer()
        >>> fsm = SessionStateMachine(SerialTransport('/dev/ttyUSB0'), framer)
        >>> fsm.change_state(SessionState.CONNECTING)
        >>> fsm.add_command("COMMAND", "at+cgmi")
        >>> fsm.step()  # CONNECTING -> CONNECTED
        >>> fsm.step()  # CONNECTED -> IDLE
        >>> fsm.step()  # IDLE -> SEND
        >>> fsm.step()  # SEND -> RECEIVE, "AT+CGMI\\r" written
    """

    EVENT_KINDS = ("state_change", "transition", "line", "response", "error")

    def __init__(self,
                 transport: Transport,
                 framer: Optional[ResponseFramer] = None,
                 response_timeout: float = 10.0,
                 keepalive_interval: float = 0.0,
                 logger: Optional['CommunicationLogger'] = None,
                 clock: Callable[[], float] = time.monotonic):
        """Initialize state machine in DISCONNECTED.

        Args:
            transport: Link used for open/write/close
            framer: Framer whose events drive responses (can be attached later)
            response_timeout: Seconds before RECEIVE/PING_RECEIVE times out (0 disables)
            keepalive_interval: Idle seconds before a ping is sent (0 disables)
            logger: Optional CommunicationLogger
            clock: Monotonic clock, replaceable in tests
        """
        self.transport = transport
        self.framer: Optional[ResponseFramer] = None
        self.response_timeout = response_timeout
        self.keepalive_interval = keepalive_interval
        self.logger = logger
        self._clock = clock

        self._state = SessionState.DISCONNECTED
        self._state_entered_at = clock()
        self._queue = CommandQueue()
        self._in_flight: Optional[PendingCommand] = None
        self._timeout_reported = False

        self._state_lock = threading.RLock()
        self._step_lock = threading.Lock()
        self._events = EventEmitter(self.EVENT_KINDS, source="SessionStateMachine", logger=logger)

        self._handlers: Dict[SessionState, Callable[[], None]] = {
            SessionState.DISCONNECTED: self._step_noop,
            SessionState.CONNECTING: self._step_connecting,
            SessionState.CONNECTED: self._step_connected,
            SessionState.IDLE: self._step_idle,
            SessionState.SEND: self._step_send,
            SessionState.RECEIVE: self._step_await_response,
            SessionState.PING_SEND: self._step_ping_send,
            SessionState.PING_RECEIVE: self._step_await_response,
            SessionState.TIMEOUT: self._step_timeout,
            SessionState.DISCONNECTING: self._step_disconnecting,
        }

        if framer is not None:
            self.attach_framer(framer)

    # Subscription

    def attach_framer(self, framer: ResponseFramer) -> None:
        """Route the framer's line and full-response events into this machine."""
        self.framer = framer
        framer.on_response_line(self._handle_line)
        framer.on_full_response(self._handle_full_response)

    def on_state_change(self, callback: Callable[[SessionState], None]) -> None:
        self._events.subscribe("state_change", callback)

    def on_transition(self, callback: Callable[[Tuple[SessionState, SessionState]], None]) -> None:
        """Subscribe to (previous, new) state pairs."""
        self._events.subscribe("transition", callback)

    def on_end_of_line(self, callback: Callable[[str], None]) -> None:
        self._events.subscribe("line", callback)

    def on_end_of_response(self, callback: Callable[[SessionResponse], None]) -> None:
        self._events.subscribe("response", callback)

    def on_error(self, callback: Callable[[str], None]) -> None:
        self._events.subscribe("error", callback)

    # State

    @property
    def current_state(self) -> SessionState:
        return self._state

    @property
    def in_flight(self) -> Optional[PendingCommand]:
        return self._in_flight

    def is_connected(self) -> bool:
        """True unless DISCONNECTED, CONNECTING or DISCONNECTING."""
        return self._state.is_link_open()

    def time_in_state(self) -> float:
        """Seconds since the current state was entered."""
        return self._clock() - self._state_entered_at

    def change_state(self, new_state: SessionState) -> None:
        """Set the current state and notify subscribers synchronously."""
        with self._state_lock:
            previous = self._state
            self._state = new_state
            self._state_entered_at = self._clock()
            self._timeout_reported = False
            if new_state in (SessionState.IDLE, SessionState.DISCONNECTED):
                self._in_flight = None

            if self.logger:
                self.logger.log_state_change(previous.name, new_state.name)

            self._events.emit("state_change", new_state)
            self._events.emit("transition", (previous, new_state))

    # Queue

    def add_command(self, intention: Any, command: str) -> PendingCommand:
        """Append a command to the tail of the queue.

        Does not change state; IDLE picks the command up on the next step.

        Raises:
            InvalidCommandError: Command text is empty or blank
        """
        if command is None or not str(command).strip():
            raise InvalidCommandError("Command text must not be empty", command)

        pending = PendingCommand(intention=intention, command=command)
        self._queue.enqueue(pending)
        return pending

    def pending_count(self) -> int:
        return len(self._queue)

    def clear_queue(self) -> int:
        """Drop every queued command. Returns how many were dropped."""
        return self._queue.clear()

    # Stepping
    #
    # step() picks a handler from the state without the lock, so a
    # transition from the reader thread or a caller can land before the
    # handler runs. Every handler re-reads the state under the lock and
    # does nothing if it is no longer the state it was chosen for.

    def step(self) -> SessionState:
        """Perform one state's worth of work.

        Returns:
            State after the step

        Raises:
            StepReentryError: Another step is still running
        """
        if not self._step_lock.acquire(blocking=False):
            raise StepReentryError("step() called while a previous step is still running")
        try:
            self._handlers[self._state]()
            return self._state
        finally:
            self._step_lock.release()

    def _step_noop(self) -> None:
        pass

    def _step_connecting(self) -> None:
        # open() blocks and runs outside the lock
        connected = self.transport.open()
        with self._state_lock:
            if self._state != SessionState.CONNECTING:
                return
            self.change_state(SessionState.CONNECTED if connected else SessionState.DISCONNECTED)

    def _step_connected(self) -> None:
        with self._state_lock:
            if self._state == SessionState.CONNECTED:
                self.change_state(SessionState.IDLE)

    def _step_idle(self) -> None:
        with self._state_lock:
            if self._state != SessionState.IDLE:
                return
            if self._queue:
                self.change_state(SessionState.SEND)
            elif 0 < self.keepalive_interval <= self.time_in_state():
                self.change_state(SessionState.PING_SEND)

    def _step_send(self) -> None:
        # Held across the write so a fast reply cannot land before RECEIVE
        with self._state_lock:
            if self._state != SessionState.SEND:
                return

            pending = self._queue.dequeue()
            if pending is None:
                self.change_state(SessionState.IDLE)
                return

            text = pending.normalized()
            self._in_flight = pending
            if self.logger:
                self.logger.log_command(self._port_name(), pending.intention, text)

            if not self.transport.write(text):
                self._report_error(f"Failed to send command {text!r}")
                self.change_state(SessionState.IDLE)
                return

            self.change_state(SessionState.RECEIVE)

    def _step_ping_send(self) -> None:
        with self._state_lock:
            if self._state != SessionState.PING_SEND:
                return

            if self.logger:
                self.logger.log_command(self._port_name(), "PING", PING_COMMAND)

            if not self.transport.write(PING_COMMAND):
                self._report_error("Failed to send keepalive ping")
                self.change_state(SessionState.IDLE)
                return

            self.change_state(SessionState.PING_RECEIVE)

    def _step_await_response(self) -> None:
        with self._state_lock:
            elapsed = self.time_in_state()
            # State read after the clock: a reply that completed meanwhile wins
            if not self._state.is_awaiting_response():
                return
            if 0 < self.response_timeout <= elapsed:
                self.change_state(SessionState.TIMEOUT)
                self._step_timeout()

    def _step_timeout(self) -> None:
        with self._state_lock:
            if self._state != SessionState.TIMEOUT or self._timeout_reported:
                return
            self._timeout_reported = True
            if self._in_flight is not None:
                self._report_error(f"Timeout waiting for response to {self._in_flight.normalized()!r}")
            else:
                self._report_error("Timeout waiting for response")

    def _step_disconnecting(self) -> None:
        # close() joins the reader thread, which may be waiting on the state lock
        self.transport.close()
        if self.framer is not None:
            self.framer.reset()
        with self._state_lock:
            if self._state == SessionState.DISCONNECTING:
                self.change_state(SessionState.DISCONNECTED)

    # Framer callbacks (reader thread)

    def _handle_line(self, line: str) -> None:
        self._events.emit("line", line)

    def _handle_full_response(self, full_response: FullResponse) -> None:
        with self._state_lock:
            session_response = SessionResponse(
                intention=full_response.intention,
                response=full_response.response,
                status=full_response.status,
                command=self._in_flight,
                timestamp=full_response.timestamp
            )

            if self.logger:
                self.logger.log_response(
                    port=self._port_name(),
                    intention=full_response.intention,
                    response=full_response.response,
                    status=full_response.status.name,
                    command=self._in_flight.normalized() if self._in_flight else None
                )

            self._events.emit("response", session_response)
            self.change_state(SessionState.IDLE)

    def _report_error(self, message: str) -> None:
        if self.logger:
            self.logger.log_error(
                source="SessionStateMachine",
                error=message,
                details={"state": self._state.name}
            )
        self._events.emit("error", message)

    def _port_name(self) -> Optional[str]:
        return getattr(self.transport, 'port', None)

    def __repr__(self) -> str:
        return (f"SessionStateMachine(state={self._state.name}, "
                f"pending={len(self._queue)}, "
                f"in_flight={self._in_flight.command if self._in_flight else None})")
