"""Session states for the command/response state machine."""

from enum import Enum


class SessionState(Enum):
    """Lifecycle and exchange states of a serial session.

    DISCONNECTED is the quiescent rest state; no state is terminal.
    """
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    IDLE = "idle"
    SEND = "send"
    RECEIVE = "receive"
    PING_SEND = "ping_send"
    PING_RECEIVE = "ping_receive"
    TIMEOUT = "timeout"
    DISCONNECTING = "disconnecting"

    def is_link_open(self) -> bool:
        """True for every state in which the transport is considered open.

        TIMEOUT and the PING states count as open: the port is still held.
        """
        return self not in _LINK_CLOSED_STATES

    def is_awaiting_response(self) -> bool:
        return self in (SessionState.RECEIVE, SessionState.PING_RECEIVE)


_LINK_CLOSED_STATES = frozenset({
    SessionState.DISCONNECTED,
    SessionState.CONNECTING,
    SessionState.DISCONNECTING,
})
