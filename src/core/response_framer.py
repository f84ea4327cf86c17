"""Response framing for the character stream coming off the serial link.

The framer turns single characters into line events and full-response
events. A response is complete as soon as the accumulated text ends with
one of the fixed delimiters; there is no dedicated terminator character.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, TYPE_CHECKING
import re
import threading
import time

from src.core.events import EventEmitter

if TYPE_CHECKING:
    from src.logging.communication_logger import CommunicationLogger


class ResponseStatus(Enum):
    """Which delimiter closed a response.

    - OK: response ended with the OK marker
    - ERROR: response ended with the ERROR marker
    - ACCESS_DENIED: response ended with the access denied marker
    """
    OK = "ok"
    ERROR = "error"
    ACCESS_DENIED = "access_denied"


# Trailing space keeps "OKAY" from matching
OK_DELIMITER = "OK "
ERROR_DELIMITER = "ERROR"
ACCESS_DENIED_DELIMITER = "Access Denied"

DELIMITERS = (
    (OK_DELIMITER, ResponseStatus.OK),
    (ERROR_DELIMITER, ResponseStatus.ERROR),
    (ACCESS_DENIED_DELIMITER, ResponseStatus.ACCESS_DENIED),
)

_NEWLINE_RE = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class FullResponse:
    """Immutable full response emitted by the framer.

    Attributes:
        intention: Tag supplied by whoever fed the characters (e.g. "DATA")
        response: Accumulated response text, trimmed
        status: Status derived from the delimiter that closed the response
        timestamp: Unix timestamp when the response was completed
    """

    intention: Any
    response: str
    status: ResponseStatus
    timestamp: float = field(default_factory=time.time)

    def is_successful(self) -> bool:
        return self.status == ResponseStatus.OK

    def lines(self):
        """Split the response into non-empty, trimmed lines.

        Example:
            >>> FullResponse("DATA", "AT\\rOK", ResponseStatus.OK).lines()
            ['AT', 'OK']
        """
        return [line.strip() for line in _NEWLINE_RE.split(self.response) if line.strip()]

    def __str__(self) -> str:
        return f"[{self.status.value}] {self.intention}: {self.response!r}"


class ResponseFramer:
    """Accumulates characters and detects line and response boundaries.

    Events:
        char: every appended character (only when echo is on)
        line: trimmed, non-empty line text (only when echo is on)
        response: FullResponse, always emitted when a delimiter is seen

    Calls to append() are serialized by an internal lock, so the reader
    thread and other feeders never interleave.

    Example:
        >>> framer = ResponseFramer()
        >>> framer.on_response_line(print)
        >>> framer.feed("AT\\rOK ", "DATA")
        AT
        OK
        1
    """

    EVENT_KINDS = ("char", "line", "response")

    def __init__(self, logger: Optional['CommunicationLogger'] = None):
        """Initialize framer with empty buffers.

        Args:
            logger: Optional CommunicationLogger for line and callback logging
        """
        self.logger = logger
        self._line_buffer = ""
        self._response_buffer = ""
        self._events = EventEmitter(self.EVENT_KINDS, source="ResponseFramer", logger=logger)
        self._lock = threading.RLock()

    def on_response_char(self, callback: Callable[[str], None]) -> None:
        self._events.subscribe("char", callback)

    def on_response_line(self, callback: Callable[[str], None]) -> None:
        self._events.subscribe("line", callback)

    def on_full_response(self, callback: Callable[[FullResponse], None]) -> None:
        self._events.subscribe("response", callback)

    @property
    def line_buffer(self) -> str:
        return self._line_buffer

    @property
    def response_buffer(self) -> str:
        return self._response_buffer

    def append(self, char: Optional[str], intention: Any, echo: bool = True) -> bool:
        """Append one character and fire the resulting events.

        Args:
            char: Single character; empty or None is ignored
            intention: Tag carried into the full-response event
            echo: Whether char and line events fire

        Returns:
            True if this character completed a full response, False otherwise
        """
        if not char:
            return False

        with self._lock:
            self._line_buffer += char
            self._response_buffer += char

            self._line_buffer = _NEWLINE_RE.sub("\n", self._line_buffer)

            if echo:
                self._events.emit("char", char)

            if char == "\r":
                self._flush_line(echo)
                self._line_buffer = ""

            status = self._match_delimiter()
            if status is None:
                return False

            # Delimiter text may arrive without a preceding \r
            self._flush_line(echo)

            full_response = FullResponse(
                intention=intention,
                response=self._response_buffer.strip(),
                status=status
            )
            self._line_buffer = ""
            self._response_buffer = ""

            self._events.emit("response", full_response)
            return True

    def feed(self, text: str, intention: Any, echo: bool = True) -> int:
        """Append every character of `text`.

        Returns:
            Number of full responses completed while feeding
        """
        completed = 0
        for char in text:
            if self.append(char, intention, echo):
                completed += 1
        return completed

    def reset(self) -> None:
        """Discard any partially accumulated line and response."""
        with self._lock:
            self._line_buffer = ""
            self._response_buffer = ""

    def _flush_line(self, echo: bool) -> None:
        line = self._line_buffer.strip()
        if echo and line:
            if self.logger:
                self.logger.log_line(line)
            self._events.emit("line", line)

    def _match_delimiter(self) -> Optional[ResponseStatus]:
        for delimiter, status in DELIMITERS:
            if self._response_buffer.endswith(delimiter):
                return status
        return None

    def __repr__(self) -> str:
        return (f"ResponseFramer(line={self._line_buffer!r}, "
                f"pending={len(self._response_buffer)} chars)")
