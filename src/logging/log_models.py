"""Log data models for communication logging.

Immutable log entries for commands, responses, received lines, state
transitions and port events.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Any, Optional
import json


@dataclass(frozen=True)
class LogEntry:
    """Immutable log entry for communication logging.

    Attributes:
        timestamp: When the event occurred
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        source: Component name (SerialTransport, SessionStateMachine, etc.)
        message: Human-readable message describing the event
        details: Additional structured data (arbitrary dict)
        port: Serial port name (optional)
        intention: Intention tag of the command or data (optional)
        command: Command text as transmitted (optional)
        response: Response text received (optional)
        status: Response status (OK, ERROR, ACCESS_DENIED) (optional)
        state: Session state transition, e.g. "IDLE -> SEND" (optional)
        error: Error message if applicable (optional)

    Example:
        >>> entry = LogEntry(
        ...     timestamp=datetime(2025, 1, 12, 10, 30, 15, 234000),
        ...     level="INFO",
        ...     source="SessionStateMachine",
        ...     message="Sending command",
        ...     command="AT+CGMI"
        ... )
        >>> entry.to_string()
        '2025-01-12 10:30:15.234 | INFO    | SessionStateMachine | Sending command | CMD: AT+CGMI'
    """

    timestamp: datetime
    level: str
    source: str
    message: str
    details: Optional[Dict[str, Any]] = None

    port: Optional[str] = None
    intention: Optional[str] = None
    command: Optional[str] = None
    response: Optional[str] = None
    status: Optional[str] = None
    state: Optional[str] = None
    error: Optional[str] = None

    _FIELDS = (
        'details', 'port', 'intention', 'command',
        'response', 'status', 'state', 'error'
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert log entry to dictionary, ISO format for timestamp."""
        data: Dict[str, Any] = {
            'timestamp': self.timestamp.isoformat(),
            'level': self.level,
            'source': self.source,
            'message': self.message,
        }
        for name in self._FIELDS:
            data[name] = getattr(self, name)
        return data

    def to_string(self) -> str:
        """Format as "YYYY-MM-DD HH:MM:SS.mmm | LEVEL | SOURCE | MESSAGE | ..."."""
        timestamp_str = self.timestamp.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        parts = [timestamp_str, f"{self.level:7}", self.source, self.message]

        if self.port:
            parts.append(f"PORT: {self.port}")
        if self.state:
            parts.append(f"STATE: {self.state}")
        if self.intention:
            parts.append(f"INTENTION: {self.intention}")
        if self.command:
            parts.append(f"CMD: {self.command}")
        if self.status:
            parts.append(f"STATUS: {self.status}")
        if self.response:
            parts.append(f"RESPONSE: {self.response!r}")
        if self.error:
            parts.append(f"ERROR: {self.error}")

        return " | ".join(parts)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LogEntry':
        """Create LogEntry from dictionary (timestamp may be ISO string)."""
        timestamp = data['timestamp']
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)

        optional = {name: data.get(name) for name in cls._FIELDS}
        return cls(
            timestamp=timestamp,
            level=data['level'],
            source=data['source'],
            message=data['message'],
            **optional
        )

    @classmethod
    def from_json(cls, json_str: str) -> 'LogEntry':
        return cls.from_dict(json.loads(json_str))
