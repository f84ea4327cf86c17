"""Communication logger for serial sessions.

CommunicationLogger is the single logging sink for the transport, the
framer and the state machine. It filters by level and writes to a
rotating file, to stderr and to an in-memory buffer for the terminal's
status view.
"""

from datetime import datetime
from collections import deque
from threading import Lock
from typing import Optional, List, Dict, Any, Union
import sys

from src.logging.log_models import LogEntry
from src.logging.file_handler import FileHandler
from src.config.config_models import LogLevel, LoggingConfig


class CommunicationLogger:
    """Central coordinator for communication logging.

    Attributes:
        log_level: Current log level name (DEBUG, INFO, WARNING, ERROR)
        enable_file: Whether file logging is enabled
        enable_console: Whether console logging is enabled
        log_file_path: Path to log file (if file logging enabled)

    Example:
        >>> logger = CommunicationLogger(
        ...     log_level=LogLevel.INFO,
        ...     enable_file=True,
        ...     log_file_path="~/.at-link/logs/session.log"
        ... )
        >>> logger.log_command(port="/dev/ttyUSB0", intention="COMMAND", command="AT+CGMI")
        >>> logger.log_response(port="/dev/ttyUSB0", intention="DATA",
        ...                     response="AT+CGMI\\rQuectel\\rOK", status="OK")
        >>> logger.close()
    """

    _LEVEL_PRIORITY = {
        "DEBUG": 0,
        "INFO": 1,
        "WARNING": 2,
        "ERROR": 3
    }

    _STATUS_LEVEL = {
        "OK": "INFO",
        "ERROR": "WARNING",
        "ACCESS_DENIED": "WARNING",
    }

    def __init__(
        self,
        log_level: Union[LogLevel, str] = LogLevel.INFO,
        enable_file: bool = False,
        enable_console: bool = True,
        log_file_path: Optional[str] = None,
        max_file_size_mb: int = 10,
        backup_count: int = 5,
        buffer_size: int = 1000
    ):
        """Initialize logger with output destinations and log level.

        Raises:
            ValueError: If enable_file=True but log_file_path is None
        """
        self.log_level = log_level.value if isinstance(log_level, LogLevel) else log_level
        self.enable_file = enable_file
        self.enable_console = enable_console
        self.log_file_path = log_file_path

        self._lock = Lock()
        self._buffer: deque = deque(maxlen=buffer_size)

        self._file_handler: Optional[FileHandler] = None
        if self.enable_file:
            if not log_file_path:
                raise ValueError("log_file_path required when enable_file=True")
            try:
                self._file_handler = FileHandler(
                    log_file_path=log_file_path,
                    max_size_mb=max_file_size_mb,
                    backup_count=backup_count
                )
            except OSError as e:
                print(f"WARNING: Failed to initialize file logging: {e}", file=sys.stderr)
                self._file_handler = None

    @classmethod
    def from_config(cls, config: LoggingConfig) -> Optional['CommunicationLogger']:
        """Build a logger from the logging config section.

        Returns:
            CommunicationLogger, or None when logging is disabled
        """
        if not config.enabled:
            return None

        log_file_path = None
        if config.log_to_file:
            log_file_path = config.log_file_path or cls.default_log_path()

        return cls(
            log_level=config.level,
            enable_file=config.log_to_file,
            enable_console=config.log_to_console,
            log_file_path=log_file_path,
            max_file_size_mb=config.max_file_size_mb,
            backup_count=config.backup_count
        )

    @staticmethod
    def default_log_path() -> str:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return f"~/.at-link/logs/session_{timestamp}.log"

    def log(self, entry: LogEntry) -> None:
        """Write entry to every enabled destination if its level passes."""
        if not self._should_log(entry.level):
            return

        with self._lock:
            self._buffer.append(entry)

            if self._file_handler:
                self._file_handler.write(entry)

            if self.enable_console:
                self._write_to_console(entry)

    def _should_log(self, entry_level: str) -> bool:
        entry_priority = self._LEVEL_PRIORITY.get(entry_level, 0)
        current_priority = self._LEVEL_PRIORITY.get(self.log_level, 0)
        return entry_priority >= current_priority

    def _write_to_console(self, entry: LogEntry) -> None:
        try:
            print(entry.to_string(), file=sys.stderr)
        except (OSError, ValueError):
            # stderr closed or detached
            pass

    def log_command(self, port: Optional[str], intention: Any, command: str) -> None:
        """Log a command about to be written to the link."""
        self.log(LogEntry(
            timestamp=datetime.now(),
            level="INFO",
            source="SessionStateMachine",
            message="Sending command",
            port=port,
            intention=str(intention) if intention is not None else None,
            command=command
        ))

    def log_response(
        self,
        port: Optional[str],
        intention: Any,
        response: str,
        status: str,
        command: Optional[str] = None
    ) -> None:
        """Log a full response.

        OK responses log at INFO; ERROR and ACCESS_DENIED at WARNING.
        """
        self.log(LogEntry(
            timestamp=datetime.now(),
            level=self._STATUS_LEVEL.get(status, "INFO"),
            source="SessionStateMachine",
            message="Received response",
            port=port,
            intention=str(intention) if intention is not None else None,
            command=command,
            response=response,
            status=status
        ))

    def log_line(self, line: str, port: Optional[str] = None) -> None:
        """Log one received line (DEBUG)."""
        self.log(LogEntry(
            timestamp=datetime.now(),
            level="DEBUG",
            source="ResponseFramer",
            message="Line received",
            port=port,
            response=line
        ))

    def log_state_change(self, previous: str, new: str) -> None:
        """Log a session state transition (DEBUG)."""
        self.log(LogEntry(
            timestamp=datetime.now(),
            level="DEBUG",
            source="SessionStateMachine",
            message="State changed",
            state=f"{previous} -> {new}"
        ))

    def log_port_event(
        self,
        event: str,
        port: str,
        details: Optional[Dict[str, Any]] = None,
        level: str = "INFO"
    ) -> None:
        """Log a serial port event such as "Port opened"."""
        self.log(LogEntry(
            timestamp=datetime.now(),
            level=level,
            source="SerialTransport",
            message=event,
            port=port,
            details=details
        ))

    def log_error(
        self,
        source: str,
        error: str,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.log(LogEntry(
            timestamp=datetime.now(),
            level="ERROR",
            source=source,
            message="Error occurred",
            error=error,
            details=details
        ))

    def set_level(self, level: Union[LogLevel, str]) -> None:
        self.log_level = level.value if isinstance(level, LogLevel) else level

    def get_entries(self, limit: Optional[int] = None) -> List[LogEntry]:
        """Entries from the in-memory buffer, oldest first.

        Args:
            limit: Return only the most recent `limit` entries
        """
        with self._lock:
            entries = list(self._buffer)
            if limit:
                entries = entries[-limit:]
            return entries

    def clear_buffer(self) -> None:
        """Clear the in-memory buffer. File logs are untouched."""
        with self._lock:
            self._buffer.clear()

    def flush(self) -> None:
        if self._file_handler:
            self._file_handler.flush()

    def close(self) -> None:
        if self._file_handler:
            self._file_handler.close()
            self._file_handler = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
