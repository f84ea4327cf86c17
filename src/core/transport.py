"""Serial transport for the command/response link.

The session only sees the boolean Transport contract; pyserial exceptions
are classified into TransportError subclasses, logged, and converted to
False at the public boundary.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional, TYPE_CHECKING
import codecs
import threading
import time

import serial
from serial.tools import list_ports

from src.core.exceptions import (
    TransportError,
    TransportBusyError,
    ConnectionTimeoutError
)

# Avoid circular import for type hints
if TYPE_CHECKING:
    from src.logging.communication_logger import CommunicationLogger

# Terminator appended to every outgoing line
LINE_TERMINATOR = "\r"


@dataclass
class PortInfo:
    """Serial port information from discovery.

    Attributes:
        device: Port device path (e.g., '/dev/ttyUSB0', 'COM3')
        description: Human-readable port description
        hwid: Hardware identifier (USB VID:PID, etc.)
    """
    device: str
    description: str
    hwid: str


class Transport(ABC):
    """Link collaborator used by the session state machine.

    Implementations stream incoming characters, one at a time, to the
    receiver registered with set_receiver().
    """

    def __init__(self):
        self._receiver: Optional[Callable[[str], None]] = None

    def set_receiver(self, receiver: Optional[Callable[[str], None]]) -> None:
        self._receiver = receiver

    def _deliver(self, text: str) -> None:
        receiver = self._receiver
        if receiver is None:
            return
        for char in text:
            receiver(char)

    @abstractmethod
    def open(self) -> bool:
        """Acquire the link. Must not raise for ordinary connection failure."""

    @abstractmethod
    def write(self, text: str) -> bool:
        """Send one line (terminator appended). Returns success."""

    @abstractmethod
    def close(self) -> None:
        """Release all resources. Safe on partially opened links."""

    @abstractmethod
    def is_open(self) -> bool:
        """True while the link is held."""


class SerialTransport(Transport):
    """pyserial-backed transport with a background reader thread.

    Example:
        >>> transport = SerialTransport('/dev/ttyUSB0', baud_rate=9600)
        >>> transport.set_receiver(print)
        >>> transport.open()
        True
        >>> transport.write('AT')
        True
        >>> transport.close()
    """

    def __init__(self,
                 port: str,
                 baud_rate: int = 9600,
                 read_timeout: float = 0.1,
                 write_timeout: float = 1.0,
                 logger: Optional['CommunicationLogger'] = None,
                 **kwargs):
        """Initialize transport with port configuration.

        Args:
            port: Serial port device path
            baud_rate: Baud rate (default 9600)
            read_timeout: Reader poll timeout in seconds (default 0.1)
            write_timeout: Write timeout in seconds (default 1.0)
            logger: Optional CommunicationLogger for port events
            **kwargs: Additional arguments passed to serial.Serial
        """
        super().__init__()
        self.port = port
        self.baud_rate = baud_rate
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self.logger = logger
        self.kwargs = kwargs
        self._serial: Optional[serial.Serial] = None
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._reader: Optional[threading.Thread] = None
        self._stop_reading = threading.Event()
        self._open_time: Optional[float] = None

    def open(self) -> bool:
        """Open the port and start the reader thread.

        Returns:
            True if the port is open, False if opening failed (logged)
        """
        try:
            self._open_port()
        except TransportError as e:
            if self.logger:
                self.logger.log_error(
                    source="SerialTransport",
                    error=str(e),
                    details={"port": self.port, "error_type": type(e).__name__}
                )
            # Release anything half-initialized
            self.close()
            return False
        return True

    def _open_port(self) -> None:
        """Open serial port and start reading.

        Raises:
            TransportError: Port doesn't exist or permission denied
            TransportBusyError: Port already in use
            ConnectionTimeoutError: Open timeout exceeded
        """
        with self._lock:
            if self._serial is not None and self._serial.is_open:
                return  # Already open

            try:
                self._serial = serial.Serial(
                    port=self.port,
                    baudrate=self.baud_rate,
                    timeout=self.read_timeout,
                    write_timeout=self.write_timeout,
                    **self.kwargs
                )
            except serial.SerialException as e:
                error_msg = str(e).lower()

                if 'permission denied' in error_msg or 'access denied' in error_msg:
                    raise TransportError(
                        f"Permission denied accessing port {self.port}",
                        self.port,
                        e
                    )
                elif 'busy' in error_msg or 'in use' in error_msg:
                    raise TransportBusyError(
                        f"Port {self.port} is already in use",
                        self.port,
                        e
                    )
                elif 'timeout' in error_msg:
                    raise ConnectionTimeoutError(
                        f"Timeout opening port {self.port}",
                        self.port,
                        e
                    )
                else:
                    raise TransportError(
                        f"Failed to open port {self.port}: {e}",
                        self.port,
                        e
                    )
            except Exception as e:
                raise TransportError(
                    f"Unexpected error opening port {self.port}: {e}",
                    self.port,
                    e
                )

            self._open_time = time.time()
            self._stop_reading.clear()
            self._reader = threading.Thread(
                target=self._read_loop,
                name=f"SerialTransport-reader-{self.port}",
                daemon=True
            )
            self._reader.start()

        if self.logger:
            self.logger.log_port_event(
                event="Port opened",
                port=self.port,
                details={
                    "baud_rate": self.baud_rate,
                    "read_timeout": self.read_timeout,
                    **self.kwargs
                },
                level="INFO"
            )

    def _read_loop(self) -> None:
        """Reader thread: decode incoming bytes and deliver characters."""
        decoder = codecs.getincrementaldecoder('utf-8')(errors='replace')
        serial_port = self._serial

        while not self._stop_reading.is_set():
            try:
                waiting = serial_port.in_waiting
                data = serial_port.read(waiting or 1)
            except Exception as e:
                if not self._stop_reading.is_set() and self.logger:
                    self.logger.log_error(
                        source="SerialTransport",
                        error=f"Error reading from port: {e}",
                        details={"port": self.port, "error_type": type(e).__name__}
                    )
                break

            if not data:
                time.sleep(0.01)  # Small delay to prevent busy-wait
                continue

            text = decoder.decode(data)
            if text:
                self._deliver(text)

        if self.logger:
            self.logger.log_port_event(event="Reader stopped", port=self.port, level="DEBUG")

    def write(self, text: str) -> bool:
        """Write one line to the port.

        Appends the \\r terminator before encoding.

        Returns:
            True if the line was written, False otherwise (logged)
        """
        serial_port = self._serial
        if serial_port is None or not serial_port.is_open:
            if self.logger:
                self.logger.log_error(
                    source="SerialTransport",
                    error="Cannot write to closed port",
                    details={"port": self.port}
                )
            return False

        try:
            with self._write_lock:
                serial_port.write(f"{text}{LINE_TERMINATOR}".encode('utf-8'))
                serial_port.flush()
        except Exception as e:
            if self.logger:
                self.logger.log_error(
                    source="SerialTransport",
                    error=f"Failed to write to port: {e}",
                    details={"port": self.port, "error_type": type(e).__name__}
                )
            return False

        return True

    def close(self) -> None:
        """Stop the reader, then close the port.

        Safe to call multiple times and on a partially opened port.
        """
        with self._lock:
            serial_port = self._serial
            reader = self._reader
            self._stop_reading.set()

            try:
                if serial_port is not None:
                    cancel_read = getattr(serial_port, 'cancel_read', None)
                    if callable(cancel_read) and serial_port.is_open:
                        cancel_read()

                if reader is not None and reader is not threading.current_thread():
                    reader.join(timeout=2.0)

                if serial_port is not None and serial_port.is_open:
                    serial_port.close()

                    if self.logger:
                        session_duration = None
                        if self._open_time:
                            session_duration = time.time() - self._open_time

                        self.logger.log_port_event(
                            event="Port closed",
                            port=self.port,
                            details={
                                "session_duration_seconds": session_duration
                            } if session_duration else None,
                            level="INFO"
                        )
            except Exception as e:
                if self.logger:
                    self.logger.log_error(
                        source="SerialTransport",
                        error=f"Error closing port: {e}",
                        details={"port": self.port}
                    )
            finally:
                self._serial = None
                self._reader = None
                self._open_time = None

    def is_open(self) -> bool:
        serial_port = self._serial
        return serial_port is not None and serial_port.is_open

    @staticmethod
    def discover_ports() -> List[PortInfo]:
        """Enumerate available serial ports.

        Returns:
            List of PortInfo objects with path, description, hwid
        """
        ports = []
        for port_info in list_ports.comports():
            ports.append(PortInfo(
                device=port_info.device,
                description=port_info.description or "Unknown",
                hwid=port_info.hwid or "Unknown"
            ))
        return ports

    def __repr__(self) -> str:
        status = "open" if self.is_open() else "closed"
        return f"SerialTransport(port='{self.port}', baud={self.baud_rate}, status={status})"
