"""Size-rotated log file writer.

Writes one formatted LogEntry per line. When the file reaches its size
limit it becomes <name>.1, older backups shift up by one, and anything
beyond backup_count is removed.
"""

from pathlib import Path
from threading import Lock
from typing import IO, Optional
import os
import sys

from src.logging.log_models import LogEntry


class FileHandler:
    """Thread-safe log file with automatic rotation.

    Example:
        >>> handler = FileHandler("~/.at-link/logs/session.log", max_size_mb=10, backup_count=5)
        >>> handler.write(log_entry)
        >>> handler.close()
    """

    def __init__(self, log_file_path: str, max_size_mb: int = 10, backup_count: int = 5):
        """Create the log directory and open the file for appending.

        Args:
            log_file_path: Path to log file (supports ~ expansion)
            max_size_mb: Maximum file size in MB before rotation (default: 10)
            backup_count: Number of rotated backups to keep (default: 5)

        Raises:
            OSError: If the log directory cannot be created
        """
        self.log_file_path = Path(log_file_path).expanduser().resolve()
        self.max_size_bytes = max_size_mb * 1024 * 1024
        self.backup_count = backup_count
        self._lock = Lock()
        self._file: Optional[IO[str]] = None
        self._is_closed = False

        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self._open()

    def _open(self) -> Optional[IO[str]]:
        try:
            return open(self.log_file_path, mode='a', encoding='utf-8', buffering=8192)
        except OSError as e:
            print(f"ERROR: Failed to open log file {self.log_file_path}: {e}", file=sys.stderr)
            return None

    def _backup_path(self, index: int) -> Path:
        return Path(f"{self.log_file_path}.{index}")

    def write(self, entry: LogEntry) -> bool:
        """Append one entry, rotating first if the file is full.

        Returns:
            True if written, False if the handler is closed or the write failed
        """
        if self._is_closed or self._file is None:
            return False

        with self._lock:
            try:
                if self._needs_rotation():
                    self._rotate()
                if self._file is None:
                    return False
                self._file.write(entry.to_string() + '\n')
                self._file.flush()
                return True
            except OSError as e:
                print(f"ERROR: Failed to write log entry: {e}", file=sys.stderr)
                return False

    def _needs_rotation(self) -> bool:
        try:
            return os.path.getsize(self.log_file_path) >= self.max_size_bytes
        except OSError:
            return False

    def _rotate(self) -> None:
        """Shift backups up by one and start a fresh file. Caller holds the lock."""
        if self._file is not None:
            self._file.close()
            self._file = None

        try:
            oldest = self._backup_path(self.backup_count)
            if oldest.exists():
                oldest.unlink()

            for index in range(self.backup_count - 1, 0, -1):
                source = self._backup_path(index)
                if source.exists():
                    source.replace(self._backup_path(index + 1))

            if self.backup_count > 0:
                self.log_file_path.replace(self._backup_path(1))
            else:
                self.log_file_path.unlink()
        except OSError as e:
            print(f"WARNING: Log rotation failed: {e}", file=sys.stderr)

        self._file = self._open()

    def flush(self) -> None:
        """Flush buffered writes and fsync to disk."""
        if self._file is None or self._is_closed:
            return

        with self._lock:
            try:
                self._file.flush()
                os.fsync(self._file.fileno())
            except OSError as e:
                print(f"ERROR: Failed to flush log file: {e}", file=sys.stderr)

    def close(self) -> None:
        """Flush and close. Idempotent."""
        if self._is_closed:
            return

        with self._lock:
            try:
                if self._file is not None and not self._file.closed:
                    self._file.flush()
                    self._file.close()
            except OSError as e:
                print(f"ERROR: Failed to close log file: {e}", file=sys.stderr)
            finally:
                self._file = None
                self._is_closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
