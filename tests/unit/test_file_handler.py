"""Unit tests for FileHandler with log rotation."""

import threading

import pytest
from pathlib import Path
from datetime import datetime
import tempfile
import shutil

from src.logging.file_handler import FileHandler
from src.logging.log_models import LogEntry


def command_entry(command="AT+CGMI", size=0):
    return LogEntry(
        timestamp=datetime.now(),
        level="INFO",
        source="SessionStateMachine",
        message="Sending command" + "X" * size,
        port="/dev/ttyUSB0",
        command=command
    )


class TestFileHandler:
    """Test suite for FileHandler class."""

    @pytest.fixture
    def temp_dir(self):
        """Create a temporary directory for test logs."""
        temp_path = Path(tempfile.mkdtemp())
        yield temp_path
        if temp_path.exists():
            shutil.rmtree(temp_path)

    def test_file_handler_creation(self, temp_dir):
        log_file = temp_dir / "test.log"
        handler = FileHandler(str(log_file), max_size_mb=10, backup_count=5)

        assert handler.log_file_path == log_file.resolve()
        assert handler.max_size_bytes == 10 * 1024 * 1024
        assert handler.backup_count == 5
        assert log_file.exists()

        handler.close()

    def test_creates_parent_directories(self, temp_dir):
        log_file = temp_dir / "nested" / "logs" / "session.log"
        handler = FileHandler(str(log_file))

        assert log_file.exists()
        handler.close()

    def test_write_log_entry(self, temp_dir):
        log_file = temp_dir / "test.log"
        handler = FileHandler(str(log_file))

        assert handler.write(command_entry()) is True

        content = log_file.read_text(encoding='utf-8')
        assert "INFO" in content
        assert "SessionStateMachine" in content
        assert "CMD: AT+CGMI" in content
        assert "PORT: /dev/ttyUSB0" in content

        handler.close()

    def test_write_multiple_entries(self, temp_dir):
        log_file = temp_dir / "test.log"
        handler = FileHandler(str(log_file))

        for i in range(10):
            handler.write(command_entry(command=f"AT+TEST{i}"))

        handler.close()

        content = log_file.read_text(encoding='utf-8')
        assert len(content.strip().split('\n')) == 10
        for i in range(10):
            assert f"AT+TEST{i}" in content

    def test_appends_to_existing_file(self, temp_dir):
        log_file = temp_dir / "test.log"
        log_file.write_text("previous session\n", encoding='utf-8')

        with FileHandler(str(log_file)) as handler:
            handler.write(command_entry())

        lines = log_file.read_text(encoding='utf-8').strip().split('\n')
        assert lines[0] == "previous session"
        assert len(lines) == 2

    def test_file_rotation(self, temp_dir):
        """Test automatic file rotation when size limit exceeded."""
        log_file = temp_dir / "test.log"
        # ~1KB limit
        handler = FileHandler(str(log_file), max_size_mb=0.001, backup_count=3)

        for _ in range(10):
            handler.write(command_entry(size=500))

        handler.close()

        assert Path(f"{log_file}.1").exists()
        assert log_file.exists()

    def test_backup_count_limit(self, temp_dir):
        log_file = temp_dir / "test.log"
        handler = FileHandler(str(log_file), max_size_mb=0.001, backup_count=2)

        for _ in range(20):
            handler.write(command_entry(size=500))

        handler.close()

        assert Path(f"{log_file}.1").exists()
        assert Path(f"{log_file}.2").exists()
        assert not Path(f"{log_file}.3").exists()

    def test_rotation_without_backups(self, temp_dir):
        log_file = temp_dir / "test.log"
        handler = FileHandler(str(log_file), max_size_mb=0.001, backup_count=0)

        for _ in range(5):
            handler.write(command_entry(size=500))

        handler.close()

        assert not Path(f"{log_file}.1").exists()
        assert log_file.stat().st_size < 2048

    def test_flush(self, temp_dir):
        log_file = temp_dir / "test.log"
        handler = FileHandler(str(log_file))

        handler.write(command_entry())
        handler.flush()

        assert len(log_file.read_text(encoding='utf-8')) > 0

        handler.close()

    def test_close_idempotent(self, temp_dir):
        handler = FileHandler(str(temp_dir / "test.log"))

        handler.close()
        handler.close()
        handler.close()

    def test_context_manager(self, temp_dir):
        log_file = temp_dir / "test.log"

        with FileHandler(str(log_file)) as handler:
            handler.write(command_entry())

        assert "Sending command" in log_file.read_text(encoding='utf-8')

    def test_write_after_close(self, temp_dir):
        handler = FileHandler(str(temp_dir / "test.log"))
        handler.close()

        assert handler.write(command_entry()) is False

    def test_thread_safety(self, temp_dir):
        log_file = temp_dir / "test.log"
        handler = FileHandler(str(log_file))

        def write_entries():
            for i in range(10):
                handler.write(command_entry(command=f"AT+T{i}"))

        threads = [threading.Thread(target=write_entries) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        handler.close()

        lines = log_file.read_text(encoding='utf-8').strip().split('\n')
        assert len(lines) == 50
