"""Unit tests for PendingCommand and CommandQueue."""

import threading

import pytest

from src.core.command_queue import CommandQueue, PendingCommand, CANCEL_COMMAND


class TestPendingCommand:
    """Test command normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("at", "AT"),
        ("  at+cgmi  ", "AT+CGMI"),
        ("connect", "CONNECT"),
        ("c", "c"),
        ("  c ", "c"),
        ("C", "C"),
        ("cc", "CC"),
    ])
    def test_normalized(self, raw, expected):
        assert PendingCommand("COMMAND", raw).normalized() == expected

    def test_cancel_constant(self):
        assert CANCEL_COMMAND == "c"

    def test_immutable(self):
        command = PendingCommand("COMMAND", "at")
        with pytest.raises(AttributeError):
            command.command = "ati"


class TestCommandQueue:
    """Test FIFO behaviour."""

    def test_empty(self):
        queue = CommandQueue()

        assert len(queue) == 0
        assert not queue
        assert queue.dequeue() is None

    def test_fifo(self):
        queue = CommandQueue()
        first = PendingCommand("COMMAND", "first")
        second = PendingCommand("COMMAND", "second")

        queue.enqueue(first)
        queue.enqueue(second)

        assert len(queue) == 2
        assert queue.dequeue() is first
        assert queue.dequeue() is second
        assert queue.dequeue() is None

    def test_snapshot_does_not_consume(self):
        queue = CommandQueue()
        queue.enqueue(PendingCommand("COMMAND", "at"))

        assert queue.snapshot() == [PendingCommand("COMMAND", "at")]
        assert len(queue) == 1

    def test_clear_returns_count(self):
        queue = CommandQueue()
        for text in ("a", "b", "c"):
            queue.enqueue(PendingCommand("COMMAND", text))

        assert queue.clear() == 3
        assert len(queue) == 0

    def test_each_command_dequeued_once(self):
        """Concurrent consumers never receive the same command twice."""
        queue = CommandQueue()
        for i in range(500):
            queue.enqueue(PendingCommand("COMMAND", str(i)))

        taken = []
        taken_lock = threading.Lock()

        def consume():
            while True:
                item = queue.dequeue()
                if item is None:
                    return
                with taken_lock:
                    taken.append(item.command)

        workers = [threading.Thread(target=consume) for _ in range(4)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        assert sorted(taken, key=int) == [str(i) for i in range(500)]

    def test_repr(self):
        queue = CommandQueue()
        queue.enqueue(PendingCommand("COMMAND", "at"))
        assert repr(queue) == "CommandQueue(pending=1)"
