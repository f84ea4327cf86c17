"""Outgoing command queue.

PendingCommand is created on enqueue and consumed exactly once when the
state machine transmits it.
"""

from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, List, Optional
import threading

# Stream-cancellation command, transmitted exactly as typed
CANCEL_COMMAND = "c"


@dataclass(frozen=True)
class PendingCommand:
    """Command waiting to be transmitted.

    Attributes:
        intention: Caller tag correlating the command with its response
        command: Command text as enqueued (not yet normalized)
    """
    intention: Any
    command: str

    def normalized(self) -> str:
        """Text that goes on the wire.

        Trimmed, then upper-cased unless it is exactly the cancel command.

        Example:
            >>> PendingCommand("COMMAND", " at+cgmi ").normalized()
            'AT+CGMI'
            >>> PendingCommand("COMMAND", "c").normalized()
            'c'
        """
        text = self.command.strip()
        if text == CANCEL_COMMAND:
            return text
        return text.upper()


class CommandQueue:
    """Unbounded FIFO of PendingCommand, safe to share between threads."""

    def __init__(self):
        self._items: Deque[PendingCommand] = deque()
        self._lock = threading.Lock()

    def enqueue(self, command: PendingCommand) -> None:
        with self._lock:
            self._items.append(command)

    def dequeue(self) -> Optional[PendingCommand]:
        """Remove and return the head command, or None when empty."""
        with self._lock:
            if not self._items:
                return None
            return self._items.popleft()

    def clear(self) -> int:
        """Drop all pending commands.

        Returns:
            Number of commands dropped
        """
        with self._lock:
            count = len(self._items)
            self._items.clear()
            return count

    def snapshot(self) -> List[PendingCommand]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __bool__(self) -> bool:
        return len(self) > 0

    def __repr__(self) -> str:
        return f"CommandQueue(pending={len(self)})"
