"""Synchronous publish/subscribe helper shared by the framer and the session.

Each emitter has a fixed set of event kinds. Callbacks are stored per kind
and dispatched synchronously in registration order.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from src.logging.communication_logger import CommunicationLogger


class EventEmitter:
    """Ordered subscriber lists keyed by event kind.

    Example:
        >>> emitter = EventEmitter(["line"], source="ResponseFramer")
        >>> emitter.subscribe("line", print)
        >>> emitter.emit("line", "OK")
        OK
    """

    def __init__(self,
                 kinds: Iterable[str],
                 source: str,
                 logger: Optional['CommunicationLogger'] = None):
        """Initialize emitter.

        Args:
            kinds: Event kinds this emitter accepts
            source: Component name used when logging callback failures
            logger: Optional CommunicationLogger for callback failures
        """
        self.source = source
        self.logger = logger
        self._listeners: Dict[str, List[Callable[[Any], None]]] = {kind: [] for kind in kinds}

    def subscribe(self, kind: str, callback: Callable[[Any], None]) -> None:
        """Register callback for an event kind.

        Raises:
            KeyError: Unknown event kind
        """
        if kind not in self._listeners:
            raise KeyError(f"Unknown event kind '{kind}' for {self.source}")
        self._listeners[kind].append(callback)

    def unsubscribe(self, kind: str, callback: Callable[[Any], None]) -> None:
        """Remove a previously registered callback (no-op if absent)."""
        listeners = self._listeners.get(kind, [])
        if callback in listeners:
            listeners.remove(callback)

    def listener_count(self, kind: str) -> int:
        return len(self._listeners.get(kind, []))

    def emit(self, kind: str, data: Any) -> None:
        """Call every subscriber of `kind` with `data`, in registration order.

        A failing callback is logged and the remaining callbacks still run.
        """
        # Copy so a callback may subscribe/unsubscribe during dispatch
        for callback in list(self._listeners.get(kind, [])):
            try:
                callback(data)
            except Exception as e:
                if self.logger:
                    self.logger.log_error(
                        source=self.source,
                        error=f"Error in {kind} callback: {e}",
                        details={"error_type": type(e).__name__}
                    )
