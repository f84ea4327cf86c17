"""Background thread that advances a session at a fixed interval."""

from typing import Callable, Optional, TYPE_CHECKING
import threading
import time

if TYPE_CHECKING:
    from src.core.link_session import LinkSession
    from src.logging.communication_logger import CommunicationLogger


class StepDriver(threading.Thread):
    """Daemon thread calling session.step() every tick_interval seconds.

    A failing step is logged and the loop keeps running, so one bad
    transport call does not stop the session.

    Example:
        >>> driver = StepDriver(session, tick_interval=0.1)
        >>> driver.start()
        >>> session.connect()
        >>> driver.wait_until(session.is_connected, timeout=5.0)
        True
        >>> driver.stop()
    """

    def __init__(self,
                 session: 'LinkSession',
                 tick_interval: float = 0.1,
                 logger: Optional['CommunicationLogger'] = None,
                 name: Optional[str] = "StepDriver"):
        """Initialize driver thread.

        Args:
            session: Session (or anything with step()) to advance
            tick_interval: Seconds between steps
            logger: Optional CommunicationLogger for step failures
            name: Thread name for debugging
        """
        super().__init__(name=name, daemon=True)
        self.session = session
        self.tick_interval = tick_interval
        self.logger = logger
        self.step_count = 0
        self.last_exception: Optional[Exception] = None
        self._stop_event = threading.Event()

    def run(self):
        while not self._stop_event.is_set():
            self.tick()
            self._stop_event.wait(self.tick_interval)

    def tick(self) -> None:
        """Advance the session once, logging instead of raising."""
        try:
            self.session.step()
            self.step_count += 1
        except Exception as e:
            self.last_exception = e
            if self.logger:
                self.logger.log_error(
                    source="StepDriver",
                    error=f"Step failed: {e}",
                    details={"exception_type": type(e).__name__}
                )

    def stop(self, timeout: float = 2.0) -> None:
        """Request the loop to end and wait for the thread."""
        self._stop_event.set()
        if self.is_alive() and threading.current_thread() is not self:
            self.join(timeout=timeout)

    def is_running(self) -> bool:
        return self.is_alive() and not self._stop_event.is_set()

    @staticmethod
    def wait_until(predicate: Callable[[], bool], timeout: float, poll_interval: float = 0.01) -> bool:
        """Poll predicate until it holds or timeout elapses.

        Returns:
            True if the predicate held before the deadline
        """
        deadline = time.monotonic() + timeout
        while True:
            if predicate():
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(poll_interval)
