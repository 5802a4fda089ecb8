"""
Infrastructure layer: single-shot timers for spray completion.
"""
import asyncio
import logging
from typing import Callable, Dict, Protocol

logger = logging.getLogger(__name__)


class TimerService(Protocol):
    """Schedules at most one pending callback per key."""

    def schedule(self, key: str, delay_seconds: float, callback: Callable[[], None]) -> None: ...

    def cancel(self, key: str) -> bool: ...


class AsyncioTimerService:
    """
    Timer service backed by ``loop.call_later`` on the running event loop.

    Scheduling under a key replaces any pending callback for it. Without a
    running loop the callback is not scheduled; the next tick completes the
    spray once it is due.
    """

    def __init__(self):
        self._handles: Dict[str, asyncio.TimerHandle] = {}

    def schedule(self, key: str, delay_seconds: float, callback: Callable[[], None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop; timer '{key}' deferred to the next tick")
            return

        self.cancel(key)

        def fire():
            self._handles.pop(key, None)
            callback()

        self._handles[key] = loop.call_later(max(0.0, delay_seconds), fire)
        logger.debug(f"Timer '{key}' scheduled in {delay_seconds:.1f}s")

    def cancel(self, key: str) -> bool:
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug(f"Timer '{key}' cancelled")
        return True

    def cancel_all(self) -> None:
        for key in list(self._handles):
            self.cancel(key)

    def pending(self) -> list[str]:
        return list(self._handles)
