"""Request deduplication - collapse identical concurrent fetches into one.

Calls for the same key inside the dedup window share one in-flight task and
observe the same outcome, success or failure. The window only governs
simultaneous-call collapsing; data freshness is the cache's job.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class InFlightRequest:
    """A shared in-flight fetch."""
    key: str
    task: "asyncio.Future[Any]"
    created_at: float  # Deduplicator clock time


class RequestDeduplicator:
    """Per-key in-flight request sharing on a single event loop."""

    def __init__(
        self,
        window_seconds: float = 2.0,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the deduplicator.

        Args:
            window_seconds: How long a started request is shared with new callers
            enabled: When False every call invokes `produce` directly
            clock: Monotonic clock (overridable for testing)
        """
        self.window_seconds = window_seconds
        self.enabled = enabled and window_seconds > 0
        self._clock = clock
        self._in_flight: Dict[str, InFlightRequest] = {}

    def __len__(self) -> int:
        return len(self._in_flight)

    def in_flight(self, key: str) -> Optional[InFlightRequest]:
        """Live in-flight entry for `key`, pruning it if the window has elapsed."""
        entry = self._in_flight.get(key)
        if entry is None:
            return None
        if self._clock() - entry.created_at >= self.window_seconds:
            self._prune(key, entry)
            return None
        return entry

    async def dedupe(self, key: str, produce: Callable[[], Awaitable[Any]]) -> Any:
        """
        Run `produce` once per key per window and share its outcome.

        Args:
            key: Request identity
            produce: Zero-argument coroutine function performing the fetch

        Returns:
            The shared result

        Raises:
            Whatever `produce` raised, to every caller sharing the request
        """
        if not self.enabled:
            return await produce()

        entry = self.in_flight(key)
        if entry is not None:
            logger.debug("Joining in-flight request for %s", key)
            # Shield so one cancelled caller does not cancel the shared fetch
            return await asyncio.shield(entry.task)

        loop = asyncio.get_running_loop()
        task = loop.create_task(produce())
        entry = InFlightRequest(key=key, task=task, created_at=self._clock())
        self._in_flight[key] = entry
        task.add_done_callback(self._consume_exception)
        loop.call_later(self.window_seconds, self._prune, key, entry)
        return await asyncio.shield(task)

    def _prune(self, key: str, entry: InFlightRequest) -> None:
        if self._in_flight.get(key) is entry:
            del self._in_flight[key]

    @staticmethod
    def _consume_exception(task: "asyncio.Future[Any]") -> None:
        # Callers receive the exception through their own await
        if not task.cancelled():
            task.exception()
