"""Off-thread timeline projection with supersede-on-submit semantics.

Each submitted ProjectionRequest gets exactly one reply: a TimelineResult or a
TimelineError. Submitting a new request cancels the token of the previous one;
the superseded projection stops at the next day boundary and replies with a
cancelled TimelineError. Only the newest request's reply is authoritative.
"""

import asyncio
import itertools
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

from ..data.models import GlobalState, ProjectConfig
from ..engine.timeline import Timeline, project_timeline
from ..errors import ProjectionCancelled

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe flag set when a projection is superseded."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True)
class ProjectionRequest:
    """Request message for the timeline worker."""
    max_token_amount: float
    config: Optional[ProjectConfig]
    global_state: Optional[GlobalState] = None
    start_date: Optional[Union[date, str]] = None


@dataclass(frozen=True)
class TimelineResult:
    """Success reply carrying the projected timeline."""
    request_id: int
    rows: Timeline = field(default_factory=list)


@dataclass(frozen=True)
class TimelineError:
    """Error reply carrying a message."""
    request_id: int
    message: str
    cancelled: bool = False


ProjectionReply = Union[TimelineResult, TimelineError]


class TimelineWorker:
    """Runs timeline projections on a separate execution context.

    Usage::

        worker = TimelineWorker()
        future = worker.submit(ProjectionRequest(10_000, config, state, "2025-12-16"))
        reply = future.result()
        worker.latest_reply()  # newest authoritative reply, if finished
    """

    def __init__(self, executor: Optional[Executor] = None):
        """
        Initialize the worker.

        Args:
            executor: Executor to run projections on (defaults to a
                single-thread pool owned by the worker)
        """
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="timeline-worker"
        )
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._current_id = 0
        self._current_token: Optional[CancellationToken] = None
        self._latest: Optional[ProjectionReply] = None

    def submit(self, request: ProjectionRequest) -> "Future[ProjectionReply]":
        """
        Submit a projection, superseding any outstanding one.

        Args:
            request: Projection request message

        Returns:
            Future resolving to exactly one reply for this request
        """
        token = CancellationToken()
        with self._lock:
            request_id = next(self._ids)
            if self._current_token is not None:
                self._current_token.cancel()
            self._current_id = request_id
            self._current_token = token

        return self._executor.submit(self._handle, request_id, request, token)

    async def request(self, request: ProjectionRequest) -> ProjectionReply:
        """Submit from asyncio code and await the reply without blocking the loop."""
        return await asyncio.wrap_future(self.submit(request))

    def latest_reply(self) -> Optional[ProjectionReply]:
        """Reply to the newest request, or None while it is still running."""
        with self._lock:
            latest = self._latest
            if latest is not None and latest.request_id == self._current_id:
                return latest
            return None

    def is_current(self, reply: ProjectionReply) -> bool:
        """Whether a reply belongs to the newest request."""
        with self._lock:
            return reply.request_id == self._current_id

    def close(self) -> None:
        """Cancel outstanding work and shut down an owned executor."""
        with self._lock:
            if self._current_token is not None:
                self._current_token.cancel()
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> "TimelineWorker":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _handle(
        self,
        request_id: int,
        request: ProjectionRequest,
        token: CancellationToken
    ) -> ProjectionReply:
        try:
            rows = project_timeline(
                request.max_token_amount,
                request.config,
                request.global_state,
                request.start_date,
                cancel_token=token
            )
            reply: ProjectionReply = TimelineResult(request_id=request_id, rows=rows)
        except ProjectionCancelled as e:
            logger.debug("Projection %d superseded: %s", request_id, e)
            return TimelineError(request_id=request_id, message=str(e), cancelled=True)
        except Exception as e:
            logger.exception("Projection %d failed", request_id)
            reply = TimelineError(request_id=request_id, message=str(e) or type(e).__name__)

        with self._lock:
            if request_id == self._current_id:
                self._latest = reply
        return reply
