"""Serialized request queue.

Every request issued by one ApiClient goes through a single FIFO queue that
is drained by one task at a time, so at most one request is in flight and
requests are dispatched in submission order. A fixed pause between
consecutive dispatches keeps bursts away from a rate-limited server.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Optional

from formacli.domain.errors import QueueClosedError

logger = logging.getLogger(__name__)

DEFAULT_INTER_REQUEST_DELAY_SECONDS = 0.1

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class QueuedRequest:
    """A pending request: the coroutine factory to run and the caller's future."""
    execute: Callable[[], Awaitable[Any]]
    future: "asyncio.Future[Any]"
    label: str = ""
    enqueued_at: float = field(default_factory=time.monotonic)


class RequestQueueService:
    """FIFO queue with a single drain loop."""

    def __init__(
        self,
        inter_request_delay: float = DEFAULT_INTER_REQUEST_DELAY_SECONDS,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initializes the queue.

        Args:
            inter_request_delay: Seconds to wait between two consecutive dispatches.
            sleep: Awaitable sleep function (injectable for tests).
        """
        self.inter_request_delay = inter_request_delay
        self._sleep = sleep
        self._queue: Deque[QueuedRequest] = deque()
        self._is_processing = False
        self._drain_task: Optional["asyncio.Task[None]"] = None
        self._current: Optional[QueuedRequest] = None
        self._closed = False
        logger.debug(f"RequestQueueService initialized: delay={inter_request_delay}s")

    @property
    def pending(self) -> int:
        """Number of requests waiting to be dispatched."""
        return len(self._queue)

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    async def submit(self, execute: Callable[[], Awaitable[Any]], label: str = "") -> Any:
        """Enqueues a request and waits for its outcome.

        Args:
            execute: Zero-argument callable returning the awaitable to run.
            label: Description used in logs (e.g., 'GET /candidates').

        Returns:
            Whatever the awaitable returns.

        Raises:
            Whatever the awaitable raises, or QueueClosedError.
        """
        if self._closed:
            raise QueueClosedError("Request queue is closed")
        loop = asyncio.get_running_loop()
        item = QueuedRequest(execute=execute, future=loop.create_future(), label=label)
        self._queue.append(item)
        logger.debug(f"Queued {label or 'request'} (pending={len(self._queue)})")

        if not self._is_processing:
            self._is_processing = True
            self._drain_task = loop.create_task(self._drain())

        return await item.future

    async def _drain(self) -> None:
        """Runs queued requests one at a time until the queue is empty."""
        dispatched = 0
        try:
            while self._queue:
                if dispatched:
                    await self._sleep(self.inter_request_delay)
                item = self._queue.popleft()
                dispatched += 1
                if item.future.done():
                    # Caller gave up while waiting; nothing to deliver to
                    logger.debug(f"Skipping abandoned {item.label or 'request'}")
                    continue
                waited_ms = (time.monotonic() - item.enqueued_at) * 1000
                logger.debug(f"Dispatching {item.label or 'request'} after {waited_ms:.0f}ms in queue")
                self._current = item
                try:
                    result = await item.execute()
                except Exception as e:
                    if not item.future.done():
                        item.future.set_exception(e)
                else:
                    if not item.future.done():
                        item.future.set_result(result)
                finally:
                    self._current = None
        finally:
            self._is_processing = False
            self._drain_task = None

    async def close(self) -> None:
        """Stops the drain loop and rejects every request still waiting."""
        self._closed = True
        task = self._drain_task
        current = self._current
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if current is not None and not current.future.done():
            current.future.set_exception(QueueClosedError(f"Client closed while {current.label or 'request'} was in flight"))
        while self._queue:
            item = self._queue.popleft()
            if not item.future.done():
                item.future.set_exception(QueueClosedError(f"Client closed before {item.label or 'request'} was sent"))
        logger.debug("RequestQueueService closed.")
