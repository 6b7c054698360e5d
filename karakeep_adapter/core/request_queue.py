"""
Request Queue and Rate Limiter

Serializes every outbound call made through one facade into a single paced
stream. Entries are serviced strictly in arrival order by one drain task;
spacing is measured from the completion of the previously issued request.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

from karakeep_adapter.core.data_models import QueuedRequest, QueueStatus
from karakeep_adapter.utils.error_handler import QueueTimeoutError


class RequestQueue:
    """
    Single-lane FIFO queue with minimum inter-request spacing.

    The queue owns its pending entries, its drain task and the timestamp of
    the last issued request, so independent clients can each hold their own
    queue.
    """

    def __init__(
        self,
        executor: Callable[[QueuedRequest], Awaitable[Any]],
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        name: str = "karakeep",
    ):
        """
        Initialize the queue.

        Args:
            executor: Coroutine function that services one entry
            clock: Monotonic clock in seconds (arrival times use the same clock)
            sleep: Coroutine used to wait out the pacing interval
            name: Name for logging purposes
        """
        self._executor = executor
        self.clock = clock
        self._sleep = sleep
        self.name = name

        self._entries: Deque[QueuedRequest] = deque()
        self._processing = False
        self._drain_task: Optional[asyncio.Task] = None
        self.last_request_time: Optional[float] = None

        # Statistics
        self.total_processed = 0
        self.total_expired = 0
        self.total_wait_time = 0.0

        self.logger = logging.getLogger(f"{__name__}.{name}")

    @property
    def queue_length(self) -> int:
        """Number of entries waiting to be serviced."""
        return len(self._entries)

    @property
    def is_processing(self) -> bool:
        """True while a drain task is active."""
        return self._processing

    def enqueue(self, entry: QueuedRequest) -> None:
        """
        Append an entry and start draining if the queue is idle.

        Enqueueing while a drain task is active only appends; it never starts
        a second consumer.

        Args:
            entry: Entry to service
        """
        self._entries.append(entry)
        self.logger.debug(
            f"Queued {entry.options.method} {entry.options.endpoint} "
            f"(queue length {len(self._entries)})"
        )

        if not self._processing:
            self._processing = True
            self._drain_task = asyncio.ensure_future(self._drain())

    async def _drain(self) -> None:
        """Service entries in FIFO order until the queue is empty."""
        try:
            while self._entries:
                entry = self._entries.popleft()
                try:
                    await self._service(entry)
                except asyncio.CancelledError:
                    # the entry already left the queue; release its caller
                    entry.future.cancel()
                    raise
        finally:
            if self._drain_task is None or self._drain_task is asyncio.current_task():
                self._processing = False
                self._drain_task = None

    async def _service(self, entry: QueuedRequest) -> None:
        config = entry.rate_limit_config

        waited = self.clock() - entry.timestamp
        if waited > config.queue_timeout:
            self.total_expired += 1
            self.logger.warning(
                f"{entry.options.method} {entry.options.endpoint} timed out in "
                f"queue after {waited:.2f}s"
            )
            entry.reject(
                QueueTimeoutError(
                    "Request timed out in queue",
                    details={
                        "waited": waited,
                        "queueTimeout": config.queue_timeout,
                        "endpoint": entry.options.endpoint,
                    },
                )
            )
            return

        await self._wait_for_slot(config.min_interval)

        try:
            result = await self._executor(entry)
        except Exception as e:
            self.last_request_time = self.clock()
            self.total_processed += 1
            entry.reject(e)
        else:
            self.last_request_time = self.clock()
            self.total_processed += 1
            entry.resolve(result)

    async def _wait_for_slot(self, min_interval: float) -> None:
        if self.last_request_time is None:
            return

        elapsed = self.clock() - self.last_request_time
        if elapsed < min_interval:
            wait_time = min_interval - elapsed
            self.logger.debug(f"Rate limit for {self.name}, waiting {wait_time:.3f}s")
            self.total_wait_time += wait_time
            await self._sleep(wait_time)

    def get_status(self) -> QueueStatus:
        """
        Get current queue status.

        Returns:
            QueueStatus snapshot
        """
        return QueueStatus(
            queue_length=self.queue_length,
            is_processing=self.is_processing,
            total_processed=self.total_processed,
            total_expired=self.total_expired,
        )

    def get_statistics(self) -> Dict[str, Any]:
        """Counters for monitoring, including cumulative pacing delay."""
        return {
            "name": self.name,
            "total_processed": self.total_processed,
            "total_expired": self.total_expired,
            "total_wait_time": self.total_wait_time,
        }

    def clear(self) -> None:
        """
        Drop all pending entries and stop the drain task.

        Pending futures are left unsettled. The entry being serviced, if any,
        is interrupted and its future cancelled. This is a destructive aid
        for test isolation and must not be used in production code paths.
        """
        dropped = len(self._entries)
        self._entries.clear()

        task = self._drain_task
        self._drain_task = None
        self._processing = False
        if task is not None and not task.done():
            task.cancel()

        self.logger.info(f"Request queue {self.name} cleared ({dropped} dropped)")
