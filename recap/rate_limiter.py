"""Single-flight FIFO queue that spaces out calls to the GitHub API."""

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, Tuple

DEFAULT_DELAY_MS = 1000

Task = Callable[[], Awaitable[Any]]


class RateLimiter:
    """Runs queued tasks one at a time with a fixed pause between them.

    Tasks start in submission order and only after the previous task has
    settled and ``delay_ms`` has elapsed since it did. A failing task only
    fails its own caller; the queue keeps draining.

    An in-flight task is never aborted when its caller stops waiting, so a
    hung call keeps the execution slot until it settles. Set
    ``task_timeout`` to bound every task. If the limiter itself is
    cancelled, every caller still waiting is cancelled too.
    """

    def __init__(self, delay_ms: int = DEFAULT_DELAY_MS, task_timeout: Optional[float] = None):
        """Initialize the rate limiter.

        Args:
            delay_ms: Minimum pause between the end of one task and the start of the next
            task_timeout: Optional per-task timeout in seconds (None = unlimited)
        """
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0, got {delay_ms}")
        self.delay_ms = delay_ms
        self.task_timeout = task_timeout
        self._queue: Deque[Tuple[Task, asyncio.Future]] = deque()
        self._is_processing = False
        self._last_finished: Optional[float] = None
        self._drain_task: Optional[asyncio.Task] = None

    async def execute(self, task: Task) -> Any:
        """Queue a task and wait for its result.

        Args:
            task: Zero-argument callable returning an awaitable

        Returns:
            Whatever the task returns; its exception is re-raised unchanged
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._queue.append((task, future))

        if not self._is_processing:
            self._is_processing = True
            self._drain_task = loop.create_task(self._process_queue())

        return await future

    def set_delay(self, delay_ms: int):
        """Change the pause between tasks. Negative values are ignored."""
        if delay_ms < 0:
            logging.warning(f"Ignoring negative rate limit delay: {delay_ms}ms")
            return
        self.delay_ms = delay_ms

    def queue_status(self) -> Dict[str, Any]:
        """Return the queue length and whether the queue is draining."""
        return {
            'queue_length': len(self._queue),
            'is_processing': self._is_processing,
        }

    async def _process_queue(self):
        loop = asyncio.get_running_loop()
        try:
            while self._queue:
                task, future = self._queue.popleft()
                if future.done():
                    # Caller gave up while the task was still queued
                    continue

                try:
                    await self._wait_for_slot(loop)
                except asyncio.CancelledError:
                    future.cancel()
                    raise

                # A CancelledError raised by the task ends its runner; one raised
                # by asyncio.wait means the drain loop itself was cancelled.
                runner = loop.create_task(self._run(task))
                try:
                    await asyncio.wait({runner})
                except asyncio.CancelledError:
                    runner.cancel()
                    future.cancel()
                    raise
                finally:
                    self._last_finished = loop.time()

                error = asyncio.CancelledError() if runner.cancelled() else runner.exception()
                if future.done():
                    continue
                if error is not None:
                    future.set_exception(error)
                else:
                    future.set_result(runner.result())
        finally:
            self._is_processing = False
            while self._queue:
                _, pending = self._queue.popleft()
                if not pending.done():
                    pending.cancel()

    async def _wait_for_slot(self, loop: asyncio.AbstractEventLoop):
        if self._last_finished is None:
            return
        delay = self.delay_ms / 1000
        remaining = self._last_finished + delay - loop.time()
        while remaining > 0:
            await asyncio.sleep(remaining)
            remaining = self._last_finished + delay - loop.time()

    async def _run(self, task: Task) -> Any:
        if self.task_timeout is None:
            return await task()
        return await asyncio.wait_for(task(), self.task_timeout)
