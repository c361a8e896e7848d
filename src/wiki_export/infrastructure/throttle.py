import asyncio
import time
from collections import deque
from typing import Any, Awaitable, Callable

from src.config.logger_config import logger

TaskFactory = Callable[[], Awaitable[Any]]

# 50 requests per minute
DEFAULT_MIN_INTERVAL_SECONDS = 1.2


class Throttle:
    """Single FIFO lane that spaces task start times by at least ``min_interval`` seconds.

    ``submit`` never blocks: it queues the task and hands back a future. One runner
    task drains the queue, waiting out the remaining interval before each start and
    awaiting each task before moving to the next.
    """

    def __init__(
        self,
        min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._queue: deque[tuple[TaskFactory, asyncio.Future]] = deque()
        self._last_run: float | None = None
        self._runner: asyncio.Task | None = None

    def submit(self, task: TaskFactory) -> asyncio.Future:
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._queue.append((task, future))
        if self._runner is None or self._runner.done():
            self._runner = loop.create_task(self._run())
        return future

    async def _run(self) -> None:
        while self._queue:
            task, future = self._queue.popleft()
            if future.cancelled():
                continue
            if self._last_run is not None:
                wait = max(0.0, self.min_interval - (self._clock() - self._last_run))
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_run = self._clock()
            try:
                result = await task()
            except Exception as exc:
                logger.debug("Throttled task raised {}: {}", type(exc).__name__, exc)
                if not future.cancelled():
                    future.set_exception(exc)
            else:
                if not future.cancelled():
                    future.set_result(result)
