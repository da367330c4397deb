"""
Bounded task queue for running one coroutine per package.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)


class BoundedTaskQueue:
    """
    Run coroutines with at most ``concurrency`` of them in flight.

    Once a task fails, tasks that have not started yet are skipped. Tasks that
    are already running are never cancelled; ``join`` waits for all of them
    and then raises the first failure.
    """

    def __init__(self, concurrency: int):
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.concurrency = concurrency
        self._semaphore = asyncio.Semaphore(concurrency)
        self._tasks: List[asyncio.Task] = []
        self._error: Optional[BaseException] = None
        self.skipped = 0

    @property
    def failed(self) -> bool:
        return self._error is not None

    def add(self, factory: Callable[[], Awaitable[Any]]) -> asyncio.Task:
        """Schedule ``factory()`` to run once a slot is free."""
        task = asyncio.create_task(self._run(factory))
        self._tasks.append(task)
        return task

    async def _run(self, factory: Callable[[], Awaitable[Any]]) -> Any:
        async with self._semaphore:
            if self._error is not None:
                self.skipped += 1
                return None
            try:
                return await factory()
            except Exception as e:
                if self._error is None:
                    self._error = e
                raise

    async def join(self) -> List[Any]:
        """
        Wait until every scheduled task has settled.

        Returns:
            Task results in submission order (None for skipped tasks)

        Raises:
            The first exception raised by any task
        """
        tasks, self._tasks = self._tasks, []
        results = await asyncio.gather(*tasks, return_exceptions=True)
        error, self._error = self._error, None
        if error is not None:
            if self.skipped:
                logger.debug(f"Skipped {self.skipped} queued tasks after a failure")
            self.skipped = 0
            raise error
        return results
