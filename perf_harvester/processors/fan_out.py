"""
Bounded concurrent execution of independent sub-fetches.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)

TaskFactory = Callable[[], Awaitable[List[Any]]]


class BoundedFanOut:
    """Runs many independent async tasks with at most `limit` in flight."""

    def __init__(self, limit: int = 2):
        """
        Initialize the scheduler.

        Args:
            limit: Maximum number of tasks running at the same time
        """
        if limit < 1:
            raise ValueError('limit must be at least 1')
        self.limit = limit
        self.in_flight = 0
        self.max_in_flight = 0
        self.failures = 0
        self.skipped = 0

    async def run(
        self,
        factories: Sequence[TaskFactory],
        labels: Optional[Sequence[str]] = None,
        on_result: Optional[Callable[[int, List[Any]], None]] = None,
        should_stop: Optional[Callable[[], bool]] = None
    ) -> List[List[Any]]:
        """
        Execute every task and collect the results.

        A failing task is logged and contributes an empty list; it never
        cancels its siblings and is not retried. An exception from
        `on_result` is logged and counted as a failure the same way.

        Args:
            factories: Zero-argument callables returning a coroutine
            labels: Optional names for log lines, parallel to factories
            on_result: Called as on_result(index, result) when a task completes
            should_stop: When it returns True, tasks that have not started yet are skipped

        Returns:
            One result list per task, in the order of `factories`
        """
        self.in_flight = 0
        self.max_in_flight = 0
        self.failures = 0
        self.skipped = 0
        semaphore = asyncio.Semaphore(self.limit)
        stop = should_stop or (lambda: False)

        async def _one(index: int, factory: TaskFactory) -> List[Any]:
            label = labels[index] if labels else f"task {index}"
            async with semaphore:
                if stop():
                    self.skipped += 1
                    return []
                self.in_flight += 1
                self.max_in_flight = max(self.max_in_flight, self.in_flight)
                try:
                    result = await factory()
                except Exception:
                    self.failures += 1
                    logger.exception(f"Sub-fetch failed for {label}; continuing without it")
                    result = []
                finally:
                    self.in_flight -= 1
            result = list(result or [])
            if on_result:
                try:
                    on_result(index, result)
                except Exception:
                    self.failures += 1
                    logger.exception(f"Result handler failed for {label}")
            return result

        return list(await asyncio.gather(*[_one(i, f) for i, f in enumerate(factories)]))
