"""
Registry of cancellable background tasks keyed by message id.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Set

logger = logging.getLogger(__name__)


class TaskRegistry:
    """Owns the deferred tasks of one conversation so they can be purged per message."""

    def __init__(self):
        self._tasks: Dict[str, Set[asyncio.Task]] = {}

    def schedule(self, key: str, delay: float, callback: Callable[[], None]) -> asyncio.Task:
        """Run callback once after delay seconds unless cancelled first."""
        async def _fire():
            await asyncio.sleep(delay)
            callback()

        return self.track(key, _fire())

    def track(self, key: str, coro: Awaitable) -> asyncio.Task:
        """Register a coroutine as a task bound to key."""
        task = asyncio.ensure_future(coro)
        self._tasks.setdefault(key, set()).add(task)
        task.add_done_callback(lambda t: self._discard(key, t))
        return task

    def _discard(self, key: str, task: asyncio.Task):
        tasks = self._tasks.get(key)
        if tasks is None:
            return
        tasks.discard(task)
        if not tasks:
            del self._tasks[key]
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background task for %s failed", key, exc_info=task.exception())

    def cancel(self, key: str) -> int:
        """Cancel every outstanding task for key. Returns how many were cancelled."""
        tasks = self._tasks.pop(key, set())
        for task in tasks:
            task.cancel()
        return len(tasks)

    def cancel_all(self) -> int:
        return sum(self.cancel(key) for key in list(self._tasks))

    def pending(self, key: str) -> int:
        return len(self._tasks.get(key, ()))

    def __len__(self) -> int:
        return sum(len(tasks) for tasks in self._tasks.values())
