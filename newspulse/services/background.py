import asyncio
from typing import Awaitable, Set
from newspulse.services.logger import logger

class BackgroundTasks:
    """
    Holds detached fire-and-forget tasks (best-effort shared-store writes).
    Callers never await these on their critical path; failures are logged here.
    ``drain()`` waits for whatever is still in flight (shutdown, tests).
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, coro: Awaitable, name: str) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Background task {task.get_name()} was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background task {task.get_name()} failed: {exc}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self):
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
