"""Fire-and-forget task runner.

Side effects that must not delay or fail a response (the album scan counter)
are submitted here. Each coroutine runs as its own ``asyncio`` task; the
runner keeps a strong reference until it finishes and logs its failure, if
any, from a done-callback. Nothing is ever re-raised to the submitter.

On shutdown the application drains pending tasks with :meth:`shutdown`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from app.core.logging import get_request_id

logger = logging.getLogger(__name__)


class BackgroundTaskRunner:
    """Track and supervise detached coroutines."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def submit(self, factory: Callable[[], Awaitable[Any]], *, name: str) -> asyncio.Task[Any]:
        """Schedule ``factory()`` on the running loop and return its task.

        Must be called from inside a running event loop.
        """
        task = asyncio.create_task(self._run(factory), name=name)
        self._tasks.add(task)
        request_id = get_request_id()
        task.add_done_callback(lambda t: self._on_done(t, request_id))
        return task

    @staticmethod
    async def _run(factory: Callable[[], Awaitable[Any]]) -> Any:
        return await factory()

    def _on_done(self, task: asyncio.Task[Any], request_id: str | None) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(
                "background_task.cancelled",
                extra={"task_name": task.get_name(), "request_id": request_id},
            )
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "background_task.failed",
                extra={
                    "task_name": task.get_name(),
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                    "request_id": request_id,
                },
            )

    def pending_count(self) -> int:
        return len(self._tasks)

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Wait for pending tasks, cancelling whatever is still running after ``timeout``."""

        if not self._tasks:
            return
        pending = list(self._tasks)
        logger.info("background_task.draining", extra={"pending": len(pending)})
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
