"""Background dispatcher for fire-and-forget work on the verification path."""

import asyncio
from collections.abc import Coroutine
from typing import Any

from certflow.core.logging import get_logger

logger = get_logger(__name__)


class BackgroundDispatcher:
    """Runs coroutines as background tasks the caller never awaits.

    Tasks are referenced until they finish so the event loop cannot
    garbage-collect them mid-flight. An exception escaping a task is
    logged, never re-raised.

    Example:
        dispatcher = BackgroundDispatcher()
        dispatcher.submit(analyzer.analyze(credential_id, address), name="analyze")
        ...
        await dispatcher.shutdown()
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    @property
    def pending(self) -> int:
        """Number of tasks not yet finished."""
        return len(self._tasks)

    def submit(
        self, coro: Coroutine[Any, Any, Any], *, name: str | None = None
    ) -> asyncio.Task[Any] | None:
        """Schedule a coroutine on the running loop.

        Returns:
            The task, or None if the dispatcher is shut down
        """
        if self._closed:
            coro.close()
            logger.warning("background_task_rejected", task_name=name, reason="dispatcher_closed")
            return None

        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "background_task_failed",
                task_name=task.get_name(),
                error_type=type(exc).__name__,
                error=str(exc),
                exc_info=exc,
            )

    async def drain(self) -> None:
        """Wait until every submitted task, including ones submitted meanwhile, finishes."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: float | None = 5.0) -> None:
        """Stop accepting work, wait briefly for running tasks, then cancel the rest."""
        self._closed = True
        if not self._tasks:
            return

        tasks = list(self._tasks)
        _, still_running = await asyncio.wait(tasks, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)

        logger.info(
            "background_dispatcher_stopped",
            completed=len(tasks) - len(still_running),
            cancelled=len(still_running),
        )
