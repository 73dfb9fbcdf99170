"""Background task runner abstraction.

Provides a protocol for submitting detached background work, with an
in-process asyncio implementation.  Submitted coroutines are never awaited
by the request path; :meth:`InProcessTaskRunner.drain` lets shutdown (and
tests) wait for whatever is still pending.
"""

import asyncio
import uuid
from collections.abc import Coroutine
from typing import Any, Protocol

from user_api.core.logging import operational_logger


class BackgroundTaskRunner(Protocol):
    """Protocol for background task execution."""

    def submit_task(self, coro: Coroutine[Any, Any, Any]) -> str:
        """Submit an async task for background execution.

        Args:
            coro: The coroutine to execute.

        Returns:
            A job ID string for tracking.
        """
        ...

    async def drain(self) -> None:
        """Wait until every submitted task has finished."""
        ...


class InProcessTaskRunner:
    """In-process background task runner using asyncio.

    Tasks run in the same process as the API server using
    ``asyncio.create_task()``.  Strong references are held until each task
    finishes so the event loop cannot garbage-collect them mid-flight.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[Any]] = {}

    @property
    def pending(self) -> int:
        """Number of tasks that have not finished yet."""
        return len(self._tasks)

    def submit_task(self, coro: Coroutine[Any, Any, Any]) -> str:
        """Submit an async task for background execution.

        Args:
            coro: The coroutine to execute.

        Returns:
            A job ID string for tracking.
        """
        job_id = str(uuid.uuid4())

        async def _run() -> None:
            try:
                await coro
            except Exception:
                operational_logger.exception(f"Background task {job_id} failed")

        task = asyncio.create_task(_run())
        self._tasks[job_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(job_id, None))
        return job_id

    async def drain(self) -> None:
        """Wait until every submitted task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)
