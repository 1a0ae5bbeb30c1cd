"""Supervised background tasks.

Detached work (the refresh kicked off when stale data is served) must not be
garbage collected mid-flight or fail silently. Tasks spawned here are held
until they finish, their exceptions are logged, and each one is handed to an
optional ``keep_alive`` hook so hosts that tear down work at the end of a
request (``waitUntil``-style runtimes) can extend its lifetime.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

KeepAlive = Callable[[Awaitable[Any]], object]


class BackgroundTasks:
    """Keeps references to detached tasks until they complete."""

    def __init__(self, keep_alive: KeepAlive | None = None) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._keep_alive = keep_alive
        self._closed = False

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(
        self, coro: Coroutine[Any, Any, T], *, name: str | None = None
    ) -> asyncio.Task[T]:
        """Schedule ``coro`` and track it until it is done."""
        if self._closed:
            coro.close()
            raise RuntimeError("BackgroundTasks is closed")
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        if self._keep_alive is not None:
            self._keep_alive(task)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task %s failed", task.get_name(), exc_info=exc
            )

    async def drain(self) -> None:
        """Wait until every task spawned so far (and any they spawn) is done."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def aclose(self) -> None:
        """Refuse new work and wait for outstanding tasks."""
        self._closed = True
        await self.drain()
