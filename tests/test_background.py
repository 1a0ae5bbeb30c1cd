"""Tests for supervised background tasks."""

import asyncio
import logging

import pytest

from swr_fetch import BackgroundTasks


class TestBackgroundTasks:
    """Tests for BackgroundTasks."""

    async def test_tracks_until_done(self) -> None:
        tasks = BackgroundTasks()
        release = asyncio.Event()

        tasks.spawn(release.wait())
        assert len(tasks) == 1

        release.set()
        await tasks.drain()
        assert len(tasks) == 0

    async def test_drain_waits_for_nested_spawns(self) -> None:
        tasks = BackgroundTasks()
        done: list[str] = []

        async def inner() -> None:
            await asyncio.sleep(0.01)
            done.append("inner")

        async def outer() -> None:
            await asyncio.sleep(0.01)
            tasks.spawn(inner())
            done.append("outer")

        tasks.spawn(outer())
        await tasks.drain()
        assert done == ["outer", "inner"]

    async def test_failures_are_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        tasks = BackgroundTasks()

        async def boom() -> None:
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR, logger="swr_fetch.background"):
            tasks.spawn(boom(), name="boom-task")
            await tasks.drain()

        assert "boom-task failed" in caplog.text

    async def test_keep_alive_receives_task(self) -> None:
        kept: list[asyncio.Task] = []
        tasks = BackgroundTasks(keep_alive=kept.append)

        task = tasks.spawn(asyncio.sleep(0))
        assert kept == [task]
        await tasks.drain()

    async def test_closed_rejects_new_work(self) -> None:
        tasks = BackgroundTasks()
        await tasks.aclose()

        with pytest.raises(RuntimeError, match="closed"):
            tasks.spawn(asyncio.sleep(0))
