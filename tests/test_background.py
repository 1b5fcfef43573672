"""Tests for detached background tasks."""

import asyncio

import pytest

from dynalink import background


@pytest.mark.asyncio
async def test_spawned_task_runs_without_being_awaited() -> None:
    done = asyncio.Event()

    async def work() -> None:
        done.set()

    background.spawn(work(), name="work")
    assert background.pending_count() == 1
    await background.drain()
    assert done.is_set()
    assert background.pending_count() == 0


@pytest.mark.asyncio
async def test_failed_task_is_absorbed() -> None:
    async def boom() -> None:
        raise RuntimeError("boom")

    task = background.spawn(boom(), name="boom")
    await background.drain()
    assert isinstance(task.exception(), RuntimeError)
    assert background.pending_count() == 0


@pytest.mark.asyncio
async def test_drain_cancels_tasks_past_timeout() -> None:
    task = background.spawn(asyncio.sleep(10), name="slow")
    await background.drain(timeout=0.01)
    assert task.cancelled()
    assert background.pending_count() == 0
