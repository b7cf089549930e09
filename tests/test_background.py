"""Tests for the fire-and-forget background runner."""

import asyncio
import logging

import pytest

from app.core.logging import clear_request_id, set_request_id
from app.services.background import BackgroundTaskRunner


@pytest.mark.asyncio
async def test_submitted_task_runs_and_is_released() -> None:
    runner = BackgroundTaskRunner()
    done: list[int] = []

    async def work() -> None:
        done.append(1)

    task = runner.submit(work, name="work")
    assert runner.pending_count() == 1

    await task
    await asyncio.sleep(0)

    assert done == [1]
    assert runner.pending_count() == 0


@pytest.mark.asyncio
async def test_failure_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    runner = BackgroundTaskRunner()

    async def boom() -> None:
        raise RuntimeError("counter update failed")

    set_request_id("req-123")
    try:
        with caplog.at_level(logging.ERROR, logger="app.services.background"):
            runner.submit(boom, name="scan-count:42")
            await runner.shutdown()
            await asyncio.sleep(0)
    finally:
        clear_request_id()

    failures = [r for r in caplog.records if r.getMessage() == "background_task.failed"]
    assert len(failures) == 1
    assert failures[0].task_name == "scan-count:42"
    assert failures[0].error_type == "RuntimeError"
    assert failures[0].request_id == "req-123"


@pytest.mark.asyncio
async def test_shutdown_cancels_tasks_that_outlive_timeout() -> None:
    runner = BackgroundTaskRunner()

    async def slow() -> None:
        await asyncio.sleep(10)

    task = runner.submit(slow, name="slow")
    await runner.shutdown(timeout=0.01)

    assert task.cancelled()


@pytest.mark.asyncio
async def test_shutdown_without_tasks_is_a_noop() -> None:
    await BackgroundTaskRunner().shutdown()
