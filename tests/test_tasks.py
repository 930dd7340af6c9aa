"""Tests for background task tracking."""

import asyncio

import pytest

from calendar_watch.api.tasks import active_task_count, drain_tasks, schedule_task


class TestScheduleTask:
    """Tests for schedule_task and drain_tasks."""

    @pytest.mark.asyncio
    async def test_tracks_until_done(self):
        """Test tasks are counted while running and forgotten afterwards."""
        release = asyncio.Event()

        async def work():
            await release.wait()

        task = schedule_task(work(), name="push-test")
        assert active_task_count() == 1

        release.set()
        await task
        await asyncio.sleep(0)

        assert active_task_count() == 0

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, caplog):
        """Test a failing task is logged rather than lost."""

        async def boom():
            raise ValueError("bad push")

        task = schedule_task(boom(), name="push-fail")
        with pytest.raises(ValueError):
            await task
        await asyncio.sleep(0)

        assert "push-fail failed" in caplog.text
        assert active_task_count() == 0

    @pytest.mark.asyncio
    async def test_drain_cancels_stragglers(self):
        """Test drain waits up to the timeout and then cancels."""

        async def forever():
            await asyncio.sleep(3600)

        task = schedule_task(forever(), name="push-slow")

        await drain_tasks(timeout_seconds=0.01)

        assert task.cancelled()
