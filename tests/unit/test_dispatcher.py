"""Unit tests for the background dispatcher."""

import asyncio

from structlog.testing import capture_logs

from certflow.fraud import BackgroundDispatcher


class TestBackgroundDispatcher:
    """Tests for BackgroundDispatcher."""

    async def test_submit_and_drain(self):
        dispatcher = BackgroundDispatcher()
        done: list[int] = []

        async def work(n: int):
            await asyncio.sleep(0)
            done.append(n)

        for n in range(3):
            dispatcher.submit(work(n), name=f"work:{n}")
        assert dispatcher.pending == 3

        await dispatcher.drain()

        assert sorted(done) == [0, 1, 2]
        assert dispatcher.pending == 0

    async def test_drain_waits_for_follow_up_work(self):
        dispatcher = BackgroundDispatcher()
        done: list[str] = []

        async def child():
            done.append("child")

        async def parent():
            dispatcher.submit(child())
            done.append("parent")

        dispatcher.submit(parent())
        await dispatcher.drain()

        assert done == ["parent", "child"]

    async def test_failure_is_logged_not_raised(self):
        dispatcher = BackgroundDispatcher()

        async def boom():
            raise RuntimeError("analysis exploded")

        with capture_logs() as logs:
            task = dispatcher.submit(boom(), name="verification:CF-2024-001")
            await dispatcher.drain()

        assert task.done()
        failures = [log for log in logs if log["event"] == "background_task_failed"]
        assert len(failures) == 1
        assert failures[0]["task_name"] == "verification:CF-2024-001"
        assert failures[0]["error_type"] == "RuntimeError"

    async def test_shutdown_cancels_slow_tasks(self):
        dispatcher = BackgroundDispatcher()

        task = dispatcher.submit(asyncio.sleep(10))
        await dispatcher.shutdown(timeout=0.01)

        assert task.cancelled()
        assert dispatcher.pending == 0

    async def test_rejects_work_after_shutdown(self):
        dispatcher = BackgroundDispatcher()
        await dispatcher.shutdown()

        async def work():
            return None

        coro = work()
        assert dispatcher.submit(coro) is None
        # The coroutine was closed rather than left un-awaited
        assert coro.cr_frame is None
