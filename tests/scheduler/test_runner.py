"""TaskRunner 测试"""

import asyncio

import pytest

from farstore.scheduler.runner import TaskRunner
from farstore.scheduler.tasks.base import BaseTask, TaskResult, TaskSchedule


class DummyTask(BaseTask):
    name = "dummy"
    description = "测试任务"

    def __init__(self, behaviour=None, allow_concurrent: bool = False):
        self.schedule = TaskSchedule.every(60, allow_concurrent=allow_concurrent)
        self.behaviour = behaviour
        self.runs = 0

    async def run(self) -> TaskResult:
        self.runs += 1
        if self.behaviour is not None:
            return await self.behaviour()
        return TaskResult.success("完成", processed=1)


@pytest.mark.anyio
class TestTaskRunner:
    """测试任务执行"""

    async def test_success_updates_state(self):
        runner = TaskRunner()
        record = await runner.execute(DummyTask())

        assert record.status == "success"
        assert record.data == {"processed": 1}
        state = runner.get_state("dummy")
        assert state.run_count == 1
        assert state.fail_count == 0
        assert state.last_result == "success"

    async def test_exception_is_recorded_not_raised(self):
        async def boom():
            raise RuntimeError("boom")

        runner = TaskRunner()
        record = await runner.execute(DummyTask(boom))

        assert record.status == "failed"
        assert record.error == "boom"
        assert runner.get_state("dummy").fail_count == 1

    async def test_timeout(self):
        async def slow():
            await asyncio.sleep(5)
            return TaskResult.success()

        runner = TaskRunner()
        record = await runner.execute(DummyTask(slow), timeout=0.05)

        assert record.status == "failed"
        assert record.message == "执行超时"
        assert not runner.is_running("dummy")

    async def test_same_task_does_not_overlap(self):
        release = asyncio.Event()

        async def wait():
            await release.wait()
            return TaskResult.success()

        runner = TaskRunner()
        task = DummyTask(wait)
        first = asyncio.create_task(runner.execute(task))
        await asyncio.sleep(0)
        assert runner.is_running("dummy")

        second = await runner.execute(task)
        release.set()
        await first

        assert second.status == "skipped"
        assert task.runs == 1
        assert runner.get_state("dummy").run_count == 1

    async def test_history_is_newest_first_and_bounded(self):
        runner = TaskRunner(max_history=3)
        task = DummyTask()
        for _ in range(5):
            await runner.execute(task)

        history = runner.get_history("dummy", limit=10)
        assert len(history) == 3
        assert history[0].started_at >= history[-1].started_at
        assert runner.get_history("other") == []
