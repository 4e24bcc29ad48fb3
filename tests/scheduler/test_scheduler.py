"""TaskScheduler 与同步任务测试"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from farstore.core.errors import LedgerUnavailable
from farstore.scheduler import TaskRegistry, TaskRunner, TaskScheduler
from farstore.scheduler.tasks import (
    DiscoverAppsTask,
    RefreshMetricsTask,
    ReloadApiKeysTask,
    ResyncAppsTask,
    build_sync_tasks,
)
from farstore.scheduler.tasks.base import ScheduleType, TaskResultStatus, TaskSchedule
from farstore.services.sync import SyncReport


def make_sync_service() -> MagicMock:
    service = MagicMock()
    service.discover_new_apps = AsyncMock(return_value=SyncReport(task="discover_apps", succeeded=2))
    service.resync_stale_apps = AsyncMock(return_value=SyncReport(task="resync_apps"))
    service.refresh_derived_metrics = AsyncMock(return_value=SyncReport(task="refresh_metrics"))
    service.reload_api_keys = AsyncMock(return_value=SyncReport(task="reload_api_keys"))
    return service


class TestTaskSchedule:
    def test_cron_requires_expression(self):
        with pytest.raises(ValueError):
            TaskSchedule(schedule_type=ScheduleType.CRON)

    def test_interval_requires_seconds(self):
        with pytest.raises(ValueError):
            TaskSchedule(schedule_type=ScheduleType.INTERVAL)


class TestBuildSyncTasks:
    """测试任务装配"""

    def test_default_schedules(self):
        tasks = {t.name: t for t in build_sync_tasks(make_sync_service())}

        assert list(tasks) == ["reload_api_keys", "discover_apps", "resync_apps", "refresh_metrics"]
        for name in ("reload_api_keys", "discover_apps", "resync_apps"):
            assert tasks[name].schedule.cron_expression == "* * * * *"
        assert tasks["refresh_metrics"].schedule.interval_seconds == 60
        assert all(not t.schedule.allow_concurrent for t in tasks.values())

    def test_registry_rejects_duplicates(self):
        registry = TaskRegistry()
        service = make_sync_service()
        registry.register(DiscoverAppsTask(service))
        with pytest.raises(ValueError):
            registry.register(DiscoverAppsTask(service))
        registry.register(DiscoverAppsTask(service), replace=True)
        assert len(registry) == 1


@pytest.mark.anyio
class TestSyncTasks:
    """测试同步任务结果转换"""

    async def test_report_becomes_success(self):
        service = make_sync_service()
        result = await DiscoverAppsTask(service, run_on_start=False).run()

        assert result.status == TaskResultStatus.SUCCESS
        assert result.data["succeeded"] == 2
        service.discover_new_apps.assert_awaited_once()

    async def test_sync_error_becomes_failed(self):
        service = make_sync_service()
        service.refresh_derived_metrics = AsyncMock(side_effect=LedgerUnavailable("getFrame", "timeout"))
        result = await RefreshMetricsTask(service).run()

        assert result.status == TaskResultStatus.FAILED
        assert result.message == "ledger_unavailable"
        assert result.data == {"method": "getFrame"}

    async def test_each_task_calls_its_operation(self):
        service = make_sync_service()
        await ResyncAppsTask(service).run()
        await ReloadApiKeysTask(service).run()
        service.resync_stale_apps.assert_awaited_once()
        service.reload_api_keys.assert_awaited_once()


@pytest.mark.anyio
class TestTaskScheduler:
    """测试调度器生命周期"""

    def make_scheduler(self, service) -> TaskScheduler:
        registry = TaskRegistry()
        for task in build_sync_tasks(service):
            registry.register(task)
        return TaskScheduler(registry, TaskRunner(default_timeout=5))

    async def test_bootstrap_runs_every_task_once_before_scheduling(self):
        service = make_sync_service()
        scheduler = self.make_scheduler(service)
        for task in scheduler.registry.list_all():
            task.schedule.run_on_start = True

        await scheduler.start(bootstrap=True)
        try:
            service.reload_api_keys.assert_awaited_once()
            service.discover_new_apps.assert_awaited_once()
            service.resync_stale_apps.assert_awaited_once()
            service.refresh_derived_metrics.assert_awaited_once()
            assert scheduler.is_running
            status = scheduler.get_status()
            assert status["task_count"] == 4
            assert all(t["next_run_at"] for t in status["tasks"])
        finally:
            await scheduler.stop()
        assert not scheduler.is_running

    async def test_bootstrap_failure_is_not_fatal(self):
        service = make_sync_service()
        service.discover_new_apps = AsyncMock(side_effect=LedgerUnavailable("getNumListedFrames", "down"))
        scheduler = self.make_scheduler(service)
        for task in scheduler.registry.list_all():
            task.schedule.run_on_start = True

        records = await scheduler.bootstrap()

        assert [r.status for r in records] == ["success", "failed", "success", "success"]
        assert scheduler.runner.get_state("discover_apps").fail_count == 1

    async def test_bootstrap_skips_tasks_without_run_on_start(self):
        service = make_sync_service()
        scheduler = self.make_scheduler(service)
        for task in scheduler.registry.list_all():
            task.schedule.run_on_start = False

        assert await scheduler.bootstrap() == []
        service.discover_new_apps.assert_not_awaited()

    async def test_trigger_unknown_task(self):
        scheduler = self.make_scheduler(make_sync_service())
        assert await scheduler.trigger("missing") is False

    async def test_trigger_runs_in_background(self):
        service = make_sync_service()
        scheduler = self.make_scheduler(service)
        await scheduler.start()
        try:
            assert await scheduler.trigger("resync_apps") is True
        finally:
            await scheduler.stop()
        service.resync_stale_apps.assert_awaited_once()
