"""同步任务公共部分

把 SyncService 的一个方法包装成可调度任务：
SyncReport 转成 TaskResult，SyncError 转成失败结果并保留错误码。
"""

from collections.abc import Awaitable

from farstore.core.config import settings
from farstore.core.errors import SyncError
from farstore.core.logging import get_logger
from farstore.scheduler.tasks.base import BaseTask, TaskResult, TaskSchedule
from farstore.services.sync import SyncReport, SyncService

logger = get_logger("scheduler.tasks.sync")


class SyncTask(BaseTask):
    """调用 SyncService 的定时任务基类

    子类提供 name、description，并实现 invoke()。
    """

    def __init__(
        self,
        service: SyncService,
        schedule: TaskSchedule,
        *,
        enabled: bool | None = None,
    ):
        self.service = service
        self.schedule = schedule
        self.enabled = settings.SYNC_ENABLED if enabled is None else enabled

    def invoke(self) -> Awaitable[SyncReport]:
        raise NotImplementedError

    async def run(self) -> TaskResult:
        try:
            report = await self.invoke()
        except SyncError as e:
            logger.warning("同步任务失败", task_name=self.name, error_code=e.code, error=str(e))
            return TaskResult.failed(str(e), message=e.code, **e.data)

        data = report.to_dict()
        if report.failed:
            return TaskResult.success(
                f"完成，{len(report.failed)} 个条目失败", **data
            )
        return TaskResult.success("完成", **data)


def cron_schedule(run_on_start: bool | None) -> TaskSchedule:
    return TaskSchedule.cron(
        settings.SYNC_CRON_EXPRESSION,
        run_on_start=settings.SYNC_RUN_ON_START if run_on_start is None else run_on_start,
    )


def interval_schedule(run_on_start: bool | None) -> TaskSchedule:
    return TaskSchedule.every(
        settings.METRICS_REFRESH_INTERVAL_SECONDS,
        run_on_start=settings.SYNC_RUN_ON_START if run_on_start is None else run_on_start,
    )

