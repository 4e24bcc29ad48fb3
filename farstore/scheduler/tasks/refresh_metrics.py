"""链上指标刷新任务"""

from farstore.scheduler.tasks.base import TaskSchedule
from farstore.scheduler.tasks.sync import SyncTask, interval_schedule
from farstore.services.sync import SyncService


class RefreshMetricsTask(SyncTask):
    """重算 liquidity / funding 并整体替换指标缓存"""

    name = "refresh_metrics"
    description = "刷新链上衍生指标"

    def __init__(
        self,
        service: SyncService,
        schedule: TaskSchedule | None = None,
        run_on_start: bool | None = None,
    ):
        super().__init__(service, schedule or interval_schedule(run_on_start))

    def invoke(self):
        return self.service.refresh_derived_metrics()
