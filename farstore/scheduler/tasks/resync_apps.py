"""重同步任务"""

from farstore.scheduler.tasks.base import TaskSchedule
from farstore.scheduler.tasks.sync import SyncTask, cron_schedule
from farstore.services.sync import SyncService


class ResyncAppsTask(SyncTask):
    """按 last_check_attempt 升序重新拉取一批已登记 App 的 manifest"""

    name = "resync_apps"
    description = "重同步最久未检查的 App"

    def __init__(
        self,
        service: SyncService,
        schedule: TaskSchedule | None = None,
        run_on_start: bool | None = None,
    ):
        super().__init__(service, schedule or cron_schedule(run_on_start))

    def invoke(self):
        return self.service.resync_stale_apps()
