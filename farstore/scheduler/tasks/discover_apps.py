"""增量发现任务"""

from farstore.scheduler.tasks.base import TaskSchedule
from farstore.scheduler.tasks.sync import SyncTask, cron_schedule
from farstore.services.sync import SyncService


class DiscoverAppsTask(SyncTask):
    """从本地水位线开始同步注册表中的新条目

    遇到第一个失败的序号即中止本轮，剩余条目由下一次调度继续。
    """

    name = "discover_apps"
    description = "增量发现注册表新条目"

    def __init__(
        self,
        service: SyncService,
        schedule: TaskSchedule | None = None,
        run_on_start: bool | None = None,
    ):
        super().__init__(service, schedule or cron_schedule(run_on_start))

    def invoke(self):
        return self.service.discover_new_apps()
