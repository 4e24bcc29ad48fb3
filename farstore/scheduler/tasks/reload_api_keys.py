"""API Key 缓存重载任务"""

from farstore.scheduler.tasks.base import TaskSchedule
from farstore.scheduler.tasks.sync import SyncTask, cron_schedule
from farstore.services.sync import SyncService


class ReloadApiKeysTask(SyncTask):
    """从 app_api_key 表重建 API Key -> 域名 映射"""

    name = "reload_api_keys"
    description = "重载 API Key 缓存"

    def __init__(
        self,
        service: SyncService,
        schedule: TaskSchedule | None = None,
        run_on_start: bool | None = None,
    ):
        super().__init__(service, schedule or cron_schedule(run_on_start))

    def invoke(self):
        return self.service.reload_api_keys()
