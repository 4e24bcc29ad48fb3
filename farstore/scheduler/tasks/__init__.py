"""同步任务实现

- ReloadApiKeysTask: 重建 API Key 缓存
- DiscoverAppsTask: 增量发现注册表新条目
- ResyncAppsTask: 重同步最久未检查的 App
- RefreshMetricsTask: 刷新链上衍生指标
"""

from farstore.scheduler.tasks.base import BaseTask
from farstore.scheduler.tasks.discover_apps import DiscoverAppsTask
from farstore.scheduler.tasks.refresh_metrics import RefreshMetricsTask
from farstore.scheduler.tasks.reload_api_keys import ReloadApiKeysTask
from farstore.scheduler.tasks.resync_apps import ResyncAppsTask
from farstore.services.sync import SyncService


def build_sync_tasks(service: SyncService) -> list[BaseTask]:
    """按启动执行顺序创建全部同步任务

    API Key 缓存最先加载，读路径的鉴权在 bootstrap 结束前就可用。
    """
    return [
        ReloadApiKeysTask(service),
        DiscoverAppsTask(service),
        ResyncAppsTask(service),
        RefreshMetricsTask(service),
    ]


__all__ = [
    "DiscoverAppsTask",
    "RefreshMetricsTask",
    "ReloadApiKeysTask",
    "ResyncAppsTask",
    "build_sync_tasks",
]
