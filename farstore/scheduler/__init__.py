"""同步任务调度模块

- TaskScheduler: 调度器核心，基于 APScheduler 按 cron / interval 触发任务
- TaskRegistry: 任务注册中心
- TaskRunner: 任务执行器（超时、防重叠、执行历史）
- BaseTask: 任务抽象基类

使用方式：
    from farstore.scheduler import task_registry, task_scheduler
    from farstore.scheduler.tasks import build_sync_tasks

    for task in build_sync_tasks(sync_service):
        task_registry.register(task)

    # 先同步执行一轮启动任务，再开始按计划触发
    await task_scheduler.start(bootstrap=True)
"""

from farstore.scheduler.registry import TaskRegistry, task_registry
from farstore.scheduler.runner import TaskRunner
from farstore.scheduler.scheduler import TaskScheduler, task_scheduler

__all__ = [
    "TaskRegistry",
    "TaskRunner",
    "TaskScheduler",
    "task_registry",
    "task_scheduler",
]
