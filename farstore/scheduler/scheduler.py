"""调度器核心

基于 APScheduler AsyncIOScheduler，为每个注册的任务创建 cron / interval job。
同一任务的 job 设置 max_instances=1，runner 再做一次防重叠检查；不同任务可以并发。
"""

import asyncio
from datetime import datetime
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from farstore.core.config import settings
from farstore.core.logging import get_logger
from farstore.scheduler.registry import TaskRegistry, task_registry
from farstore.scheduler.runner import TaskRunner
from farstore.scheduler.state.models import TaskExecutionRecord
from farstore.scheduler.tasks.base import BaseTask, ScheduleType

logger = get_logger("scheduler.core")


def _naive(dt: datetime | None) -> datetime | None:
    return dt.replace(tzinfo=None) if dt else None


class TaskScheduler:
    """任务调度器

    Example:
        scheduler = TaskScheduler(task_registry)
        await scheduler.start(bootstrap=True)
        # ... 运行中 ...
        await scheduler.stop()
    """

    def __init__(
        self,
        registry: TaskRegistry | None = None,
        runner: TaskRunner | None = None,
    ):
        self.registry = registry or task_registry
        self.runner = runner or TaskRunner(default_timeout=settings.TASK_TIMEOUT_SECONDS)
        self._scheduler: AsyncIOScheduler | None = None
        self._running = False
        self._job_ids: dict[str, str] = {}
        self._background: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._running

    async def bootstrap(self) -> list[TaskExecutionRecord]:
        """依次执行所有 run_on_start 的任务一次

        失败只记录在执行历史里，不会中断启动。
        """
        records = []
        for task in self.registry.list_enabled():
            if not task.schedule.run_on_start:
                continue
            logger.info("启动时执行任务", task_name=task.name)
            records.append(await self.runner.execute(task))

        failed = [r.task_name for r in records if r.status == "failed"]
        if failed:
            logger.warning("启动任务存在失败，等待下一次调度重试", failed_tasks=failed)
        return records

    async def start(self, *, bootstrap: bool = False) -> None:
        """启动调度器

        Args:
            bootstrap: 是否先同步执行一轮 run_on_start 任务，再开始按计划触发
        """
        if self._running:
            logger.warning("调度器已在运行")
            return

        if bootstrap:
            await self.bootstrap()

        # AsyncIOScheduler 绑定到当前运行的事件循环，每次启动重新创建
        self._scheduler = AsyncIOScheduler()
        for task in self.registry.list_all():
            self._add_task_job(task)
        self._scheduler.start()
        self._running = True

        # start() 之后 job 的 next_run_time 才确定
        for task_name in self._job_ids:
            self.runner.update_next_run(task_name, self.get_next_run(task_name))
        logger.info("任务调度器已启动", task_count=len(self._job_ids))

    async def stop(self) -> None:
        """停止调度器，等待手动触发的任务结束"""
        if not self._running:
            return

        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        self._running = False
        self._job_ids.clear()

        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        logger.info("任务调度器已停止")

    def _build_trigger(self, task: BaseTask) -> CronTrigger | IntervalTrigger:
        if task.schedule.schedule_type == ScheduleType.CRON:
            return CronTrigger.from_crontab(task.schedule.cron_expression)
        return IntervalTrigger(seconds=task.schedule.interval_seconds)

    def _add_task_job(self, task: BaseTask) -> None:
        """为任务创建调度 job，配置错误只记录日志"""
        try:
            job = self._scheduler.add_job(
                self._execute_task,
                trigger=self._build_trigger(task),
                args=[task.name],
                id=f"task_{task.name}",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        except ValueError as e:
            logger.error("添加任务调度失败", task_name=task.name, error=str(e))
            return

        self._job_ids[task.name] = job.id
        logger.info(
            "添加任务调度",
            task_name=task.name,
            schedule_type=task.schedule.schedule_type.value,
            cron_expression=task.schedule.cron_expression,
            interval_seconds=task.schedule.interval_seconds,
        )

    def _remove_task_job(self, task_name: str) -> None:
        job_id = self._job_ids.pop(task_name, None)
        if job_id and self._scheduler is not None and self._scheduler.get_job(job_id):
            self._scheduler.remove_job(job_id)
            logger.info("移除任务调度", task_name=task_name)

    async def _execute_task(self, task_name: str) -> None:
        """执行任务（由调度器触发）"""
        task = self.registry.get(task_name)
        if task is None:
            logger.warning("任务不存在", task_name=task_name)
            return
        if not task.enabled:
            logger.debug("任务已禁用，跳过", task_name=task_name)
            return

        await self.runner.execute(task)
        self.runner.update_next_run(task_name, self.get_next_run(task_name))

    async def trigger(self, task_name: str) -> bool:
        """手动触发任务（后台执行，立即返回）

        Returns:
            任务存在时返回 True
        """
        task = self.registry.get(task_name)
        if task is None:
            logger.warning("任务不存在", task_name=task_name)
            return False

        logger.info("手动触发任务", task_name=task_name)
        background = asyncio.create_task(self.runner.execute(task))
        self._background.add(background)
        background.add_done_callback(self._background.discard)
        return True

    def refresh_task(self, task_name: str) -> None:
        """任务配置变更后重新创建 job"""
        if not self._running:
            return
        task = self.registry.get(task_name)
        if task:
            self._add_task_job(task)
            self.runner.update_next_run(task_name, self.get_next_run(task_name))
        else:
            self._remove_task_job(task_name)

    def get_next_run(self, task_name: str) -> datetime | None:
        job_id = self._job_ids.get(task_name)
        if not job_id or self._scheduler is None:
            return None
        job = self._scheduler.get_job(job_id)
        return _naive(job.next_run_time) if job else None

    def describe_task(self, task: BaseTask) -> dict[str, Any]:
        """单个任务的配置与运行状态"""
        state = self.runner.get_state(task.name)
        return {
            "name": task.name,
            "description": task.description,
            "enabled": task.enabled,
            "schedule_type": task.schedule.schedule_type.value,
            "cron_expression": task.schedule.cron_expression,
            "interval_seconds": task.schedule.interval_seconds,
            "run_on_start": task.schedule.run_on_start,
            **{k: v for k, v in state.to_dict().items() if k not in ("task_name", "enabled")},
        }

    def get_status(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "task_count": len(self.registry),
            "tasks": [self.describe_task(task) for task in self.registry.list_all()],
        }


# 全局调度器实例
task_scheduler = TaskScheduler()
