"""任务执行器

执行单个任务：外层超时、同一任务不重叠、异常全部捕获，
每次执行都留下一条 TaskExecutionRecord。任务失败不会向调度器抛出。
"""

import asyncio
import uuid
from collections import deque
from datetime import datetime

from farstore.core.logging import get_logger
from farstore.scheduler.state.models import TaskExecutionRecord, TaskState, TaskStatus
from farstore.scheduler.tasks.base import BaseTask, TaskResult, TaskResultStatus

logger = get_logger("scheduler.runner")


class TaskRunner:
    """任务执行器

    Attributes:
        default_timeout: 默认超时时间（秒）
        max_history: 保留的执行记录条数
    """

    def __init__(self, default_timeout: int = 300, max_history: int = 500):
        self.default_timeout = default_timeout
        self._task_states: dict[str, TaskState] = {}
        self._execution_history: deque[TaskExecutionRecord] = deque(maxlen=max_history)
        self._running_tasks: set[str] = set()

    def get_state(self, task_name: str) -> TaskState:
        """获取任务状态，不存在时创建默认状态"""
        if task_name not in self._task_states:
            self._task_states[task_name] = TaskState(task_name=task_name)
        return self._task_states[task_name]

    def update_next_run(self, task_name: str, next_run_at: datetime | None) -> None:
        self.get_state(task_name).next_run_at = next_run_at

    def is_running(self, task_name: str) -> bool:
        return task_name in self._running_tasks

    def _new_record(self, task_name: str) -> TaskExecutionRecord:
        return TaskExecutionRecord(
            id=str(uuid.uuid4()),
            task_name=task_name,
            started_at=datetime.now(),
        )

    def _finish(self, record: TaskExecutionRecord, result: TaskResult) -> TaskExecutionRecord:
        """写入执行结果并更新任务状态"""
        record.finished_at = datetime.now()
        record.duration_ms = int((record.finished_at - record.started_at).total_seconds() * 1000)
        record.status = result.status.value
        record.message = result.message
        record.data = result.data
        record.error = result.error

        if result.status != TaskResultStatus.SKIPPED:
            state = self.get_state(record.task_name)
            state.last_run_at = record.started_at
            state.last_result = result.status.value
            state.last_error = result.error
            state.run_count += 1
            if result.status == TaskResultStatus.FAILED:
                state.fail_count += 1

        self._execution_history.append(record)
        return record

    async def execute(self, task: BaseTask, timeout: int | None = None) -> TaskExecutionRecord:
        """执行任务

        Args:
            task: 任务实例
            timeout: 超时时间（秒），为 None 则使用默认值

        Returns:
            执行记录
        """
        task_name = task.name
        timeout = timeout or self.default_timeout
        record = self._new_record(task_name)

        if not task.schedule.allow_concurrent and self.is_running(task_name):
            logger.warning("任务正在运行，跳过", task_name=task_name)
            return self._finish(record, TaskResult.skipped("任务正在运行，跳过本次执行"))

        state = self.get_state(task_name)
        state.status = TaskStatus.RUNNING
        self._running_tasks.add(task_name)
        logger.debug("开始执行任务", task_name=task_name, record_id=record.id)

        try:
            result = await asyncio.wait_for(task.run(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error("任务执行超时", task_name=task_name, timeout=timeout)
            result = TaskResult.failed(f"任务执行超过 {timeout} 秒", message="执行超时")
        except Exception as e:
            logger.exception("任务执行异常", task_name=task_name, error=str(e))
            result = TaskResult.failed(str(e), message="执行异常")
        finally:
            state.status = TaskStatus.IDLE
            self._running_tasks.discard(task_name)

        self._finish(record, result)
        log = logger.warning if result.status == TaskResultStatus.FAILED else logger.debug
        log(
            "任务执行完成",
            task_name=task_name,
            status=result.status.value,
            duration_ms=record.duration_ms,
        )
        return record

    def get_history(
        self, task_name: str | None = None, limit: int = 10
    ) -> list[TaskExecutionRecord]:
        """获取执行历史（按时间倒序）"""
        records = [r for r in self._execution_history if task_name is None or r.task_name == task_name]
        return sorted(records, key=lambda r: r.started_at, reverse=True)[:limit]

    def get_all_states(self) -> list[TaskState]:
        return list(self._task_states.values())
