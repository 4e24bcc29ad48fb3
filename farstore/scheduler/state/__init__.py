"""任务运行状态与执行记录"""

from farstore.scheduler.state.models import TaskExecutionRecord, TaskState, TaskStatus

__all__ = [
    "TaskExecutionRecord",
    "TaskState",
    "TaskStatus",
]
