"""任务状态模型"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class TaskStatus(str, Enum):
    """任务当前状态"""

    IDLE = "idle"
    RUNNING = "running"


@dataclass
class TaskState:
    """任务运行时状态

    Attributes:
        last_result: 上次执行结果（success/failed），跳过的执行不计入
        run_count: 累计执行次数
        fail_count: 累计失败次数
    """

    task_name: str
    status: TaskStatus = TaskStatus.IDLE
    next_run_at: datetime | None = None
    last_run_at: datetime | None = None
    last_result: str | None = None
    last_error: str | None = None
    run_count: int = 0
    fail_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_name": self.task_name,
            "status": self.status.value,
            "next_run_at": _iso(self.next_run_at),
            "last_run_at": _iso(self.last_run_at),
            "last_result": self.last_result,
            "last_error": self.last_error,
            "run_count": self.run_count,
            "fail_count": self.fail_count,
        }


@dataclass
class TaskExecutionRecord:
    """一次任务执行的记录

    data 中保存任务返回的同步统计（处理数、成功数、失败条目等）。
    """

    id: str
    task_name: str
    started_at: datetime
    finished_at: datetime | None = None
    duration_ms: int | None = None
    status: str = "running"
    message: str = ""
    error: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "task_name": self.task_name,
            "started_at": self.started_at.isoformat(),
            "finished_at": _iso(self.finished_at),
            "duration_ms": self.duration_ms,
            "status": self.status,
            "message": self.message,
            "error": self.error,
            "data": self.data,
        }
