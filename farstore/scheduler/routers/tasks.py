"""调度器 API 路由

同步任务的查询与控制接口（运维使用）。
"""

from fastapi import APIRouter, Query
from pydantic import BaseModel

from farstore.core.errors import raise_not_found
from farstore.scheduler import task_registry, task_scheduler
from farstore.scheduler.tasks.base import BaseTask

router = APIRouter(prefix="/scheduler", tags=["scheduler"])


# ==================== 响应模型 ====================


class TaskInfo(BaseModel):
    """任务配置"""

    name: str
    description: str
    enabled: bool
    schedule_type: str
    cron_expression: str | None
    interval_seconds: int | None
    run_on_start: bool


class TaskStateResponse(TaskInfo):
    """任务配置 + 运行状态"""

    status: str
    next_run_at: str | None
    last_run_at: str | None
    last_result: str | None
    last_error: str | None
    run_count: int
    fail_count: int


class SchedulerStatusResponse(BaseModel):
    running: bool
    task_count: int
    tasks: list[TaskStateResponse]


class ExecutionRecordResponse(BaseModel):
    id: str
    task_name: str
    started_at: str
    finished_at: str | None
    duration_ms: int | None
    status: str
    message: str
    error: str | None
    data: dict


class TriggerResponse(BaseModel):
    success: bool
    message: str


# ==================== 路由 ====================


def _get_task(task_name: str) -> BaseTask:
    task = task_registry.get(task_name)
    if task is None:
        raise_not_found("task", task_name)
    return task


@router.get("/status", response_model=SchedulerStatusResponse)
async def get_scheduler_status():
    """调度器运行状态和所有任务的详细信息"""
    return task_scheduler.get_status()


@router.get("/tasks", response_model=list[TaskInfo])
async def list_tasks():
    """列出所有注册的任务"""
    return [task_scheduler.describe_task(t) for t in task_registry.list_all()]


@router.get("/tasks/{task_name}", response_model=TaskStateResponse)
async def get_task_status(task_name: str):
    return task_scheduler.describe_task(_get_task(task_name))


@router.post("/tasks/{task_name}/trigger", response_model=TriggerResponse)
async def trigger_task(task_name: str):
    """手动触发任务（后台执行，不等待结果）"""
    _get_task(task_name)
    await task_scheduler.trigger(task_name)
    return TriggerResponse(success=True, message=f"任务 {task_name} 已触发")


@router.post("/tasks/{task_name}/enable", response_model=TriggerResponse)
async def enable_task(task_name: str):
    _get_task(task_name)
    task_registry.enable(task_name)
    return TriggerResponse(success=True, message=f"任务 {task_name} 已启用")


@router.post("/tasks/{task_name}/disable", response_model=TriggerResponse)
async def disable_task(task_name: str):
    _get_task(task_name)
    task_registry.disable(task_name)
    return TriggerResponse(success=True, message=f"任务 {task_name} 已禁用")


@router.get("/tasks/{task_name}/history", response_model=list[ExecutionRecordResponse])
async def get_task_history(task_name: str, limit: int = Query(default=10, ge=1, le=100)):
    """任务执行历史（按时间倒序）"""
    _get_task(task_name)
    return [r.to_dict() for r in task_scheduler.runner.get_history(task_name, limit)]
