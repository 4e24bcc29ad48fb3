"""任务注册中心"""

from farstore.core.logging import get_logger
from farstore.scheduler.tasks.base import BaseTask

logger = get_logger("scheduler.registry")


class TaskRegistry:
    """任务注册中心

    保存任务实例，调度器启动时从这里读取任务列表。
    注册顺序即启动时 bootstrap 的执行顺序。
    """

    def __init__(self):
        self._tasks: dict[str, BaseTask] = {}

    def register(self, task: BaseTask, *, replace: bool = False) -> None:
        """注册任务

        Args:
            task: 任务实例
            replace: 同名任务已存在时是否替换

        Raises:
            ValueError: 任务名称已存在且 replace=False
        """
        if task.name in self._tasks and not replace:
            raise ValueError(f"任务已注册: {task.name}")

        self._tasks[task.name] = task
        logger.info("注册任务", task_name=task.name, description=task.description)

    def unregister(self, task_name: str) -> None:
        if self._tasks.pop(task_name, None) is not None:
            logger.info("注销任务", task_name=task_name)

    def clear(self) -> None:
        """注销全部任务（应用关闭时调用）"""
        self._tasks.clear()

    def get(self, task_name: str) -> BaseTask | None:
        return self._tasks.get(task_name)

    def list_all(self) -> list[BaseTask]:
        return list(self._tasks.values())

    def list_enabled(self) -> list[BaseTask]:
        return [t for t in self._tasks.values() if t.enabled]

    def set_enabled(self, task_name: str, enabled: bool) -> bool:
        """启用或禁用任务，任务不存在时返回 False"""
        task = self._tasks.get(task_name)
        if task is None:
            return False
        task.enabled = enabled
        logger.info("启用任务" if enabled else "禁用任务", task_name=task_name)
        return True

    def enable(self, task_name: str) -> bool:
        return self.set_enabled(task_name, True)

    def disable(self, task_name: str) -> bool:
        return self.set_enabled(task_name, False)

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_name: str) -> bool:
        return task_name in self._tasks


# 全局任务注册中心实例
task_registry = TaskRegistry()
