"""调度器路由"""

from farstore.scheduler.routers.tasks import router

__all__ = ["router"]
