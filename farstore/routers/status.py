"""服务状态 API"""

from fastapi import APIRouter

from farstore.core.db.provider import get_database_provider
from farstore.core.logging import get_logger
from farstore.scheduler import task_scheduler
from farstore.services.cache import api_key_cache, metrics_cache

router = APIRouter(tags=["status"])
logger = get_logger("api.status")


@router.get("/status")
async def get_status():
    """存活检查，附带数据库、调度器与缓存状态"""
    try:
        await get_database_provider().ping()
        database = "ok"
    except Exception as e:
        logger.warning("数据库不可用", error=str(e))
        database = "unavailable"

    return {
        "results": {
            "status": "OK",
            "database": database,
            "scheduler": {"running": task_scheduler.is_running},
            "caches": [metrics_cache.get_status(), api_key_cache.get_status()],
        }
    }
