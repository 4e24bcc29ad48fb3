"""通知目标 API

/private 下的接口都需要 Authorization: Bearer <api key>，
API Key 通过内存缓存解析为它授权的域名。
"""

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from farstore.core.dependencies import get_db_session, require_api_domain
from farstore.core.logging import get_logger
from farstore.repositories import NotificationTargetRepository
from farstore.schemas.app import NotificationTargetCreate, NotificationTargetDelete

router = APIRouter(prefix="/private", tags=["private"])
logger = get_logger("api.notification")


@router.get("/notification_target")
async def get_notification_target(
    fid: int = Query(default=-1),
    domain: str = Depends(require_api_domain),
    db: AsyncSession = Depends(get_db_session),
):
    target = await NotificationTargetRepository(db).get_active(domain, fid)
    return {"results": target.to_dict() if target else None}


@router.post("/notification_target")
async def upsert_notification_target(
    body: NotificationTargetCreate,
    domain: str = Depends(require_api_domain),
    db: AsyncSession = Depends(get_db_session),
):
    """登记通知目标（已存在时重新激活并更新 token）"""
    await NotificationTargetRepository(db).upsert_target(
        domain, body.fid, body.endpoint, body.token
    )
    logger.info("通知目标已登记", domain=domain, fid=body.fid)
    return {"results": "OK"}


@router.delete("/notification_target")
async def deactivate_notification_target(
    body: NotificationTargetDelete = Body(...),
    domain: str = Depends(require_api_domain),
    db: AsyncSession = Depends(get_db_session),
):
    count = await NotificationTargetRepository(db).deactivate(domain, body.fid)
    logger.info("通知目标已停用", domain=domain, fid=body.fid, count=count)
    return {"results": "OK"}
