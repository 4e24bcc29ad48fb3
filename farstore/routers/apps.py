"""App 查询 API

读路径只读镜像表；域名完全不在镜像中时，同步拉取一次 manifest。
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from farstore.core.config import settings
from farstore.core.dependencies import get_db_session, get_sync_service
from farstore.core.errors import raise_bad_request
from farstore.core.logging import get_logger
from farstore.repositories import AppRepository
from farstore.schemas.app import AppListItem
from farstore.services.manifest import normalize_domain
from farstore.services.sync import SyncService

router = APIRouter(tags=["apps"])
logger = get_logger("api.apps")


def _require_domain(raw: str) -> str:
    domain = normalize_domain(raw)
    if not domain:
        raise_bad_request("missing_domain", "Missing domain")
    return domain


def _parse_frame_ids(raw: str | None) -> list[int]:
    if not raw:
        return []
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    if len(parts) > settings.APPS_MAX_FRAME_IDS:
        raise_bad_request(
            "too_many_frame_ids",
            f"Max {settings.APPS_MAX_FRAME_IDS} frameIds",
            {"count": len(parts)},
        )
    try:
        return [int(p) for p in parts]
    except ValueError:
        raise_bad_request("invalid_frame_ids", "frameIds 必须是逗号分隔的整数", {"frameIds": raw})


@router.get("/app/{domain}")
async def get_app(
    domain: str,
    db: AsyncSession = Depends(get_db_session),
    service: SyncService = Depends(get_sync_service),
):
    """读取 App 的 manifest

    镜像中没有成功拉取过的记录时同步拉取一次，失败直接返回错误，不在请求内重试。
    """
    domain = _require_domain(domain)
    record = await AppRepository(db).get_by_domain(domain)
    if record is not None and record.frame_json is not None:
        return {"results": record.manifest}

    logger.info("镜像中没有该域名，同步拉取", domain=domain)
    frame = await service.sync_domain(domain)
    return {"results": frame}


@router.get("/reload/app/{domain}")
async def reload_app(
    domain: str,
    service: SyncService = Depends(get_sync_service),
):
    """强制重新同步一个域名"""
    frame = await service.sync_domain(_require_domain(domain))
    return {"results": frame}


@router.get("/apps")
async def list_apps(
    frame_ids: str | None = Query(default=None, alias="frameIds"),
    db: AsyncSession = Depends(get_db_session),
):
    """已登记的 App 列表，可按 frameIds 过滤"""
    ids = _parse_frame_ids(frame_ids)
    repo = AppRepository(db)
    records = await repo.list_by_frame_ids(ids) if ids else await repo.list_listed()
    items = [
        AppListItem(domain=r.domain, frame_id=r.frame_id, frame=r.manifest).model_dump(by_alias=True)
        for r in records
    ]
    return {"results": items}
