"""链上指标 API（只读内存快照）"""

from fastapi import APIRouter

from farstore.services.cache import get_cached_derived_metrics, metrics_cache

router = APIRouter(prefix="/onchain", tags=["onchain"])


@router.get("")
async def list_onchain_metrics():
    snapshot = metrics_cache.snapshot()
    return {"results": [m.model_dump(by_alias=True) for m in snapshot.values()]}


@router.get("/{key}")
async def get_onchain_metrics(key: str):
    """按域名或注册表序号查询，未知时返回零值"""
    return {"results": get_cached_derived_metrics(key).model_dump(by_alias=True)}
