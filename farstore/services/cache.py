"""进程内查找缓存

两份缓存都由同步任务整体重建，读路径只读：
- metrics_cache: key（域名或注册表序号）-> DerivedMetrics
- api_key_cache: api_key -> domain

重建时先在局部构造完整的新字典，再一次赋值替换引用；
读者拿到的快照是只读的 MappingProxyType，不会看到更新到一半的状态。
"""

from collections.abc import Mapping
from datetime import datetime
from types import MappingProxyType
from typing import Any, Generic, TypeVar

from farstore.core.logging import get_logger
from farstore.schemas.onchain import DerivedMetrics

logger = get_logger("cache")

K = TypeVar("K")
V = TypeVar("V")


class SnapshotCache(Generic[K, V]):
    """整体替换的只读快照缓存

    Attributes:
        name: 缓存名称（用于日志和状态接口）
        version: 成功替换的次数，0 表示尚未加载
        updated_at: 最近一次替换的时间
    """

    def __init__(self, name: str):
        self.name = name
        self._snapshot: Mapping[K, V] = MappingProxyType({})
        self.version = 0
        self.updated_at: datetime | None = None

    @property
    def loaded(self) -> bool:
        return self.version > 0

    def swap(self, new_items: Mapping[K, V]) -> Mapping[K, V]:
        """用新内容整体替换快照，返回新快照"""
        snapshot = MappingProxyType(dict(new_items))
        self._snapshot = snapshot
        self.version += 1
        self.updated_at = datetime.now()
        logger.debug("缓存已替换", cache=self.name, size=len(snapshot), version=self.version)
        return snapshot

    def reset(self) -> None:
        """清空快照并回到未加载状态"""
        self._snapshot = MappingProxyType({})
        self.version = 0
        self.updated_at = None

    def snapshot(self) -> Mapping[K, V]:
        """当前快照（只读）"""
        return self._snapshot

    def get(self, key: K, default: V | None = None) -> V | None:
        return self._snapshot.get(key, default)

    def __len__(self) -> int:
        return len(self._snapshot)

    def __contains__(self, key: object) -> bool:
        return key in self._snapshot

    def get_status(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "size": len(self._snapshot),
            "loaded": self.loaded,
            "version": self.version,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


metrics_cache: SnapshotCache[str | int, DerivedMetrics] = SnapshotCache("derived_metrics")
api_key_cache: SnapshotCache[str, str] = SnapshotCache("api_keys")


def get_cached_derived_metrics(key: str | int) -> DerivedMetrics:
    """按域名或注册表序号读取链上指标，未知 key 返回零值

    缓存按序号建键时，路径参数里的数字字符串也能命中。
    """
    snapshot = metrics_cache.snapshot()
    if isinstance(key, str):
        key = key.strip().lower()
        if key not in snapshot and key.isdigit():
            key = int(key)
    metrics = snapshot.get(key)
    if metrics is None:
        return DerivedMetrics.empty(key)
    return metrics


def resolve_api_key(key: str | None) -> str | None:
    """API Key -> 授权的域名，未知时返回 None"""
    if not key:
        return None
    return api_key_cache.get(key)
