"""链上指标 Schema"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class DerivedMetrics(BaseModel):
    """单个 App 的链上衍生指标

    每个刷新周期整体重算，只存在于内存缓存中，不落库。
    token 为 None 表示尚未发币，此时 liquidity 恒为 0。
    """

    model_config = ConfigDict(frozen=True)

    frame_id: int | None = Field(default=None, serialization_alias="frameId")
    domain: str | None = None
    owner: str | None = None
    token: str | None = None
    symbol: str | None = None
    liquidity: float = Field(default=0.0, ge=0)
    funding: float = Field(default=0.0, ge=0)
    created_at: int = Field(default=0, serialization_alias="createdAt")

    @classmethod
    def empty(cls, key: str | int | None = None) -> DerivedMetrics:
        """未知 key 的默认零值"""
        if isinstance(key, int):
            return cls(frame_id=key)
        return cls(domain=key)
