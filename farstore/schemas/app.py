"""App 读路径 Schema"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class AppListItem(BaseModel):
    """/apps 列表项"""

    domain: str
    frame_id: int | None = Field(default=None, serialization_alias="frameId")
    frame: dict[str, Any]


class NotificationTargetCreate(BaseModel):
    """登记通知目标请求"""

    fid: int
    endpoint: str = Field(min_length=1, max_length=500)
    token: str = Field(min_length=1)


class NotificationTargetDelete(BaseModel):
    """停用通知目标请求"""

    fid: int
