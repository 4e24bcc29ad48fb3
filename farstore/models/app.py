"""App 镜像模型

注册表中每个域名对应一行，保存最近一次成功拉取的 manifest 与两个时间戳。
"""

import json
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from farstore.models.base import Base


class App(Base):
    """App 镜像表

    字段说明：
    - domain: 小写域名，唯一键
    - frame_id: 注册表分配的序号（部分注册表版本不提供，可为空）
    - frame_json: 最近一次成功拉取的 frame 对象（JSON 字符串），仅尝试过的行为空
    - last_check_attempt: 每次同步尝试都会更新
    - last_check_success: 仅在拉取 + 校验成功时更新，始终 <= last_check_attempt
    """

    __tablename__ = "app"

    domain: Mapped[str] = mapped_column(String(255), primary_key=True)
    frame_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True, comment="注册表序号"
    )
    frame_json: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="manifest 中的 frame 对象（JSON）"
    )
    last_check_attempt: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, index=True
    )
    last_check_success: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=func.now(),
        nullable=False,
    )

    @property
    def manifest(self) -> dict[str, Any] | None:
        """解析后的 frame 对象"""
        if self.frame_json is None:
            return None
        return json.loads(self.frame_json)

    def __repr__(self) -> str:
        return f"<App domain={self.domain} frame_id={self.frame_id}>"
