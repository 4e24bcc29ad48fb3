"""通知目标模型"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from farstore.models.base import Base


class NotificationTarget(Base):
    """通知目标表

    App 为某个用户（fid）登记的推送地址，(domain, fid, endpoint) 唯一。
    删除只做软删除（active = False）。
    """

    __tablename__ = "notification_target"
    __table_args__ = (UniqueConstraint("domain", "fid", "endpoint", name="uq_notification_target"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    domain: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    fid: Mapped[int] = mapped_column(Integer, nullable=False)
    endpoint: Mapped[str] = mapped_column(String(500), nullable=False)
    token: Mapped[str] = mapped_column(Text, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "domain": self.domain,
            "fid": self.fid,
            "endpoint": self.endpoint,
            "url": self.endpoint,
            "token": self.token,
            "active": self.active,
        }
