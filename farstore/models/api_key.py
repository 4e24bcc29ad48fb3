"""API Key 模型"""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from farstore.models.base import Base


class AppApiKey(Base):
    """API Key 表

    每个 key 授权一个域名访问 /private 接口，由访问缓存整表加载。
    """

    __tablename__ = "app_api_key"

    api_key: Mapped[str] = mapped_column(String(128), primary_key=True)
    domain: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=func.now(),
        nullable=False,
    )
