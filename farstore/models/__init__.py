"""数据模型"""

from farstore.models.api_key import AppApiKey
from farstore.models.app import App
from farstore.models.base import Base
from farstore.models.notification import NotificationTarget

__all__ = [
    "App",
    "AppApiKey",
    "Base",
    "NotificationTarget",
]
