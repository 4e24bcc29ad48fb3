"""数据访问层"""

from farstore.repositories.api_key import ApiKeyRepository
from farstore.repositories.app import AppRepository
from farstore.repositories.notification import NotificationTargetRepository

__all__ = [
    "ApiKeyRepository",
    "AppRepository",
    "NotificationTargetRepository",
]
