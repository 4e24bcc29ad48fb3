"""API Schema"""

from farstore.schemas.app import AppListItem, NotificationTargetCreate, NotificationTargetDelete
from farstore.schemas.onchain import DerivedMetrics

__all__ = [
    "AppListItem",
    "DerivedMetrics",
    "NotificationTargetCreate",
    "NotificationTargetDelete",
]
