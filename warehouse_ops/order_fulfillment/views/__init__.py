"""
Order Fulfillment Views
"""

from .order_views import OrderViewSet
from .picking_views import PickListViewSet
from .packing_views import PackingTaskViewSet
from .notification_views import NotificationViewSet

__all__ = [
    'OrderViewSet',
    'PickListViewSet',
    'PackingTaskViewSet',
    'NotificationViewSet',
]
