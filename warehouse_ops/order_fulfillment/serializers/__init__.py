"""
Order Fulfillment Serializers
"""

from .order_serializers import OrderListSerializer, OrderDetailSerializer, OrderItemSerializer, BackOrderSerializer
from .picking_serializers import (
    PickListListSerializer, PickListDetailSerializer, PickListItemSerializer,
    PickRecordSerializer, PickListPauseSerializer,
)
from .packing_serializers import PackingTaskListSerializer, PackingTaskItemSerializer, PackRecordSerializer
from .reassignment_serializers import (
    ReassignSerializer, BulkPickListReassignSerializer, BulkPackingTaskReassignSerializer,
)
from .notification_serializers import NotificationSerializer

__all__ = [
    'OrderListSerializer', 'OrderDetailSerializer', 'OrderItemSerializer', 'BackOrderSerializer',
    'PickListListSerializer', 'PickListDetailSerializer', 'PickListItemSerializer',
    'PickRecordSerializer', 'PickListPauseSerializer',
    'PackingTaskListSerializer', 'PackingTaskItemSerializer', 'PackRecordSerializer',
    'ReassignSerializer', 'BulkPickListReassignSerializer', 'BulkPackingTaskReassignSerializer',
    'NotificationSerializer',
]
