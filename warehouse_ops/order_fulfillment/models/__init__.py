"""
Order Fulfillment Models
"""

from .order import Order, OrderStatus, OrderPriority, OrderItem, BackOrder, BackOrderStatus
from .work_unit import (
    WorkUnitStatus, WorkUnitItemStatus, ReassignmentStrategy, ReassignmentReason, TERMINAL_STATUSES,
)
from .picking import PickList, PickListItem
from .packing import PackingTask, PackingTaskItem
from .audit import WorkUnitEventType, EVENT_DATA_FIELDS, PickListEvent, PackingTaskEvent
from .notification import Notification, NotificationType

__all__ = [
    # Order models
    'Order', 'OrderStatus', 'OrderPriority', 'OrderItem',
    'BackOrder', 'BackOrderStatus',

    # Work units
    'WorkUnitStatus', 'WorkUnitItemStatus', 'ReassignmentStrategy', 'ReassignmentReason',
    'TERMINAL_STATUSES',
    'PickList', 'PickListItem',
    'PackingTask', 'PackingTaskItem',

    # Audit
    'WorkUnitEventType', 'EVENT_DATA_FIELDS', 'PickListEvent', 'PackingTaskEvent',

    # Notifications
    'Notification', 'NotificationType',
]
