"""
Order Fulfillment Services
"""

from .workflow import OrderWorkflow, WorkUnitWorkflow, validate_work_unit_workflow
from .notification_service import NotificationService
from .reassignment import ReassignmentEngine, partition_items
from .picking_service import PickingService
from .packing_service import PackingService

__all__ = [
    # Workflow
    'OrderWorkflow', 'WorkUnitWorkflow', 'validate_work_unit_workflow',

    # Services
    'NotificationService', 'ReassignmentEngine', 'partition_items',
    'PickingService', 'PackingService',
]
