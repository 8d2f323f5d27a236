"""
Workflow service for Order Fulfillment.

Manages allowed state transitions and enforces business rules. Reassignment
is the one operation allowed to move a work unit outside these rules.
"""

from ..exceptions import InvalidTransitionException
from ..models import Order, OrderStatus, WorkUnitStatus


class OrderWorkflow:
    """Workflow rules for Order state transitions."""

    ALLOWED_TRANSITIONS = {
        OrderStatus.PENDING: [OrderStatus.ALLOCATED, OrderStatus.CANCELLED],
        OrderStatus.ALLOCATED: [OrderStatus.PICKING, OrderStatus.BACKORDER, OrderStatus.CANCELLED],
        OrderStatus.PICKING: [OrderStatus.PICKED, OrderStatus.BACKORDER, OrderStatus.CANCELLED],
        OrderStatus.PICKED: [OrderStatus.PACKING, OrderStatus.PACKED, OrderStatus.CANCELLED],
        OrderStatus.PACKING: [OrderStatus.PACKED, OrderStatus.CANCELLED],
        OrderStatus.PACKED: [OrderStatus.SHIPPED, OrderStatus.CANCELLED],
        OrderStatus.BACKORDER: [OrderStatus.PICKING, OrderStatus.PICKED, OrderStatus.PACKING,
                                OrderStatus.SHIPPED, OrderStatus.CANCELLED],
        OrderStatus.SHIPPED: [OrderStatus.DELIVERED],
        OrderStatus.DELIVERED: [],  # Final state
        OrderStatus.CANCELLED: [],  # Final state
    }

    @classmethod
    def validate_transition(cls, order: Order, new_status: str) -> None:
        """
        Validate if a status transition is allowed.

        Raises:
            InvalidTransitionException: If transition is not allowed
        """
        current_status = order.status

        if current_status == new_status:
            return

        if new_status not in cls.ALLOWED_TRANSITIONS.get(current_status, []):
            raise InvalidTransitionException(
                current_status=current_status,
                attempted_status=new_status,
                entity_type="Order"
            )

    @classmethod
    def can_transition_to(cls, order: Order, new_status: str) -> bool:
        try:
            cls.validate_transition(order, new_status)
            return True
        except InvalidTransitionException:
            return False


class WorkUnitWorkflow:
    """Workflow rules shared by pick lists and packing tasks."""

    ALLOWED_TRANSITIONS = {
        WorkUnitStatus.ASSIGNED: [WorkUnitStatus.IN_PROGRESS, WorkUnitStatus.CANCELLED],
        WorkUnitStatus.IN_PROGRESS: [WorkUnitStatus.PAUSED, WorkUnitStatus.COMPLETED, WorkUnitStatus.CANCELLED],
        WorkUnitStatus.PAUSED: [WorkUnitStatus.IN_PROGRESS, WorkUnitStatus.CANCELLED],
        WorkUnitStatus.PARTIALLY_COMPLETED: [WorkUnitStatus.COMPLETED, WorkUnitStatus.CANCELLED],
        WorkUnitStatus.COMPLETED: [],  # Final state
        WorkUnitStatus.CANCELLED: [],  # Final state
    }

    @classmethod
    def validate_transition(cls, unit, new_status: str) -> None:
        """
        Validate if a status transition is allowed.

        Args:
            unit: PickList or PackingTask instance
            new_status: New status to transition to

        Raises:
            InvalidTransitionException: If transition is not allowed
        """
        current_status = unit.status

        if current_status == new_status:
            return

        if new_status not in cls.ALLOWED_TRANSITIONS.get(current_status, []):
            raise InvalidTransitionException(
                current_status=current_status,
                attempted_status=new_status,
                entity_type=unit.entity_label
            )


def validate_work_unit_workflow(unit, new_status: str) -> None:
    WorkUnitWorkflow.validate_transition(unit, new_status)
