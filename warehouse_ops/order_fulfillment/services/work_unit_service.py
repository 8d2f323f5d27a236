"""
Operations shared by the picking and packing services.
"""

import logging
from typing import Dict, Any

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from ..exceptions import InvalidStateException, NotFoundException, ValidationException
from ..models import Order, WorkUnitEventType, WorkUnitItemStatus, WorkUnitStatus
from .workflow import OrderWorkflow, validate_work_unit_workflow

logger = logging.getLogger(__name__)


class WorkUnitService:
    """
    Base service for pick lists and packing tasks.

    Subclasses set ``unit_model`` and the order statuses their work moves
    orders into.
    """

    unit_model = None
    order_started_status = None
    order_finished_status = None

    @classmethod
    def start(cls, unit_id, user) -> Dict[str, Any]:
        """
        Start (or resume) work on a unit.

        Raises:
            NotFoundException: If the unit does not exist
            InvalidTransitionException: If the unit cannot be started
        """
        with transaction.atomic():
            unit = cls.lock_unit(unit_id)
            previous_status = unit.status
            validate_work_unit_workflow(unit, WorkUnitStatus.IN_PROGRESS)

            unit.status = WorkUnitStatus.IN_PROGRESS
            if unit.started_at is None:
                unit.started_at = timezone.now()
            unit.save(update_fields=['status', 'started_at', 'updated_at'])

            unit.record_event(WorkUnitEventType.STARTED, user=user, previous_status=previous_status)
            cls._advance_orders(unit, cls.order_started_status)

            logger.info(f"{unit.entity_label} {unit.batch_number} started by {user}")
            return {
                'success': True,
                'id': str(unit.pk),
                'batch_number': unit.batch_number,
                'status': unit.status,
            }

    @classmethod
    def lock_unit(cls, unit_id):
        try:
            return cls.unit_model.objects.select_for_update().get(pk=unit_id)
        except (cls.unit_model.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundException(cls.unit_model.entity_label, unit_id)

    @classmethod
    def get_item(cls, unit, item_id):
        try:
            return unit.items.select_related('product', 'location').get(pk=item_id)
        except (unit.items.model.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundException(f"{unit.entity_label}Item", item_id)

    @classmethod
    def begin_item_work(cls, unit, item, user):
        """
        Make sure the unit accepts progress, starting it when still ASSIGNED.

        Raises:
            InvalidStateException: If the unit is paused, closed or the line is done
        """
        if unit.status == WorkUnitStatus.ASSIGNED:
            unit.status = WorkUnitStatus.IN_PROGRESS
            unit.started_at = unit.started_at or timezone.now()
            unit.save(update_fields=['status', 'started_at', 'updated_at'])
            unit.record_event(WorkUnitEventType.STARTED, user=user, previous_status=WorkUnitStatus.ASSIGNED)
            cls._advance_orders(unit, cls.order_started_status)
        elif unit.status != WorkUnitStatus.IN_PROGRESS:
            raise InvalidStateException(unit.entity_label, unit.status)

        if item.status == WorkUnitItemStatus.COMPLETED:
            raise InvalidStateException(
                f"{unit.entity_label}Item", item.status, f"Item {item.product.sku} is already completed"
            )

    @staticmethod
    def parse_quantity(quantity, allow_zero=False):
        try:
            quantity = int(quantity)
        except (TypeError, ValueError):
            raise ValidationException("Quantity must be a whole number", {'quantity': ["Invalid quantity"]})
        if quantity < 0 or (quantity == 0 and not allow_zero):
            raise ValidationException("Quantity must be positive", {'quantity': ["Must be greater than 0"]})
        return quantity

    @classmethod
    def apply_item_progress(cls, item, quantity, user, close=False):
        try:
            item.apply_progress(quantity, user=user, close=close)
        except ValueError as e:
            raise ValidationException(str(e), {'quantity': [str(e)]})

    @classmethod
    def finish_if_complete(cls, unit, user):
        """Refresh counters and complete the unit once every line is done."""
        unit.refresh_progress()
        if unit.total_items == 0 or unit.completed_items < unit.total_items:
            return False

        validate_work_unit_workflow(unit, WorkUnitStatus.COMPLETED)
        unit.status = WorkUnitStatus.COMPLETED
        unit.completed_at = timezone.now()
        unit.save(update_fields=['status', 'completed_at', 'updated_at'])
        unit.record_event(
            WorkUnitEventType.COMPLETED,
            user=user,
            completed_items=unit.completed_items,
            total_items=unit.total_items,
        )
        cls._advance_orders(unit, cls.order_finished_status, require_all_done=True)
        logger.info(f"{unit.entity_label} {unit.batch_number} completed")
        return True

    @classmethod
    def _advance_orders(cls, unit, new_status, require_all_done=False):
        """
        Move the unit's orders forward where their workflow allows it.

        With ``require_all_done`` an order only moves once none of its lines of
        this kind are still open, in this unit or any other.
        """
        if new_status is None:
            return

        item_model = unit.items.model
        order_ids = set(unit.items.values_list('order_id', flat=True))
        for order in Order.objects.select_for_update().filter(pk__in=order_ids):
            if require_all_done and item_model.objects.filter(order=order).exclude(
                status=WorkUnitItemStatus.COMPLETED
            ).exists():
                continue
            if OrderWorkflow.can_transition_to(order, new_status) and order.status != new_status:
                order.status = new_status
                order.save(update_fields=['status', 'updated_at'])
                logger.info(f"Order {order.order_number} moved to {new_status}")

    @staticmethod
    def item_summary(item) -> Dict[str, Any]:
        return {
            'id': str(item.id),
            'sku': item.product.sku,
            'quantity_required': item.quantity_required,
            'quantity_completed': item.quantity_completed,
            'status': item.status,
        }
