"""
Picking Service for Order Fulfillment.

Handles pick list start/pause and recording of scanned picks.
"""

import logging
from typing import Dict, Any
from django.db import transaction

from warehouse.services.stock_service import StockService

from ..models import OrderStatus, PickList, WorkUnitEventType, WorkUnitStatus
from ..exceptions import ValidationException
from .workflow import validate_work_unit_workflow
from .work_unit_service import WorkUnitService

logger = logging.getLogger(__name__)


class PickingService(WorkUnitService):
    """Service class for picking operations."""

    unit_model = PickList
    order_started_status = OrderStatus.PICKING
    order_finished_status = OrderStatus.PICKED

    @classmethod
    def start_pick_list(cls, pick_list_id, user) -> Dict[str, Any]:
        """Start an ASSIGNED pick list or resume a PAUSED one."""
        return cls.start(pick_list_id, user)

    @classmethod
    def pause_pick_list(cls, pick_list_id, user, reason: str = "") -> Dict[str, Any]:
        """
        Pause an in-progress pick list.

        Raises:
            InvalidTransitionException: If the pick list is not IN_PROGRESS
        """
        with transaction.atomic():
            pick_list = cls.lock_unit(pick_list_id)
            previous_status = pick_list.status
            validate_work_unit_workflow(pick_list, WorkUnitStatus.PAUSED)

            pick_list.status = WorkUnitStatus.PAUSED
            pick_list.save(update_fields=['status', 'updated_at'])
            pick_list.record_event(
                WorkUnitEventType.PAUSED,
                user=user,
                notes=reason,
                previous_status=previous_status,
                reason=reason or "",
            )

            logger.info(f"Pick list {pick_list.batch_number} paused by {user}")
            return {
                'success': True,
                'id': str(pick_list.pk),
                'batch_number': pick_list.batch_number,
                'status': pick_list.status,
            }

    @classmethod
    def record_pick(cls, pick_list_id, item_id, quantity, user, scanned_code,
                    short_pick_reason: str = "") -> Dict[str, Any]:
        """
        Record picked units for one pick line.

        Args:
            pick_list_id: PickList UUID
            item_id: PickListItem UUID
            quantity: Units picked in this scan
            user: Picker
            scanned_code: Code scanned at the shelf; product SKU/UPC/barcode or location barcode
            short_pick_reason: Closes the line short when given

        Returns:
            Pick result with item and pick list progress

        Raises:
            ValidationException: Invalid scan or quantity
            InvalidStateException: Pick list not workable or line already done
            InventoryUnavailableException: Location holds fewer units
        """
        short_pick_reason = (short_pick_reason or "").strip()
        quantity = cls.parse_quantity(quantity, allow_zero=bool(short_pick_reason))

        with transaction.atomic():
            pick_list = cls.lock_unit(pick_list_id)
            item = cls.get_item(pick_list, item_id)

            if not cls._is_valid_scan(item, scanned_code):
                raise ValidationException(
                    "Invalid scan - code does not match product or location",
                    {'scanned_code': [scanned_code or ""]},
                )

            cls.begin_item_work(pick_list, item, user)
            cls.apply_item_progress(item, quantity, user, close=bool(short_pick_reason))

            is_short_pick = bool(short_pick_reason) and item.quantity_completed < item.quantity_required
            if is_short_pick:
                item.short_pick_reason = short_pick_reason
            item.save()

            if quantity and item.location_id:
                StockService().consume_picked(item.location, item.product, quantity, user, pick_list.pk)

            pick_list.record_event(
                WorkUnitEventType.ITEM_SHORT if is_short_pick else WorkUnitEventType.ITEM_COMPLETED,
                user=user,
                notes=short_pick_reason,
                item_id=item.pk,
                sku=item.product.sku,
                quantity=quantity,
                quantity_completed=item.quantity_completed,
                quantity_required=item.quantity_required,
                scanned_code=scanned_code,
                **({'short_pick_reason': short_pick_reason} if is_short_pick else {}),
            )

            pick_list_completed = cls.finish_if_complete(pick_list, user)

            if is_short_pick:
                logger.warning(
                    f"Short pick on {pick_list.batch_number}: {item.product.sku} "
                    f"{item.quantity_completed}/{item.quantity_required} ({short_pick_reason})"
                )
            else:
                logger.info(f"Picked {quantity} x {item.product.sku} on {pick_list.batch_number}")

            return {
                'success': True,
                'item': cls.item_summary(item),
                'is_complete': item.is_complete,
                'is_short_pick': is_short_pick,
                'pick_list': {
                    'id': str(pick_list.pk),
                    'status': pick_list.status,
                    'completed_items': pick_list.completed_items,
                    'total_items': pick_list.total_items,
                    'completed': pick_list_completed,
                },
            }

    @staticmethod
    def _is_valid_scan(item, scanned_code) -> bool:
        if item.product.matches_code(scanned_code):
            return True
        return bool(scanned_code) and item.location is not None and item.location.barcode == scanned_code
