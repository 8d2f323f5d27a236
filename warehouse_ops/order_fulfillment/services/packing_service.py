"""
Packing Service for Order Fulfillment.

Handles packing progress and the per-order packing breakdown that reconciles
short picks and back orders.
"""

import logging
from decimal import Decimal
from typing import Dict, Any, List, Optional
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from ..models import (
    BackOrder, BackOrderStatus, Order, OrderStatus, PackingTask,
    PickListItem, WorkUnitEventType, WorkUnitItemStatus,
)
from ..exceptions import InvalidStateException, NotFoundException, ValidationException
from .work_unit_service import WorkUnitService

logger = logging.getLogger(__name__)

PACKABLE_ORDER_STATUSES = (
    OrderStatus.PICKED, OrderStatus.PACKING, OrderStatus.PACKED,
    OrderStatus.SHIPPED, OrderStatus.BACKORDER,
)

# Fallbacks for products without weight or dimensions
DEFAULT_UNIT_WEIGHT_GRAMS = Decimal('94')
DEFAULT_UNIT_VOLUME_CM3 = Decimal('100')

MEDIUM_BOX_MIN_VOLUME = Decimal('500')
LARGE_BOX_MIN_VOLUME = Decimal('1000')


class PackingContext:
    FULL_ORDER = 'FULL_ORDER'
    PARTIAL_ORDER = 'PARTIAL_ORDER'
    BACK_ORDER_FULFILLMENT = 'BACK_ORDER_FULFILLMENT'
    ALREADY_FULFILLED = 'ALREADY_FULFILLED'


def reconcile_line(ordered_quantity: int, picked_quantity: int,
                   back_order: Optional[BackOrder]) -> Dict[str, Any]:
    """
    Decide how much of one order line is packed now.

    Args:
        ordered_quantity: Quantity on the order line
        picked_quantity: Units actually picked for the line
        back_order: The line's most relevant back order, if any

    Returns:
        quantity_to_pack, quantity_back_ordered, quantity_already_shipped,
        packing_context and was_short_picked
    """
    quantity_back_ordered = 0
    quantity_already_shipped = 0
    was_short_picked = False

    if back_order is not None and back_order.status in BackOrder.IN_FULFILLMENT:
        # Shipping the deferred remainder; the rest left with the first parcel
        quantity_to_pack = back_order.quantity_outstanding
        if picked_quantity < quantity_to_pack:
            was_short_picked = True
            quantity_to_pack = picked_quantity
        quantity_already_shipped = ordered_quantity - quantity_to_pack
        context = PackingContext.BACK_ORDER_FULFILLMENT
    elif back_order is not None and back_order.status in BackOrder.AWAITING_STOCK:
        quantity_to_pack = picked_quantity
        quantity_back_ordered = ordered_quantity - picked_quantity
        expected_to_pick = ordered_quantity - back_order.quantity_outstanding
        was_short_picked = picked_quantity < expected_to_pick
        context = PackingContext.PARTIAL_ORDER
    elif back_order is not None and back_order.status == BackOrderStatus.FULFILLED:
        quantity_to_pack = 0
        quantity_already_shipped = ordered_quantity
        context = PackingContext.ALREADY_FULFILLED
    else:
        quantity_to_pack = picked_quantity
        if picked_quantity < ordered_quantity:
            was_short_picked = True
            quantity_back_ordered = ordered_quantity - picked_quantity
        context = PackingContext.FULL_ORDER

    return {
        'quantity_to_pack': quantity_to_pack,
        'quantity_back_ordered': quantity_back_ordered,
        'quantity_already_shipped': quantity_already_shipped,
        'packing_context': context,
        'was_short_picked': was_short_picked,
    }


def suggest_box(total_volume) -> str:
    if total_volume > LARGE_BOX_MIN_VOLUME:
        return 'LARGE'
    if total_volume > MEDIUM_BOX_MIN_VOLUME:
        return 'MEDIUM'
    return 'SMALL'


def _pick_back_order(back_orders: List[BackOrder]) -> Optional[BackOrder]:
    """In-fulfillment back orders take precedence over pending, then fulfilled."""
    for statuses in (BackOrder.IN_FULFILLMENT, BackOrder.AWAITING_STOCK, (BackOrderStatus.FULFILLED,)):
        for back_order in back_orders:
            if back_order.status in statuses:
                return back_order
    return None


class PackingService(WorkUnitService):
    """Service class for packing operations."""

    unit_model = PackingTask
    order_started_status = OrderStatus.PACKING
    order_finished_status = OrderStatus.PACKED

    @classmethod
    def record_pack(cls, task_id, item_id, quantity, user) -> Dict[str, Any]:
        """
        Record packed units for one packing line.

        Raises:
            ValidationException: Invalid quantity
            InvalidStateException: Task not workable or line already done
        """
        quantity = cls.parse_quantity(quantity)

        with transaction.atomic():
            task = cls.lock_unit(task_id)
            item = cls.get_item(task, item_id)

            cls.begin_item_work(task, item, user)
            cls.apply_item_progress(item, quantity, user)
            item.save()

            task.record_event(
                WorkUnitEventType.ITEM_COMPLETED,
                user=user,
                item_id=item.pk,
                sku=item.product.sku,
                quantity=quantity,
                quantity_completed=item.quantity_completed,
                quantity_required=item.quantity_required,
                scanned_code=None,
            )
            task_completed = cls.finish_if_complete(task, user)

            logger.info(f"Packed {quantity} x {item.product.sku} on {task.batch_number}")
            return {
                'success': True,
                'item': cls.item_summary(item),
                'is_complete': item.is_complete,
                'packing_task': {
                    'id': str(task.pk),
                    'status': task.status,
                    'completed_items': task.completed_items,
                    'total_items': task.total_items,
                    'completed': task_completed,
                },
            }

    @staticmethod
    def get_task_detail(task_id) -> Dict[str, Any]:
        """
        Get a packing task with its lines and progress statistics.

        Raises:
            NotFoundException: If the task does not exist
        """
        try:
            task = PackingTask.objects.select_related('assigned_user', 'parent').get(pk=task_id)
        except (PackingTask.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundException(PackingTask.entity_label, task_id)

        items = list(task.items.select_related('order', 'product'))
        status_counts = {status: 0 for status in WorkUnitItemStatus.values}
        for item in items:
            status_counts[item.status] += 1

        orders = {}
        for item in items:
            orders.setdefault(item.order_id, []).append(item)
        completed_orders = sum(
            1 for order_items in orders.values()
            if all(i.status == WorkUnitItemStatus.COMPLETED for i in order_items)
        )

        total = len(items)
        completed = status_counts[WorkUnitItemStatus.COMPLETED]
        return {
            'success': True,
            'task': {
                'id': str(task.pk),
                'batch_number': task.batch_number,
                'status': task.status,
                'priority': task.priority,
                'assigned_user_id': task.assigned_user_id,
                'parent_id': str(task.parent_id) if task.parent_id else None,
                'parent_batch_number': task.parent.batch_number if task.parent else None,
                'notes': task.notes,
            },
            'items': [
                {
                    'id': str(item.pk),
                    'order_id': str(item.order_id),
                    'order_number': item.order.order_number,
                    'sku': item.product.sku,
                    'product_name': item.product.name,
                    'quantity_required': item.quantity_required,
                    'quantity_completed': item.quantity_completed,
                    'status': item.status,
                    'sequence': item.sequence,
                    'notes': item.notes,
                }
                for item in items
            ],
            'stats': {
                'total_items': total,
                'pending_items': status_counts[WorkUnitItemStatus.PENDING],
                'in_progress_items': status_counts[WorkUnitItemStatus.IN_PROGRESS],
                'completed_items': completed,
                'total_orders': len(orders),
                'completed_orders': completed_orders,
                'progress': round(completed / total * 100, 2) if total else 0.0,
            },
        }

    @staticmethod
    def get_packing_detail(order_id) -> Dict[str, Any]:
        """
        Work out what can be packed for an order right now.

        Each line is reconciled against what was actually picked and against
        the order's back orders, see ``reconcile_line``.

        Raises:
            NotFoundException: If the order does not exist
            InvalidStateException: If the order has not been picked yet
            ValidationException: If nothing can be packed
        """
        try:
            order = Order.objects.get(pk=order_id)
        except (Order.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundException("Order", order_id)

        if order.status not in PACKABLE_ORDER_STATUSES:
            raise InvalidStateException(
                "Order", order.status,
                f"Order must be picked before packing. Current status: {order.status}",
            )

        order_items = list(order.items.select_related('product'))
        back_orders = list(order.back_orders.all())
        pick_items = list(PickListItem.objects.filter(order=order))

        lines = []
        for order_item in order_items:
            product_picks = [p for p in pick_items if p.product_id == order_item.product_id]
            picked_quantity = sum(
                p.quantity_completed for p in product_picks if p.status == WorkUnitItemStatus.COMPLETED
            )
            has_pending_picks = any(p.status != WorkUnitItemStatus.COMPLETED for p in product_picks)
            back_order = _pick_back_order([b for b in back_orders if b.product_id == order_item.product_id])

            line = reconcile_line(order_item.quantity, picked_quantity, back_order)
            line.update({
                'order_item': order_item,
                'picked_quantity': picked_quantity,
                'has_pending_picks': has_pending_picks,
            })
            lines.append(line)

        packable = [line for line in lines if line['quantity_to_pack'] > 0]
        still_picking = [line for line in lines if line['has_pending_picks']]

        if not packable and still_picking:
            raise ValidationException(
                "Items are still being picked. Please complete picking before packing.",
                {'pending_items': [
                    {
                        'sku': line['order_item'].product.sku,
                        'name': line['order_item'].product.name,
                        'quantity_ordered': line['order_item'].quantity,
                        'quantity_picked': line['picked_quantity'],
                    }
                    for line in still_picking
                ]},
            )
        if not packable:
            raise ValidationException(
                "No items available to pack. All items have been shipped or are on back order."
            )

        total_weight = Decimal('0')
        total_volume = Decimal('0')
        items = []
        for line in packable:
            order_item = line['order_item']
            product = order_item.product
            unit_weight = product.weight if product.weight is not None else DEFAULT_UNIT_WEIGHT_GRAMS
            unit_volume = product.volume if product.volume is not None else DEFAULT_UNIT_VOLUME_CM3
            total_weight += unit_weight * line['quantity_to_pack']
            total_volume += unit_volume * line['quantity_to_pack']

            items.append({
                'id': str(order_item.pk),
                'product_id': product.pk,
                'product_name': product.name,
                'sku': product.sku,
                'quantity': line['quantity_to_pack'],
                'original_quantity': order_item.quantity,
                'quantity_back_ordered': line['quantity_back_ordered'],
                'quantity_already_shipped': line['quantity_already_shipped'],
                'actual_picked_quantity': line['picked_quantity'],
                'packing_context': line['packing_context'],
                'was_short_picked': line['was_short_picked'],
                'unit_price': str(order_item.unit_price),
                'total_price': str((order_item.unit_price * line['quantity_to_pack']).quantize(Decimal('0.01'))),
                'weight_grams': float(unit_weight),
            })

        is_back_order_fulfillment = any(
            line['packing_context'] == PackingContext.BACK_ORDER_FULFILLMENT for line in packable
        )
        has_short_picks = any(line['was_short_picked'] for line in packable)
        if has_short_picks:
            logger.warning(f"Order {order.order_number} is being packed with short-picked lines")

        return {
            'success': True,
            'order': {
                'id': str(order.pk),
                'order_number': order.order_number,
                'customer_name': order.customer_name,
                'customer_email': order.customer_email,
                'status': order.status,
                'total_amount': str(order.total_amount),
                'shipping_address': order.shipping_address,
                'is_back_order_fulfillment': is_back_order_fulfillment,
                'has_short_picks': has_short_picks,
                'items': items,
            },
            'packing_info': {
                'total_weight_grams': round(float(total_weight), 2),
                'total_volume': round(float(total_volume)),
                'suggested_box': suggest_box(total_volume),
            },
        }
