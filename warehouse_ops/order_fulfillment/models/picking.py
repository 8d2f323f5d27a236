"""
Picking models for Order Fulfillment.
"""

from django.db import models

from .work_unit import WorkUnit, WorkUnitItem


class PickList(WorkUnit):
    """
    Batch of pick lines assigned to one picker.

    A pick list created by splitting another one points at it through
    ``parent`` and carries the ``-CONT`` suffix on its batch number.
    """

    entity_label = 'PickList'
    item_unit_field = 'pick_list'
    order_assignee_field = 'picking_assigned_to'
    order_assigned_at_field = 'picking_assigned_at'
    notification_link = '/dashboard/picking/mobile/{id}'

    class Meta(WorkUnit.Meta):
        db_table = 'pick_lists'
        indexes = [
            models.Index(fields=['status', 'priority'], name='pick_list_status_idx'),
            models.Index(fields=['assigned_user', 'status'], name='pick_list_assignee_idx'),
        ]


class PickListItem(WorkUnitItem):
    """Single pick line within a pick list."""

    pick_list = models.ForeignKey(
        PickList,
        on_delete=models.CASCADE,
        related_name='items',
    )

    class Meta(WorkUnitItem.Meta):
        db_table = 'pick_list_items'
        indexes = [
            models.Index(fields=['pick_list', 'status'], name='pick_item_status_idx'),
            models.Index(fields=['order', 'product'], name='pick_item_order_idx'),
        ]
