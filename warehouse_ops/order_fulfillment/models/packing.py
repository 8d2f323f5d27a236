"""
Packing models for Order Fulfillment.
"""

from django.db import models

from .work_unit import WorkUnit, WorkUnitItem


class PackingTask(WorkUnit):
    """Batch of packing lines worked at a packing station."""

    entity_label = 'PackingTask'
    item_unit_field = 'packing_task'
    order_assignee_field = 'packing_assigned_to'
    order_assigned_at_field = 'packing_assigned_at'
    notification_link = '/dashboard/packing/{id}'

    class Meta(WorkUnit.Meta):
        db_table = 'packing_tasks'
        indexes = [
            models.Index(fields=['status', 'priority'], name='packing_task_status_idx'),
            models.Index(fields=['assigned_user', 'status'], name='packing_task_assignee_idx'),
        ]


class PackingTaskItem(WorkUnitItem):
    packing_task = models.ForeignKey(
        PackingTask,
        on_delete=models.CASCADE,
        related_name='items',
    )

    class Meta(WorkUnitItem.Meta):
        db_table = 'packing_task_items'
        indexes = [
            models.Index(fields=['packing_task', 'status'], name='packing_item_status_idx'),
        ]
