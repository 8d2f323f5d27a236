"""
Audit event models for Order Fulfillment.

Events are append-only. Each event type has a fixed metadata shape listed in
``EVENT_DATA_FIELDS``; ``record()`` refuses anything else so consumers can
rely on the keys being present.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from django.db import models
from django.conf import settings
from django.utils import timezone


class WorkUnitEventType(models.TextChoices):
    CREATED = 'CREATED', 'Created'
    ASSIGNED = 'ASSIGNED', 'Assigned'
    STARTED = 'STARTED', 'Started'
    PAUSED = 'PAUSED', 'Paused'
    ITEM_COMPLETED = 'ITEM_COMPLETED', 'Item Completed'
    ITEM_SHORT = 'ITEM_SHORT', 'Item Short'
    REASSIGNED = 'REASSIGNED', 'Reassigned'
    SPLIT = 'SPLIT', 'Split'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'


_HANDOVER_FIELDS = frozenset({
    'from_user_id', 'from_user_name', 'to_user_id', 'to_user_name',
    'reason', 'reassigned_by', 'reassigned_by_name',
})

_ITEM_FIELDS = frozenset({
    'item_id', 'sku', 'quantity', 'quantity_completed', 'quantity_required', 'scanned_code',
})

EVENT_DATA_FIELDS = {
    WorkUnitEventType.CREATED: frozenset({'total_items'}),
    WorkUnitEventType.ASSIGNED: frozenset({
        'assigned_user_id', 'assigned_user_name', 'original_id', 'original_batch_number',
        'reason', 'assigned_by', 'assigned_by_name',
    }),
    WorkUnitEventType.STARTED: frozenset({'previous_status'}),
    WorkUnitEventType.PAUSED: frozenset({'previous_status', 'reason'}),
    WorkUnitEventType.ITEM_COMPLETED: _ITEM_FIELDS,
    WorkUnitEventType.ITEM_SHORT: _ITEM_FIELDS | {'short_pick_reason'},
    WorkUnitEventType.REASSIGNED: _HANDOVER_FIELDS | {
        'previous_status', 'new_status', 'completed_items', 'total_items',
    },
    WorkUnitEventType.SPLIT: _HANDOVER_FIELDS | {
        'continuation_id', 'continuation_batch_number',
        'partial_items_split', 'untouched_items_moved',
    },
    WorkUnitEventType.COMPLETED: frozenset({'completed_items', 'total_items'}),
    WorkUnitEventType.CANCELLED: frozenset({'previous_status'}),
}


def _to_json(value):
    if isinstance(value, dict):
        return {k: _to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json(v) for v in value]
    if isinstance(value, (Decimal, uuid.UUID)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def build_event_data(event_type, data):
    """
    Validate ``data`` against the shape of ``event_type``.

    Raises:
        ValueError: If keys are missing or unexpected
    """
    expected = EVENT_DATA_FIELDS[event_type]
    keys = set(data)
    missing = expected - keys
    unexpected = keys - expected
    if missing or unexpected:
        raise ValueError(
            f"Invalid {event_type} event data: missing {sorted(missing)}, unexpected {sorted(unexpected)}"
        )
    return _to_json(data)


class WorkUnitEvent(models.Model):
    """Abstract append-only event attached to a work unit."""

    # Name of the foreign key to the work unit on concrete subclasses
    unit_field = None

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event_type = models.CharField(max_length=20, choices=WorkUnitEventType.choices)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        help_text="User who performed the action"
    )
    notes = models.TextField(blank=True)
    data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        abstract = True
        ordering = ['created_at']

    def __str__(self):
        return f"{self.event_type} by {self.user} at {self.created_at}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError(f"{self.__class__.__name__} rows are append-only")
        super().save(*args, **kwargs)

    @classmethod
    def record(cls, unit, event_type, user=None, notes="", **data):
        """
        Append an event to ``unit``.

        Args:
            unit: The PickList or PackingTask the event belongs to
            event_type: WorkUnitEventType value
            user: User who performed the action
            notes: Free text
            **data: Metadata; must match EVENT_DATA_FIELDS[event_type]
        """
        return cls.objects.create(
            **{cls.unit_field: unit},
            event_type=event_type,
            user=user,
            notes=notes or "",
            data=build_event_data(event_type, data),
        )


class PickListEvent(WorkUnitEvent):
    unit_field = 'pick_list'

    pick_list = models.ForeignKey('order_fulfillment.PickList', on_delete=models.CASCADE, related_name='events')

    class Meta(WorkUnitEvent.Meta):
        db_table = 'pick_list_events'
        indexes = [models.Index(fields=['pick_list', 'event_type'], name='pick_event_type_idx')]


class PackingTaskEvent(WorkUnitEvent):
    unit_field = 'packing_task'

    packing_task = models.ForeignKey(
        'order_fulfillment.PackingTask', on_delete=models.CASCADE, related_name='events'
    )

    class Meta(WorkUnitEvent.Meta):
        db_table = 'packing_task_events'
        indexes = [models.Index(fields=['packing_task', 'event_type'], name='packing_event_type_idx')]
