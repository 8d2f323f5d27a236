"""
Shared base models for assignable batches of warehouse work.

Pick lists and packing tasks are both "work units": a batch of line items
owned by one user, which can be handed over to somebody else mid-way.
"""

import uuid
from django.core.exceptions import ValidationError
from django.db import models
from django.conf import settings
from django.utils import timezone


class WorkUnitStatus(models.TextChoices):
    """Work unit status enumeration."""
    ASSIGNED = 'ASSIGNED', 'Assigned'
    IN_PROGRESS = 'IN_PROGRESS', 'In Progress'
    PAUSED = 'PAUSED', 'Paused'
    PARTIALLY_COMPLETED = 'PARTIALLY_COMPLETED', 'Partially Completed'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'


class WorkUnitItemStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    IN_PROGRESS = 'IN_PROGRESS', 'In Progress'
    COMPLETED = 'COMPLETED', 'Completed'


class ReassignmentStrategy(models.TextChoices):
    """How outstanding work is handed to a new assignee."""
    SIMPLE = 'SIMPLE', 'Transfer whole unit'
    SPLIT = 'SPLIT', 'Split into continuation'


class ReassignmentReason(models.TextChoices):
    WORKLOAD_BALANCE = 'WORKLOAD_BALANCE', 'Workload balance'
    SHIFT_CHANGE = 'SHIFT_CHANGE', 'Shift change'
    STAFF_UNAVAILABLE = 'STAFF_UNAVAILABLE', 'Staff unavailable'
    EMERGENCY = 'EMERGENCY', 'Emergency'
    SKILL_REQUIREMENT = 'SKILL_REQUIREMENT', 'Skill requirement'
    OTHER = 'OTHER', 'Other'


TERMINAL_STATUSES = (WorkUnitStatus.COMPLETED, WorkUnitStatus.CANCELLED)


class WorkUnit(models.Model):
    """
    Abstract batch of work assigned to a single user.

    Concrete subclasses declare which item foreign key points back at them
    and which order fields mirror their assignee.
    """

    # Overridden by concrete subclasses
    entity_label = 'WorkUnit'
    item_unit_field = None
    order_assignee_field = None
    order_assigned_at_field = None

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    batch_number = models.CharField(
        max_length=60,
        unique=True,
        help_text="Human readable batch identifier"
    )

    status = models.CharField(
        max_length=20,
        choices=WorkUnitStatus.choices,
        default=WorkUnitStatus.ASSIGNED,
    )
    assigned_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_%(class)ss',
    )
    priority = models.IntegerField(default=0, help_text="Higher runs first")

    # Continuation chain
    parent = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='continuations',
        help_text="Unit this one continues after a split"
    )

    notes = models.TextField(blank=True)

    total_items = models.PositiveIntegerField(default=0)
    completed_items = models.PositiveIntegerField(default=0)

    assigned_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ['-priority', 'created_at']

    def __str__(self):
        return f"{self.entity_label} {self.batch_number} - {self.status}"

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    @property
    def is_continuation(self):
        return self.parent_id is not None

    @property
    def progress_percentage(self):
        if self.total_items == 0:
            return 0.0
        return (self.completed_items / self.total_items) * 100.0

    def refresh_progress(self, save=True):
        """Recompute item counters from the current item rows."""
        self.total_items = self.items.count()
        self.completed_items = self.items.filter(status=WorkUnitItemStatus.COMPLETED).count()
        if save:
            self.save(update_fields=['total_items', 'completed_items', 'updated_at'])

    def record_event(self, event_type, user=None, notes="", **data):
        return self.events.model.record(self, event_type, user=user, notes=notes, **data)

    def append_note(self, note):
        self.notes = f"{self.notes}\n{note}" if self.notes else note


class WorkUnitItem(models.Model):
    """
    Abstract line of work: one product at one location for one order.

    Invariant: 0 <= quantity_completed <= quantity_required, and a line with
    nothing left to do is COMPLETED.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        'order_fulfillment.Order',
        on_delete=models.CASCADE,
        related_name='%(class)ss',
    )
    product = models.ForeignKey(
        'products.Product',
        on_delete=models.PROTECT,
        related_name='%(class)ss',
    )
    location = models.ForeignKey(
        'warehouse.StorageLocation',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='%(class)ss',
    )

    quantity_required = models.PositiveIntegerField()
    quantity_completed = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=20,
        choices=WorkUnitItemStatus.choices,
        default=WorkUnitItemStatus.PENDING,
    )
    sequence = models.PositiveIntegerField(default=0)

    notes = models.TextField(blank=True)
    short_pick_reason = models.CharField(max_length=200, blank=True)

    completed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ['sequence', 'created_at']

    def __str__(self):
        return f"{self.product.sku}: {self.quantity_completed}/{self.quantity_required}"

    @property
    def remaining_quantity(self):
        return self.quantity_required - self.quantity_completed

    @property
    def is_complete(self):
        return self.quantity_completed == self.quantity_required

    @property
    def is_partial(self):
        return 0 < self.quantity_completed < self.quantity_required

    @property
    def is_untouched(self):
        return self.quantity_completed == 0

    def clean(self):
        if self.quantity_completed > self.quantity_required:
            raise ValidationError({
                'quantity_completed': "Completed quantity cannot exceed the required quantity"
            })
        if self.is_complete and self.status != WorkUnitItemStatus.COMPLETED:
            raise ValidationError({'status': "Fully completed items must be COMPLETED"})

    def apply_progress(self, quantity, user=None, close=False):
        """
        Add completed units to this line.

        ``close`` finishes the line even when it falls short, as a short pick
        does. Raises ValueError when the quantity would break the invariant.
        """
        if quantity < 0:
            raise ValueError("Quantity cannot be negative")
        if self.quantity_completed + quantity > self.quantity_required:
            raise ValueError(
                f"Cannot complete {quantity} more - only {self.remaining_quantity} remaining"
            )

        self.quantity_completed += quantity
        if self.is_complete or close:
            self.status = WorkUnitItemStatus.COMPLETED
            self.completed_at = timezone.now()
            self.completed_by = user
        elif self.quantity_completed > 0:
            self.status = WorkUnitItemStatus.IN_PROGRESS
