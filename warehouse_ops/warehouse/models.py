from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from products.models import Product


def default_count_tolerance():
    return getattr(settings, "WMS_CYCLE_COUNT_TOLERANCE", Decimal("5.0"))


class StorageLocation(models.Model):
    code = models.CharField(max_length=50, unique=True, db_index=True)
    name = models.CharField(max_length=200)
    barcode = models.CharField(max_length=100, blank=True)
    zone = models.CharField(max_length=50, blank=True)
    is_active = models.BooleanField(default=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "storage_locations"
        verbose_name = "Storage Location"
        verbose_name_plural = "Storage Locations"
        ordering = ["code"]
        indexes = [
            models.Index(fields=["code"]),
            models.Index(fields=["zone"]),
            models.Index(fields=["is_active"]),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"


class StockItem(models.Model):
    location = models.ForeignKey(StorageLocation, on_delete=models.CASCADE, related_name="stock_items")
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="stock_items")
    quantity_on_hand = models.IntegerField(default=0)
    quantity_reserved = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    last_counted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "stock_items"
        verbose_name = "Stock Item"
        verbose_name_plural = "Stock Items"
        unique_together = [["location", "product"]]
        indexes = [
            models.Index(fields=["location", "product"]),
            models.Index(fields=["product"]),
        ]

    def __str__(self):
        return f"{self.product.name} at {self.location.code} - {self.quantity_on_hand}"

    @property
    def available_quantity(self):
        return self.quantity_on_hand - self.quantity_reserved


class InventoryTransactionType(models.TextChoices):
    RECEIPT = "RECEIPT", "Receipt"
    PICK = "PICK", "Pick"
    COUNT = "COUNT", "Cycle Count"
    ADJUSTMENT = "ADJUSTMENT", "Adjustment"


class InventoryTransaction(models.Model):
    """Append-only ledger of every on-hand quantity change."""

    transaction_type = models.CharField(max_length=20, choices=InventoryTransactionType.choices)
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="inventory_transactions")
    location = models.ForeignKey(
        StorageLocation, on_delete=models.PROTECT, related_name="inventory_transactions"
    )
    quantity_change = models.IntegerField(help_text="Signed change applied to quantity on hand")
    reference_type = models.CharField(max_length=50, blank=True)
    reference_id = models.CharField(max_length=64, blank=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="inventory_transactions"
    )
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "inventory_transactions"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["-created_at"]),
            models.Index(fields=["product", "location"]),
            models.Index(fields=["reference_type", "reference_id"]),
            models.Index(fields=["transaction_type"]),
        ]

    def __str__(self):
        return f"{self.transaction_type} {self.quantity_change:+d} {self.product.sku} @ {self.location.code}"


class CycleCountCampaignStatus(models.TextChoices):
    PLANNED = "PLANNED", "Planned"
    ACTIVE = "ACTIVE", "Active"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"


class CycleCountCampaign(models.Model):
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    status = models.CharField(
        max_length=20, choices=CycleCountCampaignStatus.choices, default=CycleCountCampaignStatus.PLANNED
    )
    total_tasks = models.PositiveIntegerField(default=0)
    completed_tasks = models.PositiveIntegerField(default=0)
    variances_found = models.PositiveIntegerField(default=0)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cycle_count_campaigns",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "cycle_count_campaigns"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name} ({self.status})"

    @property
    def progress_percentage(self):
        if self.total_tasks == 0:
            return 0.0
        return (self.completed_tasks / self.total_tasks) * 100.0


class CycleCountTaskStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    IN_PROGRESS = "IN_PROGRESS", "In Progress"
    COMPLETED = "COMPLETED", "Completed"
    VARIANCE_REVIEW = "VARIANCE_REVIEW", "Variance Review"
    RECOUNT_REQUIRED = "RECOUNT_REQUIRED", "Recount Required"
    SKIPPED = "SKIPPED", "Skipped"


class CycleCountTask(models.Model):
    campaign = models.ForeignKey(
        CycleCountCampaign, on_delete=models.CASCADE, related_name="tasks", null=True, blank=True
    )
    location = models.ForeignKey(StorageLocation, on_delete=models.PROTECT, related_name="cycle_count_tasks")
    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="cycle_count_tasks", null=True, blank=True
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cycle_count_tasks",
    )
    system_quantity = models.IntegerField(default=0)
    counted_quantity = models.IntegerField(null=True, blank=True)
    variance = models.IntegerField(null=True, blank=True)
    variance_percentage = models.DecimalField(max_digits=9, decimal_places=2, null=True, blank=True)
    tolerance_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, default=default_count_tolerance
    )
    status = models.CharField(
        max_length=20, choices=CycleCountTaskStatus.choices, default=CycleCountTaskStatus.PENDING
    )
    requires_review = models.BooleanField(default=False)
    recount_reason = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "cycle_count_tasks"
        ordering = ["location__code"]
        indexes = [
            models.Index(fields=["campaign", "status"]),
            models.Index(fields=["assigned_to", "status"]),
        ]

    def __str__(self):
        return f"Count {self.location.code} - {self.status}"

    @property
    def has_variance(self):
        return self.variance is not None and self.variance != 0


class CycleCountEventType(models.TextChoices):
    COUNT_RECORDED = "COUNT_RECORDED", "Count Recorded"
    COUNT_SKIPPED = "COUNT_SKIPPED", "Count Skipped"
    VARIANCE_NOTED = "VARIANCE_NOTED", "Variance Noted"
    VARIANCE_APPROVED = "VARIANCE_APPROVED", "Variance Approved"
    RECOUNT_REQUESTED = "RECOUNT_REQUESTED", "Recount Requested"


class CycleCountEvent(models.Model):
    task = models.ForeignKey(CycleCountTask, on_delete=models.CASCADE, related_name="events")
    event_type = models.CharField(max_length=30, choices=CycleCountEventType.choices)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name="cycle_count_events"
    )
    previous_value = models.IntegerField(null=True, blank=True)
    new_value = models.IntegerField(null=True, blank=True)
    notes = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "cycle_count_events"
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["task", "-created_at"])]

    def __str__(self):
        return f"{self.event_type} on task {self.task_id}"
