"""
Order models for Order Fulfillment.
"""

import uuid
from decimal import Decimal
from django.db import models
from django.conf import settings
from django.utils import timezone


class OrderStatus(models.TextChoices):
    """Order status enumeration with workflow states."""
    PENDING = 'PENDING', 'Pending'
    ALLOCATED = 'ALLOCATED', 'Allocated'
    PICKING = 'PICKING', 'Picking'
    PICKED = 'PICKED', 'Picked'
    PACKING = 'PACKING', 'Packing'
    PACKED = 'PACKED', 'Packed'
    SHIPPED = 'SHIPPED', 'Shipped'
    BACKORDER = 'BACKORDER', 'Back Order'
    DELIVERED = 'DELIVERED', 'Delivered'
    CANCELLED = 'CANCELLED', 'Cancelled'


class OrderPriority(models.TextChoices):
    """Order priority levels."""
    LOW = 'LOW', 'Low'
    MEDIUM = 'MEDIUM', 'Medium'
    HIGH = 'HIGH', 'High'
    URGENT = 'URGENT', 'Urgent'


class Order(models.Model):
    """
    Customer order moving through picking, packing and shipping.

    The picking/packing assignee pointers mirror whoever currently owns the
    order's open work so per-order screens show the right person.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Unique order identifier"
    )

    customer_name = models.CharField(max_length=200)
    customer_email = models.EmailField(blank=True)

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        help_text="Current order status in the fulfillment workflow"
    )
    priority = models.CharField(
        max_length=10,
        choices=OrderPriority.choices,
        default=OrderPriority.MEDIUM,
    )

    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
    )
    shipping_address = models.JSONField(default=dict, blank=True)

    # Current owners of the order's picking and packing work
    picking_assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='picking_orders',
    )
    picking_assigned_at = models.DateTimeField(null=True, blank=True)
    packing_assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='packing_orders',
    )
    packing_assigned_at = models.DateTimeField(null=True, blank=True)

    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'priority']),
            models.Index(fields=['order_number']),
        ]

    def __str__(self):
        return f"Order {self.order_number} - {self.status}"


class OrderItem(models.Model):
    """Single product line of an order."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('products.Product', on_delete=models.PROTECT, related_name='order_items')
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    class Meta:
        ordering = ['order', 'product__sku']
        unique_together = ['order', 'product']

    def __str__(self):
        return f"{self.quantity} x {self.product.sku} ({self.order.order_number})"

    @property
    def line_total(self):
        return self.unit_price * self.quantity


class BackOrderStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    ALLOCATED = 'ALLOCATED', 'Allocated'
    PICKING = 'PICKING', 'Picking'
    PICKED = 'PICKED', 'Picked'
    PACKED = 'PACKED', 'Packed'
    FULFILLED = 'FULFILLED', 'Fulfilled'
    CANCELLED = 'CANCELLED', 'Cancelled'


class BackOrder(models.Model):
    """Portion of an order line deferred because stock was short."""

    AWAITING_STOCK = (BackOrderStatus.PENDING, BackOrderStatus.ALLOCATED)
    IN_FULFILLMENT = (BackOrderStatus.PICKING, BackOrderStatus.PICKED, BackOrderStatus.PACKED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='back_orders')
    product = models.ForeignKey('products.Product', on_delete=models.PROTECT, related_name='back_orders')
    quantity_back_ordered = models.PositiveIntegerField()
    quantity_fulfilled = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=20, choices=BackOrderStatus.choices, default=BackOrderStatus.PENDING)
    reason = models.CharField(max_length=200, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']
        indexes = [models.Index(fields=['order', 'status'])]

    def __str__(self):
        return f"Back order {self.quantity_outstanding} x {self.product.sku} ({self.status})"

    @property
    def quantity_outstanding(self):
        return self.quantity_back_ordered - self.quantity_fulfilled
