"""
Django admin configuration for Order Fulfillment.
"""

from django.contrib import admin
from .models import (
    Order, OrderItem, BackOrder, PickList, PickListItem, PickListEvent,
    PackingTask, PackingTaskItem, PackingTaskEvent, Notification,
)


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer_name', 'status', 'priority', 'picking_assigned_to', 'created_at']
    list_filter = ['status', 'priority', 'created_at']
    search_fields = ['order_number', 'customer_name', 'customer_email']
    readonly_fields = ['id', 'created_at', 'updated_at']
    inlines = [OrderItemInline]


@admin.register(BackOrder)
class BackOrderAdmin(admin.ModelAdmin):
    list_display = ['order', 'product', 'quantity_back_ordered', 'quantity_fulfilled', 'status']
    list_filter = ['status']
    search_fields = ['order__order_number', 'product__sku']


class PickListItemInline(admin.TabularInline):
    model = PickListItem
    fk_name = 'pick_list'
    extra = 0
    fields = ['order', 'product', 'location', 'quantity_required', 'quantity_completed', 'status', 'sequence']


@admin.register(PickList)
class PickListAdmin(admin.ModelAdmin):
    list_display = ['batch_number', 'assigned_user', 'status', 'priority', 'parent', 'progress_percentage', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['batch_number', 'assigned_user__username']
    readonly_fields = ['id', 'created_at', 'updated_at']
    inlines = [PickListItemInline]


class PackingTaskItemInline(admin.TabularInline):
    model = PackingTaskItem
    fk_name = 'packing_task'
    extra = 0
    fields = ['order', 'product', 'quantity_required', 'quantity_completed', 'status', 'sequence']


@admin.register(PackingTask)
class PackingTaskAdmin(admin.ModelAdmin):
    list_display = ['batch_number', 'assigned_user', 'status', 'priority', 'parent', 'progress_percentage', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['batch_number', 'assigned_user__username']
    readonly_fields = ['id', 'created_at', 'updated_at']
    inlines = [PackingTaskItemInline]


class ReadOnlyEventAdmin(admin.ModelAdmin):
    """Events are append-only, so the admin only displays them."""

    list_display = ['event_type', 'user', 'created_at']
    list_filter = ['event_type', 'created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(PickListEvent)
class PickListEventAdmin(ReadOnlyEventAdmin):
    list_display = ['pick_list', 'event_type', 'user', 'created_at']
    search_fields = ['pick_list__batch_number']


@admin.register(PackingTaskEvent)
class PackingTaskEventAdmin(ReadOnlyEventAdmin):
    list_display = ['packing_task', 'event_type', 'user', 'created_at']
    search_fields = ['packing_task__batch_number']


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['title', 'recipient', 'notification_type', 'is_read', 'created_at']
    list_filter = ['notification_type', 'is_read']
    search_fields = ['title', 'recipient__username']
