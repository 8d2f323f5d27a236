from django.contrib import admin
from .models import (
    CycleCountCampaign,
    CycleCountEvent,
    CycleCountTask,
    InventoryTransaction,
    StockItem,
    StorageLocation,
)


@admin.register(StorageLocation)
class StorageLocationAdmin(admin.ModelAdmin):
    list_display = ["code", "name", "zone", "is_active"]
    list_filter = ["zone", "is_active"]
    search_fields = ["code", "name", "barcode"]


@admin.register(StockItem)
class StockItemAdmin(admin.ModelAdmin):
    list_display = ["product", "location", "quantity_on_hand", "quantity_reserved", "last_counted_at"]
    list_filter = ["location"]
    search_fields = ["product__sku", "product__name", "location__code"]


@admin.register(InventoryTransaction)
class InventoryTransactionAdmin(admin.ModelAdmin):
    list_display = ["transaction_type", "product", "location", "quantity_change", "user", "created_at"]
    list_filter = ["transaction_type"]
    search_fields = ["product__sku", "reference_id"]
    readonly_fields = ["created_at"]


class CycleCountTaskInline(admin.TabularInline):
    model = CycleCountTask
    extra = 0
    fields = ["location", "product", "system_quantity", "counted_quantity", "variance", "status"]


@admin.register(CycleCountCampaign)
class CycleCountCampaignAdmin(admin.ModelAdmin):
    list_display = ["name", "status", "total_tasks", "completed_tasks", "variances_found", "created_at"]
    list_filter = ["status"]
    inlines = [CycleCountTaskInline]


@admin.register(CycleCountTask)
class CycleCountTaskAdmin(admin.ModelAdmin):
    list_display = ["location", "product", "status", "system_quantity", "counted_quantity", "variance"]
    list_filter = ["status", "requires_review"]


@admin.register(CycleCountEvent)
class CycleCountEventAdmin(admin.ModelAdmin):
    list_display = ["task", "event_type", "user", "created_at"]
    list_filter = ["event_type"]
