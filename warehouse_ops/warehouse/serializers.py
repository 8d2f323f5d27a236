from rest_framework import serializers
from .models import (
    CycleCountCampaign,
    CycleCountEvent,
    CycleCountTask,
    InventoryTransaction,
    StockItem,
    StorageLocation,
)
from products.serializers import ProductSerializer


class StorageLocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = StorageLocation
        fields = ["id", "code", "name", "barcode", "zone", "is_active", "notes", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]


class StockItemSerializer(serializers.ModelSerializer):
    location_code = serializers.CharField(source="location.code", read_only=True)
    product_detail = ProductSerializer(source="product", read_only=True)
    available_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = StockItem
        fields = [
            "id",
            "location",
            "location_code",
            "product",
            "product_detail",
            "quantity_on_hand",
            "quantity_reserved",
            "available_quantity",
            "last_counted_at",
            "updated_at",
        ]
        read_only_fields = fields


class InventoryTransactionSerializer(serializers.ModelSerializer):
    product_sku = serializers.CharField(source="product.sku", read_only=True)
    location_code = serializers.CharField(source="location.code", read_only=True)

    class Meta:
        model = InventoryTransaction
        fields = [
            "id",
            "transaction_type",
            "product",
            "product_sku",
            "location",
            "location_code",
            "quantity_change",
            "reference_type",
            "reference_id",
            "user",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class CycleCountEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = CycleCountEvent
        fields = ["id", "event_type", "user", "previous_value", "new_value", "notes", "metadata", "created_at"]
        read_only_fields = fields


class CycleCountTaskSerializer(serializers.ModelSerializer):
    location_code = serializers.CharField(source="location.code", read_only=True)
    product_sku = serializers.CharField(source="product.sku", read_only=True, default=None)
    has_variance = serializers.BooleanField(read_only=True)
    events = CycleCountEventSerializer(many=True, read_only=True)

    class Meta:
        model = CycleCountTask
        fields = [
            "id",
            "campaign",
            "location",
            "location_code",
            "product",
            "product_sku",
            "assigned_to",
            "system_quantity",
            "counted_quantity",
            "variance",
            "variance_percentage",
            "has_variance",
            "tolerance_percentage",
            "status",
            "requires_review",
            "recount_reason",
            "notes",
            "completed_at",
            "created_at",
            "events",
        ]
        read_only_fields = fields


class CycleCountCampaignSerializer(serializers.ModelSerializer):
    progress_percentage = serializers.FloatField(read_only=True)

    class Meta:
        model = CycleCountCampaign
        fields = [
            "id",
            "name",
            "description",
            "status",
            "total_tasks",
            "completed_tasks",
            "variances_found",
            "progress_percentage",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CycleCountCampaignCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    location_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    assigned_to_id = serializers.IntegerField(required=False, allow_null=True, default=None)


class RecordCountSerializer(serializers.Serializer):
    counted_quantity = serializers.IntegerField(min_value=0, required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    skip = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        if not attrs["skip"] and attrs["counted_quantity"] is None:
            raise serializers.ValidationError({"counted_quantity": "This field is required unless skipping."})
        return attrs


class ApproveVarianceSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class RequestRecountSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    assign_to_id = serializers.IntegerField(required=False, allow_null=True, default=None)
