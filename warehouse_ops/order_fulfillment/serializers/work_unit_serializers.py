"""
Serializers shared by pick lists and packing tasks.
"""

from rest_framework import serializers


class WorkUnitItemSerializer(serializers.ModelSerializer):
    """Base serializer for pick and packing lines."""

    order_number = serializers.CharField(source='order.order_number', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)
    location_code = serializers.CharField(source='location.code', read_only=True, default=None)
    remaining_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        fields = [
            'id', 'order', 'order_number', 'product', 'product_sku', 'product_name',
            'location', 'location_code', 'quantity_required', 'quantity_completed',
            'remaining_quantity', 'status', 'sequence', 'notes', 'short_pick_reason',
            'completed_by', 'completed_at', 'created_at',
        ]
        read_only_fields = fields


class WorkUnitListSerializer(serializers.ModelSerializer):
    """Base serializer for work unit listings."""

    assigned_user_name = serializers.CharField(source='assigned_user.display_name', read_only=True, default=None)
    parent_batch_number = serializers.CharField(source='parent.batch_number', read_only=True, default=None)
    is_continuation = serializers.BooleanField(read_only=True)
    progress_percentage = serializers.FloatField(read_only=True)

    class Meta:
        fields = [
            'id', 'batch_number', 'status', 'assigned_user', 'assigned_user_name',
            'priority', 'parent', 'parent_batch_number', 'is_continuation', 'total_items', 'completed_items',
            'progress_percentage', 'assigned_at', 'created_at',
        ]
        read_only_fields = fields


class WorkUnitEventSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.display_name', read_only=True, default=None)

    class Meta:
        fields = ['id', 'event_type', 'user', 'user_name', 'notes', 'data', 'created_at']
        read_only_fields = fields
