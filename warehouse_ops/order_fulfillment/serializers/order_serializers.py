"""
Order serializers for Order Fulfillment.
"""

from rest_framework import serializers

from ..models import Order, OrderItem, BackOrder


class OrderItemSerializer(serializers.ModelSerializer):
    """Serializer for OrderItem model."""

    product_sku = serializers.CharField(source='product.sku', read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)
    line_total = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'product_sku', 'product_name', 'quantity', 'unit_price', 'line_total']
        read_only_fields = ['id']


class BackOrderSerializer(serializers.ModelSerializer):
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    quantity_outstanding = serializers.IntegerField(read_only=True)

    class Meta:
        model = BackOrder
        fields = [
            'id', 'product', 'product_sku', 'quantity_back_ordered', 'quantity_fulfilled',
            'quantity_outstanding', 'status', 'reason', 'created_at',
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Serializer for order listing."""

    picking_assigned_to_name = serializers.CharField(
        source='picking_assigned_to.display_name', read_only=True, default=None
    )
    packing_assigned_to_name = serializers.CharField(
        source='packing_assigned_to.display_name', read_only=True, default=None
    )

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'customer_name', 'status', 'priority', 'total_amount',
            'picking_assigned_to', 'picking_assigned_to_name',
            'packing_assigned_to', 'packing_assigned_to_name', 'created_at',
        ]
        read_only_fields = fields


class OrderDetailSerializer(OrderListSerializer):
    """Serializer for order details."""

    items = OrderItemSerializer(many=True, read_only=True)
    back_orders = BackOrderSerializer(many=True, read_only=True)

    class Meta(OrderListSerializer.Meta):
        fields = OrderListSerializer.Meta.fields + [
            'customer_email', 'shipping_address', 'notes',
            'picking_assigned_at', 'packing_assigned_at', 'updated_at',
            'items', 'back_orders',
        ]
        read_only_fields = fields
