"""
Packing serializers for Order Fulfillment.
"""

from rest_framework import serializers

from ..models import PackingTask, PackingTaskItem
from .work_unit_serializers import WorkUnitItemSerializer, WorkUnitListSerializer


class PackingTaskItemSerializer(WorkUnitItemSerializer):
    class Meta(WorkUnitItemSerializer.Meta):
        model = PackingTaskItem


class PackingTaskListSerializer(WorkUnitListSerializer):
    """Serializer for packing task listing."""

    class Meta(WorkUnitListSerializer.Meta):
        model = PackingTask


class PackRecordSerializer(serializers.Serializer):
    """Serializer for recording packed units."""

    item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
