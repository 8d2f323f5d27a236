"""
Picking serializers for Order Fulfillment.
"""

from rest_framework import serializers

from ..models import PickList, PickListItem, PickListEvent
from .work_unit_serializers import WorkUnitEventSerializer, WorkUnitItemSerializer, WorkUnitListSerializer


class PickListItemSerializer(WorkUnitItemSerializer):
    """Serializer for PickListItem model."""

    class Meta(WorkUnitItemSerializer.Meta):
        model = PickListItem


class PickListEventSerializer(WorkUnitEventSerializer):
    class Meta(WorkUnitEventSerializer.Meta):
        model = PickListEvent


class PickListListSerializer(WorkUnitListSerializer):
    """Serializer for pick list listing."""

    class Meta(WorkUnitListSerializer.Meta):
        model = PickList


class PickListDetailSerializer(WorkUnitListSerializer):
    """Serializer for pick list details."""

    items = PickListItemSerializer(many=True, read_only=True)
    events = PickListEventSerializer(many=True, read_only=True)

    class Meta(WorkUnitListSerializer.Meta):
        model = PickList
        fields = WorkUnitListSerializer.Meta.fields + [
            'notes', 'started_at', 'completed_at', 'updated_at', 'items', 'events',
        ]
        read_only_fields = fields


class PickRecordSerializer(serializers.Serializer):
    """Serializer for recording a scanned pick."""

    item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=0)
    scanned_code = serializers.CharField(max_length=100)
    short_pick_reason = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs['quantity'] == 0 and not attrs.get('short_pick_reason'):
            raise serializers.ValidationError({'quantity': "Quantity must be greater than 0"})
        return attrs


class PickListPauseSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
