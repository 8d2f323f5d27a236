"""
Request serializers for reassignment endpoints.
"""

from rest_framework import serializers

from ..models import ReassignmentReason, ReassignmentStrategy


class _ChoiceUpperField(serializers.ChoiceField):
    """ChoiceField that accepts lower case input such as ``"split"``."""

    def to_internal_value(self, data):
        if isinstance(data, str):
            data = data.upper()
        return super().to_internal_value(data)


class ReassignSerializer(serializers.Serializer):
    """Body of a single pick list / packing task reassignment."""

    new_staff_id = serializers.IntegerField()
    strategy = _ChoiceUpperField(choices=ReassignmentStrategy.choices, default=ReassignmentStrategy.SPLIT)
    reason = _ChoiceUpperField(choices=ReassignmentReason.choices, default=ReassignmentReason.OTHER)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class BulkPickListReassignSerializer(serializers.Serializer):
    """Bulk pick list reassignment; always a simple transfer."""

    pick_list_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    to_user_id = serializers.IntegerField()
    reason = _ChoiceUpperField(choices=ReassignmentReason.choices, default=ReassignmentReason.OTHER)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class BulkPackingTaskReassignSerializer(serializers.Serializer):
    """Bulk packing task reassignment; tasks with progress are split."""

    task_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    to_user_id = serializers.IntegerField()
    strategy = _ChoiceUpperField(choices=ReassignmentStrategy.choices, default=ReassignmentStrategy.SPLIT)
    reason = _ChoiceUpperField(choices=ReassignmentReason.choices, default=ReassignmentReason.OTHER)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
