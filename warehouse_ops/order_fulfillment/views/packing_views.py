"""
Packing views for Order Fulfillment.
"""

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from ..exceptions import BusinessException
from ..models import PackingTask
from ..services import PackingService
from ..serializers import (
    PackingTaskListSerializer, PackRecordSerializer,
    ReassignSerializer, BulkPackingTaskReassignSerializer,
)
from .base import WorkUnitViewMixin, error_response


class PackingTaskViewSet(WorkUnitViewMixin, viewsets.ReadOnlyModelViewSet):
    """ViewSet for packing tasks."""

    queryset = PackingTask.objects.all()

    def get_serializer_class(self):
        if self.action == 'pack':
            return PackRecordSerializer
        elif self.action == 'reassign':
            return ReassignSerializer
        elif self.action == 'bulk_reassign':
            return BulkPackingTaskReassignSerializer
        return PackingTaskListSerializer

    def retrieve(self, request, pk=None):
        """Packing task with its lines and progress statistics."""
        try:
            return Response(PackingService.get_task_detail(pk))
        except BusinessException as e:
            return error_response(e)

    @action(detail=True, methods=['post'])
    def pack(self, request, pk=None):
        """Record packed units for one line."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = PackingService.record_pack(
                pk, serializer.validated_data['item_id'], serializer.validated_data['quantity'], request.user
            )
        except BusinessException as e:
            return error_response(e)
        return Response(result)

    @action(detail=True, methods=['post'])
    def reassign(self, request, pk=None):
        return self._reassign(request, pk)

    @action(detail=False, methods=['post'], url_path='reassign', url_name='bulk-reassign')
    def bulk_reassign(self, request):
        """Reassign several packing tasks; tasks with progress are split."""
        return self._bulk_reassign(request, 'task_ids')
