"""
Picking views for Order Fulfillment.
"""

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from ..exceptions import BusinessException
from ..models import PickList, ReassignmentStrategy
from ..services import PickingService
from ..serializers import (
    PickListListSerializer, PickListDetailSerializer, PickRecordSerializer,
    PickListPauseSerializer, ReassignSerializer, BulkPickListReassignSerializer,
)
from .base import WorkUnitViewMixin, error_response


class PickListViewSet(WorkUnitViewMixin, viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for pick lists.

    Provides listing plus the picker workflow (start, pause, pick) and the
    supervisor reassignment actions.
    """

    queryset = PickList.objects.all()

    def get_serializer_class(self):
        """Return appropriate serializer based on action."""
        if self.action == 'list':
            return PickListListSerializer
        elif self.action == 'pick':
            return PickRecordSerializer
        elif self.action == 'pause':
            return PickListPauseSerializer
        elif self.action == 'reassign':
            return ReassignSerializer
        elif self.action == 'bulk_reassign':
            return BulkPickListReassignSerializer
        return PickListDetailSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action == 'retrieve':
            queryset = queryset.prefetch_related('items__product', 'items__order', 'items__location', 'events__user')
        return queryset

    @action(detail=True, methods=['post'])
    def start(self, request, pk=None):
        """Start or resume a pick list."""
        try:
            return Response(PickingService.start_pick_list(pk, request.user))
        except BusinessException as e:
            return error_response(e)

    @action(detail=True, methods=['post'])
    def pause(self, request, pk=None):
        """Pause a pick list."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            return Response(PickingService.pause_pick_list(pk, request.user, serializer.validated_data['reason']))
        except BusinessException as e:
            return error_response(e)

    @action(detail=True, methods=['post'])
    def pick(self, request, pk=None):
        """Record a scanned pick for one line."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = PickingService.record_pick(
                pk,
                data['item_id'],
                data['quantity'],
                request.user,
                data['scanned_code'],
                data['short_pick_reason'],
            )
        except BusinessException as e:
            return error_response(e)
        return Response(result)

    @action(detail=True, methods=['post'])
    def reassign(self, request, pk=None):
        """Reassign a pick list, splitting off a continuation when work has started."""
        return self._reassign(request, pk)

    @action(detail=False, methods=['post'], url_path='reassign', url_name='bulk-reassign')
    def bulk_reassign(self, request):
        """Reassign several pick lists to one user."""
        return self._bulk_reassign(request, 'pick_list_ids', strategy=ReassignmentStrategy.SIMPLE)
