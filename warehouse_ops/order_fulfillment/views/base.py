"""
Shared pieces of the Order Fulfillment views.
"""

import logging

from rest_framework import filters, status
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from users.permissions import IsAdminOrManager, IsWorkerOrAbove

from ..exceptions import BusinessException
from ..permissions import Principal
from ..services import ReassignmentEngine

logger = logging.getLogger(__name__)


def error_response(exc: BusinessException) -> Response:
    return Response(exc.to_dict(), status=exc.status_code)


class WorkUnitViewMixin:
    """
    List/filter setup and reassignment actions for pick lists and packing tasks.

    Concrete viewsets add the ``reassign`` / ``bulk_reassign`` actions and
    call ``_reassign`` / ``_bulk_reassign`` from them.
    """

    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'assigned_user', 'priority', 'parent']
    search_fields = ['batch_number', 'notes']
    ordering_fields = ['priority', 'created_at', 'batch_number', 'status']
    ordering = ['-priority', 'created_at']

    supervisor_actions = ('reassign', 'bulk_reassign')

    def get_permissions(self):
        if self.action in self.supervisor_actions:
            return [IsAdminOrManager()]
        return [IsWorkerOrAbove()]

    def get_queryset(self):
        return self.queryset.select_related('assigned_user', 'parent')

    def _engine(self):
        return ReassignmentEngine(self.queryset.model)

    def _reassign(self, request, pk):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = self._engine().reassign(
                pk,
                data['new_staff_id'],
                strategy=data['strategy'],
                reason=data['reason'],
                notes=data['notes'],
                principal=Principal.from_user(request.user),
            )
        except BusinessException as e:
            logger.info(f"Reassignment of {pk} rejected: {e.message}")
            return error_response(e)
        return Response(result, status=status.HTTP_200_OK)

    def _bulk_reassign(self, request, ids_field, strategy=None):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = self._engine().bulk_reassign(
                data[ids_field],
                data['to_user_id'],
                reason=data['reason'],
                notes=data['notes'],
                principal=Principal.from_user(request.user),
                strategy=strategy or data['strategy'],
            )
        except BusinessException as e:
            return error_response(e)
        return Response(result, status=status.HTTP_200_OK)
