"""
Order views for Order Fulfillment.
"""

from rest_framework import viewsets, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from users.permissions import IsWorkerOrAbove

from ..exceptions import BusinessException
from ..models import Order
from ..services import PackingService
from ..serializers import OrderListSerializer, OrderDetailSerializer
from .base import error_response


class OrderViewSet(viewsets.ReadOnlyModelViewSet):
    """Read access to orders and their packing breakdown."""

    queryset = Order.objects.select_related('picking_assigned_to', 'packing_assigned_to')
    permission_classes = [IsWorkerOrAbove]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'priority', 'picking_assigned_to', 'packing_assigned_to']
    search_fields = ['order_number', 'customer_name', 'customer_email']
    ordering_fields = ['created_at', 'order_number', 'priority']

    def get_serializer_class(self):
        if self.action == 'list':
            return OrderListSerializer
        return OrderDetailSerializer

    @action(detail=True, methods=['get'], url_path='packing-detail')
    def packing_detail(self, request, pk=None):
        """What can be packed for this order now, line by line."""
        try:
            return Response(PackingService.get_packing_detail(pk))
        except BusinessException as e:
            return error_response(e)
