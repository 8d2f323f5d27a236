from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from order_fulfillment.exceptions import BusinessException
from order_fulfillment.permissions import Principal
from users.permissions import IsAdminOrManager, IsWorkerOrAbove

from .models import CycleCountCampaign, CycleCountTask, InventoryTransaction, StockItem, StorageLocation
from .serializers import (
    ApproveVarianceSerializer,
    CycleCountCampaignCreateSerializer,
    CycleCountCampaignSerializer,
    CycleCountTaskSerializer,
    InventoryTransactionSerializer,
    RecordCountSerializer,
    RequestRecountSerializer,
    StockItemSerializer,
    StorageLocationSerializer,
)
from warehouse.services.cycle_count_service import CycleCountService


def _error(exc):
    return Response(exc.to_dict(), status=exc.status_code)


class StorageLocationViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = StorageLocation.objects.all()
    serializer_class = StorageLocationSerializer
    permission_classes = [IsWorkerOrAbove]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    search_fields = ["code", "name", "barcode"]
    filterset_fields = ["zone", "is_active"]
    ordering = ["code"]


class StockItemViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = StockItem.objects.select_related("location", "product", "product__category").all()
    serializer_class = StockItemSerializer
    permission_classes = [IsWorkerOrAbove]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    search_fields = ["product__sku", "product__name", "location__code"]
    filterset_fields = ["location", "product"]
    ordering_fields = ["quantity_on_hand", "last_counted_at", "updated_at"]


class InventoryTransactionViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = InventoryTransaction.objects.select_related("product", "location").all()
    serializer_class = InventoryTransactionSerializer
    permission_classes = [IsWorkerOrAbove]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ["transaction_type", "product", "location", "reference_type", "reference_id"]
    ordering = ["-created_at"]


class CycleCountCampaignViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = CycleCountCampaign.objects.all()
    permission_classes = [IsWorkerOrAbove]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    search_fields = ["name", "description"]
    filterset_fields = ["status"]
    ordering_fields = ["created_at", "name"]

    def get_serializer_class(self):
        if self.action == "create":
            return CycleCountCampaignCreateSerializer
        return CycleCountCampaignSerializer

    def get_permissions(self):
        if self.action == "create":
            return [IsAdminOrManager()]
        return [IsWorkerOrAbove()]

    def create(self, request):
        """Create a campaign with tasks for every stocked product at the given locations."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            campaign = CycleCountService().create_campaign(
                data["name"],
                Principal.from_user(request.user),
                data["location_ids"],
                description=data["description"],
                assigned_to_id=data["assigned_to_id"],
            )
        except BusinessException as e:
            return _error(e)
        return Response(
            {"success": True, "data": CycleCountCampaignSerializer(campaign).data},
            status=status.HTTP_201_CREATED,
        )


class CycleCountTaskViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = CycleCountTask.objects.select_related("location", "product").prefetch_related("events").all()
    permission_classes = [IsWorkerOrAbove]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    search_fields = ["location__code", "product__sku"]
    filterset_fields = ["campaign", "status", "assigned_to", "requires_review"]
    ordering_fields = ["location__code", "variance", "completed_at"]

    def get_serializer_class(self):
        if self.action == "count":
            return RecordCountSerializer
        elif self.action == "approve":
            return ApproveVarianceSerializer
        elif self.action == "request_recount":
            return RequestRecountSerializer
        return CycleCountTaskSerializer

    def get_permissions(self):
        if self.action in ["approve", "request_recount"]:
            return [IsAdminOrManager()]
        return [IsWorkerOrAbove()]

    def _result(self, result):
        result["task"] = CycleCountTaskSerializer(result["task"]).data
        return Response(result)

    @action(detail=True, methods=["post"])
    def count(self, request, pk=None):
        """Record (or skip) the physical count for a task"""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = CycleCountService().record_count(
                pk, data["counted_quantity"], request.user, notes=data["notes"], skip=data["skip"]
            )
        except BusinessException as e:
            return _error(e)
        return self._result(result)

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        """Approve a variance under review"""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = CycleCountService().approve_variance(
                pk, Principal.from_user(request.user), notes=serializer.validated_data["notes"]
            )
        except BusinessException as e:
            return _error(e)
        return self._result(result)

    @action(detail=True, methods=["post"], url_path="request-recount")
    def request_recount(self, request, pk=None):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = CycleCountService().request_recount(
                pk, Principal.from_user(request.user), notes=data["notes"], assign_to_id=data["assign_to_id"]
            )
        except BusinessException as e:
            return _error(e)
        return self._result(result)
