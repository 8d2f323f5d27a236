from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    CycleCountCampaignViewSet,
    CycleCountTaskViewSet,
    InventoryTransactionViewSet,
    StockItemViewSet,
    StorageLocationViewSet,
)

router = DefaultRouter()
router.register(r"locations", StorageLocationViewSet, basename="storagelocation")
router.register(r"stock-items", StockItemViewSet, basename="stockitem")
router.register(r"inventory-transactions", InventoryTransactionViewSet, basename="inventorytransaction")
router.register(r"cycle-counts/campaigns", CycleCountCampaignViewSet, basename="cyclecountcampaign")
router.register(r"cycle-counts/tasks", CycleCountTaskViewSet, basename="cyclecounttask")

urlpatterns = [
    path("", include(router.urls)),
]
