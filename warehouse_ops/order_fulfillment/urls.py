"""
URL configuration for Order Fulfillment.

Provides API endpoints for orders, pick lists, packing tasks and notifications.
"""

from rest_framework.routers import DefaultRouter

from .views import OrderViewSet, PickListViewSet, PackingTaskViewSet, NotificationViewSet

router = DefaultRouter()
router.register(r'orders', OrderViewSet, basename='order')
router.register(r'pick-lists', PickListViewSet, basename='pick-list')
router.register(r'packing-tasks', PackingTaskViewSet, basename='packing-task')
router.register(r'notifications', NotificationViewSet, basename='notification')

urlpatterns = router.urls
