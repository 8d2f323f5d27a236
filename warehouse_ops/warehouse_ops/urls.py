"""
URL configuration for the warehouse_ops project.
"""
from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include
from django.views.decorators.http import require_http_methods
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView


@require_http_methods(["GET"])
def api_root(request):
    """API root view with available endpoints."""
    return JsonResponse({
        'message': 'Warehouse Operations API',
        'version': '1.0.0',
        'endpoints': {
            'authentication': {
                'token': '/api/auth/token/',
                'token_refresh': '/api/auth/token/refresh/',
            },
            'order_fulfillment': {
                'orders': '/api/orders/',
                'pick_lists': '/api/pick-lists/',
                'packing_tasks': '/api/packing-tasks/',
                'notifications': '/api/notifications/',
            },
            'warehouse': {
                'locations': '/api/locations/',
                'stock_items': '/api/stock-items/',
                'inventory_transactions': '/api/inventory-transactions/',
                'cycle_count_campaigns': '/api/cycle-counts/campaigns/',
                'cycle_count_tasks': '/api/cycle-counts/tasks/',
            },
        }
    })


urlpatterns = [
    path("admin/", admin.site.urls),

    # API endpoints
    path('api/', api_root, name='api-root'),  # Exact match for /api/ (must be first)
    path('api/auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/', include('order_fulfillment.urls')),
    path('api/', include('warehouse.urls')),
]
