from django.contrib import admin
from .models import Product, ProductCategory


@admin.register(ProductCategory)
class ProductCategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "created_at"]
    search_fields = ["name", "description"]


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["name", "sku", "category", "unit", "is_active", "created_at"]
    list_filter = ["category", "unit", "is_active"]
    search_fields = ["name", "sku", "upc", "barcode"]
    readonly_fields = ["created_at", "updated_at"]
