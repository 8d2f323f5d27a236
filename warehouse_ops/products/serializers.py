from rest_framework import serializers
from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source="category.name", read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "sku",
            "upc",
            "barcode",
            "category",
            "category_name",
            "unit",
            "weight",
            "length",
            "width",
            "height",
            "is_active",
        ]
        read_only_fields = ["id"]
