from django.db import models


class ProductCategory(models.Model):
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "product_categories"
        verbose_name = "Product Category"
        verbose_name_plural = "Product Categories"
        ordering = ["name"]

    def __str__(self):
        return self.name


class Product(models.Model):
    UNIT_CHOICES = [
        ("piece", "Piece"),
        ("box", "Box"),
        ("pallet", "Pallet"),
    ]

    name = models.CharField(max_length=200)
    sku = models.CharField(max_length=100, unique=True, db_index=True)
    upc = models.CharField(max_length=50, blank=True)
    barcode = models.CharField(max_length=100, blank=True)
    category = models.ForeignKey(
        ProductCategory, on_delete=models.PROTECT, related_name="products", null=True, blank=True
    )
    unit = models.CharField(max_length=20, choices=UNIT_CHOICES, default="piece")
    description = models.TextField(blank=True)
    weight = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True, help_text="Weight in grams"
    )
    length = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True, help_text="cm")
    width = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True, help_text="cm")
    height = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True, help_text="cm")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "products"
        verbose_name = "Product"
        verbose_name_plural = "Products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["sku"]),
            models.Index(fields=["category"]),
            models.Index(fields=["is_active"]),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    @property
    def volume(self):
        """Volume in cubic centimetres, or None when dimensions are incomplete."""
        if self.length and self.width and self.height:
            return self.length * self.width * self.height
        return None

    def matches_code(self, code):
        """True if a scanned code identifies this product."""
        if not code:
            return False
        return code in {c for c in (self.sku, self.upc, self.barcode) if c}
