from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .company import Company


# ---------- Products (goods or services) ----------
class Product(models.Model):  # Something a company buys, makes or sells

    class Type(models.TextChoices):
        GOODS = "GOODS", "Goods"
        SERVICE = "SERVICE", "Service"

    # Multi-tenant: each product belongs to a company
    company = models.ForeignKey(
        Company,
        # If the company is deleted, its products are deleted too (CASCADE)
        on_delete=models.CASCADE,
    )

    # Required human-readable name of the product
    name = models.CharField(max_length=200)

    # Stock Keeping Unit (optional unique code per product)
    sku = models.CharField(max_length=80, null=True, blank=True)

    type = models.CharField(
        max_length=10, choices=Type.choices, default=Type.GOODS)

    # Free-text grouping used by the stock report filter
    category = models.CharField(max_length=100, blank=True)

    # GST tax-classification code
    hsn_code = models.CharField(max_length=20, blank=True)
    unit = models.CharField(max_length=20, default="pcs")

    # Standard prices per product
    sales_price = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    purchase_price = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    tax_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("0.00"))

    # Configured minimum stock level
    """ Empty → the stock report derives a reorder point from stock itself. """
    reorder_level = models.DecimalField(
        max_digits=14, decimal_places=4, null=True, blank=True)

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # for fast lookups
        indexes = [
            models.Index(fields=["company", "name"], name="idx_product_company_name")
        ]

        # Ensure each SKU is unique within a company
        constraints = [
            models.UniqueConstraint(
                fields=["company", "sku"], name="uq_company_product_sku"
            )
        ]

    def __str__(self):
        return self.name

    def clean(self):
        for field in ("sales_price", "purchase_price", "tax_percentage"):
            if getattr(self, field) is not None and getattr(self, field) < 0:
                raise ValidationError(f"{field} cannot be negative.")
        if self.reorder_level is not None and self.reorder_level < 0:
            raise ValidationError("reorder_level cannot be negative.")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
