from decimal import Decimal
from django.db import models
from ..managers import OrderItemManager
from ..money import quantize_money
from .company import Company
from .product import Product


class OrderItem(models.Model):
    """
    A line on a purchase order, sales order or invoice.

    All three share this table; (parent_type, parent_id) says which
    document the row belongs to. No database foreign key can span the
    three parent tables, so the services check the parent exists.
    total_amount = quantity * unit_price + tax_amount - discount_amount
    """

    class ParentType(models.TextChoices):
        PURCHASE = "PURCHASE", "Purchase order"
        SALES = "SALES", "Sales order"
        INVOICE = "INVOICE", "Invoice"

    company = models.ForeignKey(Company, on_delete=models.CASCADE)

    parent_type = models.CharField(max_length=10, choices=ParentType.choices)
    parent_id = models.PositiveBigIntegerField()

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,  # can’t delete a product that was traded
        related_name="order_items",
    )
    description = models.CharField(max_length=255, blank=True)

    quantity = models.DecimalField(
        max_digits=14, decimal_places=4, default=Decimal("0"))
    unit_price = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))

    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping + parent lookups
    objects = OrderItemManager()

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["parent_type", "parent_id"], name="idx_orderitem_parent"),
            models.Index(fields=["company", "product"],
                         name="idx_orderitem_company_product"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name="ck_orderitem_quantity_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(unit_price__gte=0),
                name="ck_orderitem_unit_price_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.parent_type}#{self.parent_id}: {self.quantity} x {self.product_id}"

    @property
    def line_subtotal(self):
        # quantity × unit price, before tax and discount
        return quantize_money(self.quantity * self.unit_price)
