from decimal import Decimal
from django.conf import settings
from django.db import models
from ..exceptions import InvalidStateError
from ..managers import TenantManager
from .company import Company
from .contact import Contact


class Order(models.Model):
    """
    Shared shape of purchase and sales orders.
    - created in DRAFT; items may only change while DRAFT
    - total_amount is derived from the items, never set by clients
    - subclasses name their fulfilled status (RECEIVED / DELIVERED)
    """

    # Set by subclasses
    ITEM_PARENT_TYPE = None  # OrderItem.parent_type of this order's items
    INVOICE_TYPE = None  # Invoice.type produced by conversion
    NUMBER_PREFIX = None  # PO / SO
    FULFILLED_STATUS = None

    company = models.ForeignKey(Company, on_delete=models.CASCADE)

    # e.g. "SO-1718438400000"
    order_number = models.CharField(max_length=64)
    order_date = models.DateField()

    # Sum of item totals
    total_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    notes = models.TextField(blank=True)

    # Audit fields (who did it)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        abstract = True

    def __str__(self):
        return self.order_number

    @property
    def counterparty(self):
        raise NotImplementedError

    @property
    def items(self):
        from .order_item import OrderItem

        return OrderItem.objects.for_parent(self)

    @property
    def is_convertible(self):
        return self.status in ("APPROVED", self.FULFILLED_STATUS)

    def allowed_transitions(self):
        # Current state → allowed next states
        return {
            "DRAFT": ["APPROVED", "CANCELLED"],
            "APPROVED": [self.FULFILLED_STATUS, "CANCELLED"],
            self.FULFILLED_STATUS: [],
            "CANCELLED": [],
        }.get(self.status, [])

    def transition_to(self, new_status):
        # If requested new_status isn’t allowed → block it
        if new_status not in self.allowed_transitions():
            raise InvalidStateError(
                f"Cannot move {self.order_number} from {self.status} "
                f"to {new_status}")
        self.status = new_status

    def recalc_total(self):
        """Recompute total_amount from the items currently stored."""
        total = self.items.aggregate(s=models.Sum("total_amount"))["s"]
        self.total_amount = total or Decimal("0.00")
        return self.total_amount


# ---------- Purchase orders (we buy from a vendor) ----------
class PurchaseOrder(Order):

    ITEM_PARENT_TYPE = "PURCHASE"
    INVOICE_TYPE = "PURCHASE"
    NUMBER_PREFIX = "PO"
    FULFILLED_STATUS = "RECEIVED"

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        APPROVED = "APPROVED", "Approved"
        RECEIVED = "RECEIVED", "Received"
        CANCELLED = "CANCELLED", "Cancelled"

    vendor = models.ForeignKey(
        Contact,
        on_delete=models.PROTECT,  # keep order history if vendor goes away
        related_name="purchase_orders",
    )
    status = models.CharField(
        max_length=10, choices=Status.choices, default=Status.DRAFT)

    class Meta:
        indexes = [
            models.Index(fields=["company", "status"], name="idx_po_company_status"),
            models.Index(fields=["company", "vendor"], name="idx_po_company_vendor"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "order_number"],
                name="uq_purchaseorder_company_number",
            )
        ]

    @property
    def counterparty(self):
        return self.vendor


# ---------- Sales orders (a customer buys from us) ----------
class SalesOrder(Order):

    ITEM_PARENT_TYPE = "SALES"
    INVOICE_TYPE = "SALES"
    NUMBER_PREFIX = "SO"
    FULFILLED_STATUS = "DELIVERED"

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        APPROVED = "APPROVED", "Approved"
        DELIVERED = "DELIVERED", "Delivered"
        CANCELLED = "CANCELLED", "Cancelled"

    customer = models.ForeignKey(
        Contact,
        on_delete=models.PROTECT,
        related_name="sales_orders",
    )
    status = models.CharField(
        max_length=10, choices=Status.choices, default=Status.DRAFT)

    class Meta:
        indexes = [
            models.Index(fields=["company", "status"], name="idx_so_company_status"),
            models.Index(fields=["company", "customer"], name="idx_so_company_customer"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "order_number"],
                name="uq_salesorder_company_number",
            )
        ]

    @property
    def counterparty(self):
        return self.customer
