from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..exceptions import InvalidStateError
from ..managers import TenantManager
from .company import Company
from .contact import Contact


class Invoice(models.Model):
    """
    A customer invoice (SALES) or a vendor bill (PURCHASE).

    paid_amount / balance_amount / status are only moved by payments,
    cancellation and the overdue task; balance never goes below zero.
    """

    ITEM_PARENT_TYPE = "INVOICE"

    class Type(models.TextChoices):
        SALES = "SALES", "Invoice"
        PURCHASE = "PURCHASE", "Bill"

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        UNPAID = "UNPAID", "Unpaid"
        PARTIAL = "PARTIAL", "Partially paid"
        PAID = "PAID", "Paid"
        OVERDUE = "OVERDUE", "Overdue"
        CANCELLED = "CANCELLED", "Cancelled"
    """ Workflow:
        UNPAID → PARTIAL → PAID as payments arrive.
        UNPAID/PARTIAL → OVERDUE once due_date passes.
        UNPAID → CANCELLED only while no payment references it. """

    # Invoice belongs to one company (multi-tenant)
    company = models.ForeignKey(Company, on_delete=models.CASCADE)

    type = models.CharField(max_length=10, choices=Type.choices)

    # human-readable (e.g. "INV-2024-06-0001", "BILL-2024-06-0003")
    invoice_number = models.CharField(max_length=64)

    # Customer for SALES, vendor for PURCHASE
    contact = models.ForeignKey(
        Contact,
        # prevent deleting a contact who has an invoice
        on_delete=models.PROTECT,
        related_name="invoices",
    )

    # Order this invoice was converted from (PurchaseOrder or SalesOrder,
    # told apart by `type`)
    source_order_id = models.PositiveBigIntegerField(null=True, blank=True)

    # Key dates
    invoice_date = models.DateField()  # issue date; drives numbering
    due_date = models.DateField(null=True, blank=True)
    terms = models.TextField(blank=True)
    notes = models.TextField(blank=True)

    status = models.CharField(
        max_length=10, choices=Status.choices, default=Status.UNPAID)

    currency_code = models.CharField(max_length=10, default="INR")

    # Σ quantity × unit price of the items
    sub_total = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # Σ item totals
    total_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    paid_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # max(0, total_amount - paid_amount)
    balance_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))

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
        # Optimize for fast lookups by number, contact and report periods
        indexes = [
            models.Index(fields=["company", "contact"], name="idx_invoice_company_contact"),
            models.Index(fields=["company", "type", "invoice_date"],
                         name="idx_invoice_type_date"),
            models.Index(fields=["company", "status"], name="idx_invoice_company_status"),
        ]

        constraints = [
            # Within one company, each invoice number must be unique
            # Across companies, duplicates are allowed
            models.UniqueConstraint(
                fields=["company", "invoice_number"],
                name="uq_invoice_company_number"
            ),
            # An order converts into at most one live invoice per type
            models.UniqueConstraint(
                fields=["company", "type", "source_order_id"],
                condition=(
                    models.Q(source_order_id__isnull=False)
                    & ~models.Q(status="CANCELLED")
                ),
                name="uq_invoice_live_source_order",
            ),
            models.CheckConstraint(
                condition=models.Q(balance_amount__gte=0),
                name="ck_invoice_balance_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(paid_amount__gte=0),
                name="ck_invoice_paid_non_negative",
            ),
        ]

    def __str__(self):
        return self.invoice_number

    @property
    def items(self):
        from .order_item import OrderItem

        return OrderItem.objects.for_parent(self)

    @property
    def is_open(self):
        # still expecting money
        return self.status in (
            self.Status.UNPAID, self.Status.PARTIAL, self.Status.OVERDUE)

    def has_payments(self):
        return self.payments.exists()

    def clean(self):
        # Ensure contact chosen belongs to the same company
        if self.contact_id and self.contact.company_id != self.company_id:
            raise ValidationError("Contact must belong to the same company.")
        if self.balance_amount is not None and self.balance_amount < 0:
            raise ValidationError("Balance amount cannot be negative")

    def save(self, *args, **kwargs):
        # uniqueness is left to the database so numbering can retry on it
        self.full_clean(validate_unique=False, validate_constraints=False)
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        # refuse before Django opens its delete transaction;
        # the pre_delete receiver still covers queryset deletes
        if self.pk and self.has_payments():
            raise InvalidStateError(
                f"Cannot delete {self.invoice_number}: it has payments.")
        return super().delete(*args, **kwargs)
