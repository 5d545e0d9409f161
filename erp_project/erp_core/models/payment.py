from decimal import Decimal
from django.conf import settings
from django.db import models
from ..managers import TenantManager
from .company import Company
from .invoice import Invoice


class Payment(models.Model):
    """Money received against an invoice or paid against a bill.

    Amount and invoice never change after creation; only `status`
    moves (e.g. a cheque clears or bounces).
    """

    class Method(models.TextChoices):
        CASH = "CASH", "Cash"
        BANK = "BANK", "Bank transfer"
        CHEQUE = "CHEQUE", "Cheque"
        UPI = "UPI", "UPI"
        CARD = "CARD", "Card"

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        COMPLETED = "COMPLETED", "Completed"
        CLEARED = "CLEARED", "Cleared"
        BOUNCED = "BOUNCED", "Bounced"

    company = models.ForeignKey(Company, on_delete=models.CASCADE)

    # "2024-0001": sequential per year
    payment_number = models.CharField(max_length=32)

    invoice = models.ForeignKey(
        Invoice,
        # deletion of an invoice with payments is refused in signals.py
        on_delete=models.CASCADE,
        related_name="payments",
    )
    payment_date = models.DateField()
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    method = models.CharField(
        max_length=10, choices=Method.choices, default=Method.BANK)
    status = models.CharField(
        max_length=10, choices=Status.choices, default=Status.COMPLETED)

    # Bank / cheque details
    reference = models.CharField(max_length=100, blank=True)
    bank_account = models.CharField(max_length=100, blank=True)
    cheque_date = models.DateField(null=True, blank=True)
    clearance_date = models.DateField(null=True, blank=True)

    currency_code = models.CharField(max_length=10, default="INR")
    notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        ordering = ["payment_date", "id"]
        indexes = [
            models.Index(fields=["company", "payment_date"], name="idx_payment_company_date"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "payment_number"],
                name="uq_payment_company_number",
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gt=Decimal("0")),
                name="ck_payment_amount_positive",
            ),
        ]

    def __str__(self):
        return f"{self.payment_number} → {self.invoice_id} ({self.amount})"
