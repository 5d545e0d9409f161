from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .company import Company


class ChartOfAccount(models.Model):
    """
    Ledger account entry in the Chart of Accounts.
    - code must be unique per company
    - type: determines reporting side (balance sheet)
    - parent must be a group account; level = parent.level + 1
    """

    class Type(models.TextChoices):
        ASSET = "ASSET", "Asset"
        LIABILITY = "LIABILITY", "Liability"
        EQUITY = "EQUITY", "Equity"
        REVENUE = "REVENUE", "Revenue"
        EXPENSE = "EXPENSE", "Expense"

    # Types that normally carry a debit balance
    DEBIT_NORMAL = (Type.ASSET, Type.EXPENSE)

    company = models.ForeignKey(  # Each account belongs to one company
        Company,  # All reports must filter by company_id to prevent data leaks
        on_delete=models.CASCADE,
    )
    # Every account has a code
    # which lets you sort/group accounts consistently in reports.
    code = models.CharField(max_length=32)
    name = models.CharField(
        max_length=200
    )  # Human-readable name → "Cash on Hand", "Accounts Payable".

    type = models.CharField(max_length=10, choices=Type.choices)

    # Optional hierarchy:
    # (e.g. 1000 Current Assets → 1001 Cash, 1002 Bank)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        # you can’t delete a parent if children exist
        related_name="children",
    )
    # Group accounts only hold children, never postings
    is_group = models.BooleanField(default=False)
    level = models.PositiveSmallIntegerField(default=0)

    # “soft deactivate” accounts (stop new postings) without deleting history
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        ordering = ["code"]
        indexes = [  # Optimize queries
            # For reports grouped by type (balance sheet)
            models.Index(fields=["company", "type"], name="idx_coa_company_type"),
            models.Index(fields=["company", "parent"], name="idx_coa_company_parent"),
        ]

        """ Each company defines its own chart of accounts.
               Codes repeat across companies but must be unique within one. """
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"], name="uq_company_account_code"
            )
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    @property
    def is_debit_normal(self):
        return self.type in self.DEBIT_NORMAL

    def clean(self):
        # Check if parent account belongs to same company
        if self.parent_id and self.parent.company_id != self.company_id:
            raise ValidationError(
                "Parent & child accounts must belong to the same company"
            )

    def save(self, *args, **kwargs):
        self.full_clean(validate_unique=False, validate_constraints=False)
        return super().save(*args, **kwargs)


class LedgerTransaction(models.Model):
    """One posting: `amount` debited to one account, credited to another."""

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    date = models.DateField()

    debit_account = models.ForeignKey(
        ChartOfAccount,
        on_delete=models.PROTECT,  # accounts with postings can’t be deleted
        related_name="debit_postings",
    )
    credit_account = models.ForeignKey(
        ChartOfAccount,
        on_delete=models.PROTECT,
        related_name="credit_postings",
    )
    amount = models.DecimalField(max_digits=18, decimal_places=2)

    description = models.CharField(max_length=255, blank=True)
    reference = models.CharField(max_length=100, blank=True)

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
        ordering = ["date", "id"]
        indexes = [
            models.Index(fields=["company", "date"], name="idx_ledgertx_company_date"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=Decimal("0")),
                name="ck_ledgertx_amount_positive",
            ),
            models.CheckConstraint(
                condition=~models.Q(debit_account=models.F("credit_account")),
                name="ck_ledgertx_distinct_accounts",
            ),
        ]

    def __str__(self):
        return (f"{self.date} Dr {self.debit_account_id} "
                f"Cr {self.credit_account_id} {self.amount}")
