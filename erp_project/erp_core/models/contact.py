from django.core.exceptions import \
    ValidationError  # Built-in way to raise validation errors
from django.db import models

from ..managers import TenantManager
from .company import Company


# ---------- Contact ----------
# One table for both sides: customers receive invoices (AR side),
# vendors send bills (AP side), BOTH can do either
class Contact(models.Model):

    class Type(models.TextChoices):
        CUSTOMER = "CUSTOMER", "Customer"
        VENDOR = "VENDOR", "Vendor"
        BOTH = "BOTH", "Customer & Vendor"

    # Multi-tenant: every contact belongs to a single company.
    company = models.ForeignKey(Company, on_delete=models.CASCADE)

    type = models.CharField(max_length=20, choices=Type.choices)

    # The contact’s legal or trade name
    name = models.CharField(max_length=255)

    # Optional contact for billing/communication
    email = models.EmailField(null=True, blank=True)
    mobile = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    gstin = models.CharField(max_length=20, blank=True)

    # Standard credit terms
    payment_terms_days = models.IntegerField(default=30)
    """ Example: If terms = 30 → invoice due 30 days after issue. """

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:

        indexes = [
            models.Index(fields=["company", "name"], name="idx_contact_company_name"),
            models.Index(fields=["company", "type"], name="idx_contact_company_type"),
        ]

    # Display contact name in debug logs
    def __str__(self):
        return self.name

    @property
    def is_customer(self):
        return self.type in (self.Type.CUSTOMER, self.Type.BOTH)

    @property
    def is_vendor(self):
        return self.type in (self.Type.VENDOR, self.Type.BOTH)

    def clean(self):
        if self.payment_terms_days is not None and self.payment_terms_days < 0:
            raise ValidationError("Payment terms cannot be negative")
        return super().clean()

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
