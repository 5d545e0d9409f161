from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager


# ---------- Tenant / Company ----------
class Company(models.Model):

    """Tenant / Organization (one manufacturing business)"""
    # Store company’s full display name
    name = models.CharField(max_length=200)

    slug = models.SlugField(  # A URL-friendly identifier
        max_length=80, unique=True  # no two companies can have the same slug
    )

    # Link to a user account (creator or admin of company)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,  # use user model project is configured with
        null=True,
        blank=True,  # optional field
        on_delete=models.SET_NULL,
        related_name="owned_companies",
    )

    # All invoices, payments and reports of the company are in this currency
    currency_code = models.CharField(max_length=10, default="INR")

    # GST registration, printed on invoices
    gstin = models.CharField(max_length=20, blank=True)

    # Store timestamp when the record is first created
    created_at = models.DateTimeField(auto_now_add=True)

    # Meta options
    class Meta:
        verbose_name_plural = "companies"

    # String Representation
    def __str__(self):
        return self.name


# ---------- EntityMembership ----------
class EntityMembership(
    models.Model
):  # Bridge table (or a "join model") between User and Company

    class Role(models.TextChoices):
        # full control: settings, users, chart of accounts
        ADMIN = "ADMIN", "Admin"
        # orders, invoices, payments, reports
        ACCOUNTANT = "ACCOUNTANT", "Accountant"
        # a customer/vendor login: sees only its own documents
        CONTACT = "CONTACT", "Contact"

    # Link to the user
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        # If user is deleted, their memberships go too
        on_delete=models.CASCADE,
        related_name="memberships",  # See all companies users belong to
    )

    # Links to a Company record
    company = models.ForeignKey(
        "Company", on_delete=models.CASCADE, related_name="memberships"
    )

    # Store user’s role in the company
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.ACCOUNTANT,
    )

    # For CONTACT role: the customer/vendor this login represents
    contact = models.ForeignKey(
        "Contact",
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="memberships",
    )

    # Suspend someone’s access without deleting the record
    is_active = models.BooleanField(default=True)

    # Automatically record when membership was created
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # one user can only have one membership per company
        # (prevents duplicates)
        constraints = [
            models.UniqueConstraint(
                fields=["user", "company"], name="uq_user_company_membership"
            ),
        ]

        # make lookups fast
        # (important since almost every query will filter by company)
        indexes = [
            models.Index(fields=["company", "user"], name="idx_membership_company_user"),
        ]

    def __str__(self):
        # Make debugging easier
        return f"{self.user} @ {self.company} ({self.role})"

    @property
    def contact_scope(self):
        """Contact id the caller must restrict queries to, or None."""
        if self.role == self.Role.CONTACT:
            return self.contact_id
        return None

    def clean(self):
        # A contact login without a contact would see everything
        if self.role == self.Role.CONTACT and not self.contact_id:
            raise ValidationError("CONTACT memberships must be bound to a contact.")
        # Prevent cross-company contamination
        if self.contact_id and self.contact.company_id != self.company_id:
            raise ValidationError(
                "Membership contact must belong to the same company.")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
