from django.db import models

# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to a company
# -----------------------------------------
# Define subclass of Django’s QuerySet
class TenantQuerySet(models.QuerySet):
    def for_company(self, company):         # Add queryset helper
        return self.filter(company=company) # Apply filter

    def active(self, company):
        return self.filter(
                            company=company, # enforce tenant scoping
                            is_active=True   # only fetch active records
                        )
    # Enables query:
    # Contact.objects.active(request.company)


# Attach TenantQuerySet to .objects
class TenantManager(models.Manager):

    def get_queryset(self): # ensure every model gets TenantQuerySet(so .for_company() is always available)
        return TenantQuerySet(self.model, using=self._db)

    def for_company(self, company): # can call for_company() directly on objects
        return self.get_queryset().for_company(company)

    def active(self, company):
        return self.get_queryset().active(company)


# ---------------------------------------------
# Order items are keyed by (parent_type, parent_id)
# instead of one foreign key per document kind
# ---------------------------------------------
class OrderItemQuerySet(TenantQuerySet):
    def for_parent(self, parent):
        # parent is a PurchaseOrder, SalesOrder or Invoice instance
        return self.filter(
            parent_type=parent.ITEM_PARENT_TYPE,
            parent_id=parent.pk,
        )

    def for_invoice_type(self, invoice_type):
        # items copied onto (non-cancelled) invoices of one type
        from .models import Invoice

        invoice_ids = Invoice.objects.filter(type=invoice_type).exclude(
            status=Invoice.Status.CANCELLED
        ).values("pk")
        return self.filter(parent_type="INVOICE", parent_id__in=invoice_ids)


class OrderItemManager(TenantManager):
    def get_queryset(self):
        return OrderItemQuerySet(self.model, using=self._db)

    def for_parent(self, parent):
        return self.get_queryset().for_parent(parent)

    def for_invoice_type(self, invoice_type):
        return self.get_queryset().for_invoice_type(invoice_type)
