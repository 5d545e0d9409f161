from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .exceptions import InvalidStateError
from .models import Invoice, Payment

""" Block invoice deletion if any payments reference it. """


# pre_delete signal auto-fires just before Django deletes a model instance
# (also for queryset.delete() and cascades from other models)
@receiver(pre_delete, sender=Invoice)
def prevent_delete_invoice_with_payments(sender, instance, **kwargs):
    if Payment.objects.filter(invoice_id=instance.pk).exists():
        # cancel is also refused for these; the payment link is permanent
        raise InvalidStateError(
            f"Cannot delete {instance.invoice_number}: it has payments.")
