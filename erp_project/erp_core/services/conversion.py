import logging
from datetime import timedelta

from django.db import IntegrityError, transaction

from ..exceptions import (ConflictError, InvalidStateError,
                          translate_store_errors)
from ..models import Invoice, OrderItem
from .audit_helper import log_action
from .numbering import create_with_number, next_invoice_number
from .order_items import get_order, sum_items

logger = logging.getLogger(__name__)


def live_invoice_for(company, invoice_type, order_id):
    """The non-cancelled invoice already converted from this order, if any."""
    return (
        Invoice.objects.for_company(company)
        .filter(type=invoice_type, source_order_id=order_id)
        .exclude(status=Invoice.Status.CANCELLED)
        .first()
    )


def copy_items(company, source_items, invoice):
    """Copy order lines onto the invoice verbatim (no re-pricing)."""
    copies = [
        OrderItem(
            company=company,
            parent_type=invoice.ITEM_PARENT_TYPE,
            parent_id=invoice.pk,
            product_id=item.product_id,
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            tax_amount=item.tax_amount,
            discount_amount=item.discount_amount,
            total_amount=item.total_amount,
        )
        for item in source_items
    ]
    return OrderItem.objects.bulk_create(copies)


@translate_store_errors
def convert_order_to_invoice(company, order_type, order_id, invoice_date,
                             due_date=None, terms="", notes="", user=None):
    """
    Turn an APPROVED / fulfilled order into an invoice (sales) or bill
    (purchase).

    Checks, first failure wins:
      1. order exists                       → NotFoundError
      2. order is APPROVED or fulfilled     → InvalidStateError
      3. no live invoice from this order    → ConflictError
      4. order has at least one item        → InvalidStateError

    Number, invoice, item copies and the order status move happen in one
    transaction; the order row stays locked so a second conversion waits
    and then sees the first one's invoice.
    """
    with transaction.atomic():
        order = get_order(company, order_type, order_id, lock=True)
        invoice_type = order.INVOICE_TYPE

        if not order.is_convertible:
            raise InvalidStateError(
                f"{order.order_number} is {order.status}; it must be approved, "
                f"received or delivered to convert")

        existing = live_invoice_for(company, invoice_type, order.pk)
        if existing is not None:
            raise ConflictError(
                f"{order.order_number} was already converted to "
                f"{existing.invoice_number}")

        source_items = list(order.items)
        if not source_items:
            raise InvalidStateError(
                f"{order.order_number} has no items to convert")

        contact = order.counterparty
        if due_date is None:
            # default to the contact's credit terms
            due_date = invoice_date + timedelta(days=contact.payment_terms_days)
        actor = user if getattr(user, "is_authenticated", False) else None
        amounts = sum_items(source_items)

        def create(number):
            return Invoice.objects.create(
                company=company,
                type=invoice_type,
                invoice_number=number,
                contact=contact,
                source_order_id=order.pk,
                invoice_date=invoice_date,
                due_date=due_date,
                terms=terms or "",
                notes=notes or "",
                status=Invoice.Status.UNPAID,
                currency_code=company.currency_code,
                paid_amount=0,
                balance_amount=amounts["total_amount"],
                created_by=actor,
                updated_by=actor,
                **amounts,
            )

        def is_taken(number):
            return Invoice.objects.for_company(company).filter(
                invoice_number=number).exists()

        try:
            invoice = create_with_number(
                lambda: next_invoice_number(company, invoice_type, invoice_date),
                create, is_taken)
        except IntegrityError:
            # partial unique index on (company, type, source_order_id)
            existing = live_invoice_for(company, invoice_type, order.pk)
            if existing is None:
                raise
            raise ConflictError(
                f"{order.order_number} was already converted to "
                f"{existing.invoice_number}")

        copy_items(company, source_items, invoice)

        # conversion is evidence of fulfilment
        old_status = order.status
        if order.status == "APPROVED":
            order.status = order.FULFILLED_STATUS
            order.updated_by = actor
            order.save(update_fields=["status", "updated_by", "updated_at"])

        log_action(action="convert", instance=invoice, user=user,
                   changes={"source": order.order_number,
                            "order_status": [old_status, order.status],
                            "items": len(source_items),
                            "total_amount": invoice.total_amount})

    logger.info("Converted %s into %s (%d items, total %s)",
                order.order_number, invoice.invoice_number,
                len(source_items), invoice.total_amount)
    return invoice
