import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from ..exceptions import (InputValidationError, InvalidStateError,
                          NotFoundError, translate_store_errors)
from ..models import Contact, Invoice, OrderItem
from .audit_helper import log_action
from .numbering import create_with_number, next_invoice_number
from .order_items import build_items, sum_items

logger = logging.getLogger(__name__)

# invoice type → (contact types accepted, default price)
INVOICE_SIDES = {
    Invoice.Type.SALES: ((Contact.Type.CUSTOMER, Contact.Type.BOTH),
                         "sales_price"),
    Invoice.Type.PURCHASE: ((Contact.Type.VENDOR, Contact.Type.BOTH),
                            "purchase_price"),
}


def get_invoice(company, invoice_id, lock=False, restrict_to_contact=None):
    """Invoice of this company or NotFoundError; lock=True holds the row."""
    qs = Invoice.objects.for_company(company)
    if restrict_to_contact is not None:
        # contact logins only ever see their own documents
        qs = qs.filter(contact_id=restrict_to_contact)
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=invoice_id)
    except (Invoice.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Invoice {invoice_id} not found")


@translate_store_errors
def create_invoice(company, invoice_type, contact_id, invoice_date, items,
                   due_date=None, terms="", notes="", user=None):
    """Create an UNPAID invoice/bill directly (not from an order)."""
    if invoice_type not in INVOICE_SIDES:
        raise InputValidationError("invoice type must be SALES or PURCHASE")
    if not items:
        raise InputValidationError("An invoice needs at least one item")
    accepted, price_field = INVOICE_SIDES[invoice_type]
    actor = user if getattr(user, "is_authenticated", False) else None

    with transaction.atomic():
        try:
            contact = Contact.objects.for_company(company).get(pk=contact_id)
        except (Contact.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Contact {contact_id} not found")
        if contact.type not in accepted:
            raise InputValidationError(
                f"{contact.name} is a {contact.type}; "
                f"{invoice_type} invoices need a matching contact")
        if due_date is None:
            due_date = invoice_date + timedelta(days=contact.payment_terms_days)

        def create(number):
            return Invoice.objects.create(
                company=company,
                type=invoice_type,
                invoice_number=number,
                contact=contact,
                invoice_date=invoice_date,
                due_date=due_date,
                terms=terms or "",
                notes=notes or "",
                status=Invoice.Status.UNPAID,
                currency_code=company.currency_code,
                created_by=actor,
                updated_by=actor,
            )

        def is_taken(number):
            return Invoice.objects.for_company(company).filter(
                invoice_number=number).exists()

        invoice = create_with_number(
            lambda: next_invoice_number(company, invoice_type, invoice_date),
            create, is_taken)

        new_items = OrderItem.objects.bulk_create(
            build_items(company, invoice, items, price_field))

        amounts = sum_items(new_items)
        for field, value in amounts.items():
            setattr(invoice, field, value)
        invoice.balance_amount = amounts["total_amount"]
        invoice.save(update_fields=[*amounts, "balance_amount", "updated_at"])

        log_action(action="create", instance=invoice, user=user,
                   changes={"invoice_number": invoice.invoice_number,
                            "total_amount": invoice.total_amount})

    logger.info("Created %s %s for %s (total %s)", invoice.get_type_display(),
                invoice.invoice_number, contact.name, invoice.total_amount)
    return invoice


@translate_store_errors
def cancel_invoice(company, invoice_id, user=None):
    """Cancel an invoice nobody has paid anything against."""
    with transaction.atomic():
        invoice = get_invoice(company, invoice_id, lock=True)
        if invoice.status == Invoice.Status.CANCELLED:
            raise InvalidStateError(
                f"{invoice.invoice_number} is already cancelled")
        # Void an invoice only while no payment references it
        if invoice.has_payments():
            raise InvalidStateError(
                f"{invoice.invoice_number} has payments and cannot be cancelled")

        old_status = invoice.status
        invoice.status = Invoice.Status.CANCELLED
        invoice.updated_by = user if getattr(user, "is_authenticated", False) else None
        invoice.save(update_fields=["status", "updated_by", "updated_at"])

        log_action(action="cancel", instance=invoice, user=user,
                   changes={"from": old_status, "to": invoice.status})

    logger.info("Cancelled %s", invoice.invoice_number)
    return invoice


def mark_overdue(company, today=None):
    """UNPAID/PARTIAL invoices past their due date → OVERDUE. Returns count."""
    today = today or timezone.localdate()
    with transaction.atomic():
        overdue = list(
            Invoice.objects.for_company(company)
            .select_for_update()
            .filter(
                status__in=[Invoice.Status.UNPAID, Invoice.Status.PARTIAL],
                due_date__lt=today,
                balance_amount__gt=0,
            )
        )
        for invoice in overdue:
            old_status = invoice.status
            invoice.status = Invoice.Status.OVERDUE
            invoice.save(update_fields=["status", "updated_at"])
            log_action(action="overdue", instance=invoice,
                       changes={"from": old_status, "due_date": invoice.due_date})

    if overdue:
        logger.info("Marked %d invoices overdue for %s", len(overdue), company.slug)
    return len(overdue)
