import logging
from decimal import Decimal
from typing import NamedTuple

from django.db import IntegrityError, transaction

from ..exceptions import (ConflictError, InputValidationError,
                          InvalidStateError, NotFoundError,
                          translate_store_errors)
from ..models import Invoice, Payment
from ..money import ZERO, quantize_money, to_decimal
from .audit_helper import log_action
from .invoices import get_invoice
from .numbering import create_with_number, next_payment_number

logger = logging.getLogger(__name__)


class AppliedPayment(NamedTuple):
    payment: Payment
    invoice: Invoice
    # paid beyond the invoice total; reported, not kept as credit
    excess_amount: Decimal


def settle(total_amount, paid_amount, amount, current_status):
    """
    New (paid, balance, status) after `amount` is applied.
    - balance floors at zero (overpayment is accepted)
    - PAID once paid ≥ total, PARTIAL while 0 < paid < total
    """
    new_paid = quantize_money(paid_amount + amount)
    new_balance = max(ZERO, quantize_money(total_amount - new_paid))
    if new_paid >= total_amount:
        status = Invoice.Status.PAID
    elif new_paid > 0:
        status = Invoice.Status.PARTIAL
    else:
        status = current_status
    return new_paid, new_balance, status


# ----------------------------
# Payment-related workflows
# ----------------------------
@translate_store_errors
def apply_payment(company, invoice_id, amount, payment_date,
                  method=Payment.Method.BANK, reference="",
                  payment_number=None, user=None, **details):
    """
    Record a payment against an invoice/bill and settle it.
    Locks the invoice row so concurrent payments apply one after another.

    details: bank_account, cheque_date, clearance_date, notes, status
    """
    unknown = set(details) - {"bank_account", "cheque_date", "clearance_date",
                              "notes", "status"}
    if unknown:
        raise InputValidationError(
            f"Unknown payment fields: {', '.join(sorted(unknown))}")
    actor = user if getattr(user, "is_authenticated", False) else None

    # Everything inside either succeeds
    # as one unit or rolls back if something fails
    with transaction.atomic():
        invoice = get_invoice(company, invoice_id, lock=True)

        amount = quantize_money(to_decimal(amount, "amount"))
        if amount <= 0:
            raise InputValidationError("Payment amount must be greater than zero")
        if method not in Payment.Method.values:
            raise InputValidationError(f"Unknown payment method {method!r}")
        if details.get("status", Payment.Status.COMPLETED) not in Payment.Status.values:
            raise InputValidationError(f"Unknown payment status {details['status']!r}")
        if invoice.status in (Invoice.Status.CANCELLED, Invoice.Status.DRAFT):
            raise InvalidStateError(
                f"{invoice.invoice_number} is {invoice.status} and cannot take payments")

        def create(number):
            return Payment.objects.create(
                company=company,
                payment_number=number,
                invoice=invoice,
                payment_date=payment_date,
                amount=amount,
                method=method,
                reference=reference or "",
                currency_code=invoice.currency_code,
                created_by=actor,
                **details,
            )

        def is_taken(number):
            return Payment.objects.for_company(company).filter(
                payment_number=number).exists()

        if payment_number:
            # client-supplied numbers are not retried
            try:
                with transaction.atomic():
                    payment = create(payment_number)
            except IntegrityError:
                if not is_taken(payment_number):
                    raise
                raise ConflictError(f"Payment number {payment_number} is already used")
        else:
            payment = create_with_number(
                lambda: next_payment_number(company, payment_date),
                create, is_taken)

        # Update invoice paid / balance / status from the locked row
        old_status = invoice.status
        excess = max(ZERO, invoice.paid_amount + amount - invoice.total_amount)
        invoice.paid_amount, invoice.balance_amount, invoice.status = settle(
            invoice.total_amount, invoice.paid_amount, amount, invoice.status)
        invoice.updated_by = actor
        invoice.save(update_fields=["paid_amount", "balance_amount", "status",
                                    "updated_by", "updated_at"])

        log_action(action="pay", instance=payment, user=user,
                   changes={"invoice": invoice.invoice_number,
                            "amount": amount,
                            "invoice_status": [old_status, invoice.status],
                            "balance_amount": invoice.balance_amount,
                            "excess_amount": excess})

    logger.info("Payment %s of %s applied to %s (balance %s, %s)",
                payment.payment_number, amount, invoice.invoice_number,
                invoice.balance_amount, invoice.status)
    if excess > 0:
        logger.info("Payment %s exceeds %s by %s",
                    payment.payment_number, invoice.invoice_number, excess)
    return AppliedPayment(payment, invoice, quantize_money(excess))


@translate_store_errors
def update_payment_status(company, payment_id, status, clearance_date=None,
                          user=None):
    """Move a payment's clearance status; amount and invoice never change."""
    if status not in Payment.Status.values:
        raise InputValidationError(f"Unknown payment status {status!r}")

    with transaction.atomic():
        try:
            payment = (Payment.objects.for_company(company)
                       .select_for_update().get(pk=payment_id))
        except (Payment.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Payment {payment_id} not found")

        old_status = payment.status
        payment.status = status
        fields = ["status"]
        if clearance_date is not None:
            payment.clearance_date = clearance_date
            fields.append("clearance_date")
        payment.save(update_fields=fields)

        log_action(action="payment_status", instance=payment, user=user,
                   changes={"from": old_status, "to": status})

    logger.info("Payment %s status %s → %s",
                payment.payment_number, old_status, status)
    return payment
