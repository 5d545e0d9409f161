import logging
import threading
import time

from django.db import IntegrityError, transaction

from ..conf import get_setting
from ..exceptions import InputValidationError, InternalError
from ..models import DocumentSequence, Invoice, Payment

logger = logging.getLogger(__name__)

# ----------------------------
# Document series
# ----------------------------
# document_type → (prefix, one counter per month?)
SERIES = {
    "INVOICE": ("INV", True),  # INV-2024-06-0001
    "BILL": ("BILL", True),  # BILL-2024-06-0001
    "PAYMENT": ("", False),  # 2024-0001
}

# Invoice.type → document series
INVOICE_SERIES = {
    Invoice.Type.SALES: "INVOICE",
    Invoice.Type.PURCHASE: "BILL",
}

SEQUENCE_WIDTH = 4


def _series(document_type):
    try:
        return SERIES[document_type]
    except KeyError:
        raise InputValidationError(f"Unknown document type {document_type!r}")


def period_for(document_type, on_date):
    """(year, month) key of the counter; month is 0 for yearly series."""
    _, monthly = _series(document_type)
    return on_date.year, (on_date.month if monthly else 0)


def number_stem(document_type, year, month):
    # Everything in front of the trailing sequence
    prefix, monthly = _series(document_type)
    if monthly:
        return f"{prefix}-{year:04d}-{month:02d}-"
    return f"{year:04d}-"


def format_number(document_type, year, month, sequence):
    return f"{number_stem(document_type, year, month)}{sequence:0{SEQUENCE_WIDTH}d}"


def parse_sequence(number, stem):
    """Trailing numeric segment of `number`; a malformed one is an error."""
    tail = number[len(stem):] if number.startswith(stem) else ""
    if not tail.isdigit():
        raise InternalError(
            f"Cannot read sequence from existing document number {number!r}")
    return int(tail)


def _existing_numbers(company, document_type, stem):
    if document_type == "PAYMENT":
        qs = Payment.objects.for_company(company).filter(
            payment_number__startswith=stem)
        return qs.values_list("payment_number", flat=True)
    invoice_type = next(t for t, s in INVOICE_SERIES.items() if s == document_type)
    qs = Invoice.objects.for_company(company).filter(
        type=invoice_type, invoice_number__startswith=stem)
    return qs.values_list("invoice_number", flat=True)


def highest_existing_sequence(company, document_type, year, month):
    """
    Highest sequence already used in the period (0 if none).
    Seeds a counter row the first time a period is numbered, so data that
    predates the counter table keeps counting upward.
    """
    stem = number_stem(document_type, year, month)
    numbers = _existing_numbers(company, document_type, stem)
    return max((parse_sequence(n, stem) for n in numbers), default=0)


def next_sequence(company, document_type, year, month):
    """Atomically increment and return the counter for one period."""
    with transaction.atomic():
        # Lock the counter row until the surrounding transaction finishes;
        # get_or_create retries the lookup if another request inserts first
        counter, created = DocumentSequence.objects.select_for_update().get_or_create(
            company=company,
            document_type=document_type,
            year=year,
            month=month,
            defaults={
                "last_value": lambda: highest_existing_sequence(
                    company, document_type, year, month),
            },
        )
        if created:
            logger.info(
                "Started %s counter for %s %04d-%02d at %d",
                document_type, company.slug, year, month, counter.last_value,
            )
        counter.last_value += 1
        counter.save(update_fields=["last_value", "updated_at"])
        return counter.last_value


def next_number(company, document_type, on_date):
    """Next human-readable number of a series for the period of `on_date`."""
    year, month = period_for(document_type, on_date)
    sequence = next_sequence(company, document_type, year, month)
    return format_number(document_type, year, month, sequence)


def next_invoice_number(company, invoice_type, invoice_date):
    # keyed on the invoice's own date
    return next_number(company, INVOICE_SERIES[invoice_type], invoice_date)


def next_payment_number(company, payment_date):
    return next_number(company, "PAYMENT", payment_date)


_stamp_lock = threading.Lock()
_last_stamp = 0


def order_number(prefix):
    """PO-/SO- numbers are millisecond timestamps: no counter lookup needed.
    Stamps only move forward within a process; the unique constraint
    catches clashes between processes."""
    global _last_stamp
    with _stamp_lock:
        _last_stamp = max(_last_stamp + 1, int(time.time() * 1000))
        return f"{prefix}-{_last_stamp}"


def create_with_number(allocate, create, is_taken):
    """
    Allocate a number and create the document with it.

    allocate() → candidate number
    create(number) → saved document
    is_taken(number) → True if the IntegrityError came from that number

    A collision on the number (a hand-entered number, a counter that fell
    behind) is retried with a fresh number; other integrity errors propagate.
    """
    attempts = get_setting("ERP_NUMBERING_MAX_RETRIES")
    for attempt in range(1, attempts + 1):
        number = allocate()
        try:
            # savepoint: a failed insert must not poison the outer transaction
            with transaction.atomic():
                return create(number)
        except IntegrityError:
            if not is_taken(number):
                raise
            logger.warning(
                "Document number %s already taken (attempt %d of %d)",
                number, attempt, attempts,
            )
    raise InternalError(
        f"Could not allocate a unique document number after {attempts} attempts")
