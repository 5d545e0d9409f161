import functools
import json
import logging
from decimal import Decimal

from django.http import JsonResponse
from django.utils.dateparse import parse_date
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from . import services
from .exceptions import InputValidationError, LedgerError, NotFoundError
from .models import EntityMembership

logger = logging.getLogger(__name__)

# error kind → HTTP status
STATUS_BY_KIND = {
    "not_found": 404,
    "validation": 400,
    "invalid_state": 400,
    "conflict": 409,
    "internal": 500,
}

# URL segment → OrderItem.parent_type / Invoice.type
ORDER_TYPES = {"purchase": "PURCHASE", "sales": "SALES"}

STAFF = (EntityMembership.Role.ADMIN, EntityMembership.Role.ACCOUNTANT)
ADMIN_ONLY = (EntityMembership.Role.ADMIN,)
ANY_ROLE = tuple(EntityMembership.Role.values)


def _error(kind, message, status=None):
    return JsonResponse(
        {"ok": False, "error": {"kind": kind, "message": message}},
        status=status or STATUS_BY_KIND.get(kind, 500),
    )


def ledger_view(roles=STAFF):
    """
    Resolve tenant + role for a JSON endpoint and map LedgerError kinds
    to HTTP statuses. The wrapped view returns a dict.
    """

    def decorator(view):
        @functools.wraps(view)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return _error("unauthorized", "Authentication required", 401)
            membership = getattr(request, "membership", None)
            if getattr(request, "company", None) is None or membership is None:
                return _error("forbidden", "No active company membership", 403)
            if membership.role not in roles:
                return _error("forbidden", "Your role cannot do this", 403)
            try:
                payload = view(request, *args, **kwargs)
            except LedgerError as exc:
                if exc.kind == "internal":
                    logger.error("%s failed: %s", view.__name__, exc.message)
                return _error(exc.kind, exc.message)
            return JsonResponse({"ok": True, **payload})

        return wrapper

    return decorator


# ---------- request parsing ----------
def _json_from_body(request):
    try:
        data = json.loads(request.body.decode("utf-8") or "{}")
    except (ValueError, UnicodeDecodeError):
        raise InputValidationError("Request body must be JSON")
    if not isinstance(data, dict):
        raise InputValidationError("Request body must be a JSON object")
    return data


def _date(value, field, required=True):
    if not value:
        if required:
            raise InputValidationError(f"{field} is required")
        return None
    try:
        parsed = parse_date(str(value))
    except ValueError:
        # well formed but impossible, e.g. 2024-02-30
        raise InputValidationError(f"{field} is not a valid date")
    if parsed is None:
        raise InputValidationError(f"{field} must be a YYYY-MM-DD date")
    return parsed


def _order_type(segment):
    try:
        return ORDER_TYPES[segment]
    except KeyError:
        raise NotFoundError(f"Unknown order type {segment!r}")


# ---------- serializers ----------
def _serialize_money(value):
    return f"{Decimal(value or Decimal('0.00')):.2f}"


def _serialize_item(item):
    return {
        "id": item.id,
        "product_id": item.product_id,
        "description": item.description,
        "quantity": str(item.quantity),
        "unit_price": _serialize_money(item.unit_price),
        "tax_amount": _serialize_money(item.tax_amount),
        "discount_amount": _serialize_money(item.discount_amount),
        "total_amount": _serialize_money(item.total_amount),
    }


def _serialize_order(order):
    return {
        "id": order.id,
        "order_number": order.order_number,
        "order_date": order.order_date.isoformat(),
        "status": order.status,
        "counterparty_id": order.counterparty.id,
        "total_amount": _serialize_money(order.total_amount),
        "notes": order.notes,
        "items": [_serialize_item(i) for i in order.items],
    }


def _serialize_invoice(invoice, with_items=True):
    data = {
        "id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "type": invoice.type,
        "contact_id": invoice.contact_id,
        "source_order_id": invoice.source_order_id,
        "invoice_date": invoice.invoice_date.isoformat(),
        "due_date": invoice.due_date.isoformat() if invoice.due_date else None,
        "status": invoice.status,
        "sub_total": _serialize_money(invoice.sub_total),
        "tax_amount": _serialize_money(invoice.tax_amount),
        "discount_amount": _serialize_money(invoice.discount_amount),
        "total_amount": _serialize_money(invoice.total_amount),
        "paid_amount": _serialize_money(invoice.paid_amount),
        "balance_amount": _serialize_money(invoice.balance_amount),
    }
    if with_items:
        data["items"] = [_serialize_item(i) for i in invoice.items]
    return data


def _serialize_payment(payment):
    return {
        "id": payment.id,
        "payment_number": payment.payment_number,
        "invoice_id": payment.invoice_id,
        "payment_date": payment.payment_date.isoformat(),
        "amount": _serialize_money(payment.amount),
        "method": payment.method,
        "status": payment.status,
        "reference": payment.reference,
    }


def _serialize_account(account):
    return {
        "id": account.id,
        "code": account.code,
        "name": account.name,
        "type": account.type,
        "parent_id": account.parent_id,
        "is_group": account.is_group,
        "level": account.level,
    }


# ---------- orders ----------
@require_POST
@ledger_view()
def create_order_view(request, order_type):
    data = _json_from_body(request)
    order = services.create_order(
        request.company,
        _order_type(order_type),
        counterparty_id=data.get("counterparty_id"),
        order_date=_date(data.get("order_date"), "order_date"),
        items=data.get("items") or [],
        notes=data.get("notes", ""),
        user=request.user,
    )
    return {"order": _serialize_order(order)}


@require_POST
@ledger_view()
def order_status_view(request, order_type, order_id):
    data = _json_from_body(request)
    order = services.transition_order(
        request.company, _order_type(order_type), order_id,
        data.get("status"), user=request.user)
    return {"order": _serialize_order(order)}


@require_POST
@ledger_view()
def add_order_item_view(request, order_type, order_id):
    data = _json_from_body(request)
    item = services.add_item(
        request.company,
        _order_type(order_type),
        order_id,
        product_id=data.get("product_id"),
        quantity=data.get("quantity"),
        unit_price=data.get("unit_price"),
        tax_amount=data.get("tax_amount", 0),
        discount_amount=data.get("discount_amount", 0),
        description=data.get("description", ""),
        user=request.user,
    )
    order = services.order_items.get_order(
        request.company, item.parent_type, item.parent_id)
    return {"item": _serialize_item(item),
            "order_total": _serialize_money(order.total_amount)}


@require_http_methods(["PATCH", "DELETE"])
@ledger_view()
def order_item_view(request, item_id):
    if request.method == "DELETE":
        total = services.remove_item(request.company, item_id, user=request.user)
        return {"order_total": _serialize_money(total)}
    item = services.update_item(
        request.company, item_id, user=request.user, **_json_from_body(request))
    order = services.order_items.get_order(
        request.company, item.parent_type, item.parent_id)
    return {"item": _serialize_item(item),
            "order_total": _serialize_money(order.total_amount)}


@require_POST
@ledger_view()
def convert_order_view(request, order_type, order_id):
    data = _json_from_body(request)
    invoice = services.convert_order_to_invoice(
        request.company,
        _order_type(order_type),
        order_id,
        invoice_date=_date(data.get("invoice_date"), "invoice_date"),
        due_date=_date(data.get("due_date"), "due_date", required=False),
        terms=data.get("terms", ""),
        notes=data.get("notes", ""),
        user=request.user,
    )
    return {"invoice": _serialize_invoice(invoice)}


# ---------- invoices & payments ----------
@require_POST
@ledger_view()
def create_invoice_view(request):
    data = _json_from_body(request)
    invoice = services.create_invoice(
        request.company,
        data.get("type"),
        contact_id=data.get("contact_id"),
        invoice_date=_date(data.get("invoice_date"), "invoice_date"),
        items=data.get("items") or [],
        due_date=_date(data.get("due_date"), "due_date", required=False),
        terms=data.get("terms", ""),
        notes=data.get("notes", ""),
        user=request.user,
    )
    return {"invoice": _serialize_invoice(invoice)}


@require_GET
@ledger_view(roles=ANY_ROLE)
def invoice_detail_view(request, invoice_id):
    invoice = services.get_invoice(
        request.company, invoice_id,
        restrict_to_contact=request.contact_scope)
    data = _serialize_invoice(invoice)
    data["payments"] = [_serialize_payment(p) for p in invoice.payments.all()]
    return {"invoice": data}


@require_POST
@ledger_view()
def cancel_invoice_view(request, invoice_id):
    invoice = services.cancel_invoice(request.company, invoice_id, user=request.user)
    return {"invoice": _serialize_invoice(invoice, with_items=False)}


@require_POST
@ledger_view()
def apply_payment_view(request, invoice_id):
    data = _json_from_body(request)
    details = {
        key: data[key] for key in ("bank_account", "notes", "status") if key in data
    }
    for key in ("cheque_date", "clearance_date"):
        if data.get(key):
            details[key] = _date(data[key], key)
    result = services.apply_payment(
        request.company,
        invoice_id,
        amount=data.get("amount"),
        payment_date=_date(data.get("payment_date"), "payment_date"),
        method=data.get("method", "BANK"),
        reference=data.get("reference", ""),
        payment_number=data.get("payment_number"),
        user=request.user,
        **details,
    )
    return {
        "payment": _serialize_payment(result.payment),
        "invoice": _serialize_invoice(result.invoice, with_items=False),
        "excess_amount": _serialize_money(result.excess_amount),
    }


@require_POST
@ledger_view()
def payment_status_view(request, payment_id):
    data = _json_from_body(request)
    payment = services.update_payment_status(
        request.company, payment_id, data.get("status"),
        clearance_date=_date(data.get("clearance_date"), "clearance_date",
                             required=False),
        user=request.user)
    return {"payment": _serialize_payment(payment)}


# ---------- chart of accounts ----------
@require_POST
@ledger_view(roles=ADMIN_ONLY)
def create_account_view(request):
    data = _json_from_body(request)
    account = services.create_account(
        request.company,
        code=data.get("code"),
        name=data.get("name"),
        account_type=data.get("type"),
        parent_id=data.get("parent_id"),
        is_group=bool(data.get("is_group", False)),
        user=request.user,
    )
    return {"account": _serialize_account(account)}


@require_http_methods(["DELETE"])
@ledger_view(roles=ADMIN_ONLY)
def delete_account_view(request, account_id):
    services.delete_account(request.company, account_id, user=request.user)
    return {"deleted": account_id}


@require_POST
@ledger_view()
def post_transaction_view(request):
    data = _json_from_body(request)
    posting = services.post_transaction(
        request.company,
        date=_date(data.get("date"), "date"),
        debit_account_id=data.get("debit_account_id"),
        credit_account_id=data.get("credit_account_id"),
        amount=data.get("amount"),
        description=data.get("description", ""),
        reference=data.get("reference", ""),
        user=request.user,
    )
    return {"transaction": {
        "id": posting.id,
        "date": posting.date.isoformat(),
        "debit_account_id": posting.debit_account_id,
        "credit_account_id": posting.credit_account_id,
        "amount": _serialize_money(posting.amount),
    }}


# ---------- reports ----------
@require_GET
@ledger_view(roles=ANY_ROLE)
def partner_ledger_view(request, partner_id):
    return services.partner_ledger(
        request.company,
        partner_id,
        start_date=_date(request.GET.get("start_date"), "start_date", required=False),
        end_date=_date(request.GET.get("end_date"), "end_date", required=False),
        restrict_to_contact=request.contact_scope,
    )


@require_GET
@ledger_view()
def stock_report_view(request):
    return services.stock_report(
        request.company,
        search=request.GET.get("search", ""),
        category=request.GET.get("category", ""),
        sort=request.GET.get("sort", "value"),
    )


@require_GET
@ledger_view()
def financial_summary_view(request):
    return services.financial_summary(
        request.company,
        period=request.GET.get("period", "30d"),
        as_of=_date(request.GET.get("as_of"), "as_of", required=False),
    )


@require_GET
@ledger_view()
def profit_and_loss_view(request):
    return services.profit_and_loss(
        request.company,
        period=request.GET.get("period", "current"),
        as_of=_date(request.GET.get("as_of"), "as_of", required=False),
    )


@require_GET
@ledger_view()
def balance_sheet_view(request):
    return services.balance_sheet(
        request.company,
        as_of=_date(request.GET.get("as_of"), "as_of", required=False),
    )
