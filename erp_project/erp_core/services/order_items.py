import logging
from decimal import Decimal

from django.db import transaction

from ..exceptions import (InputValidationError, InvalidStateError,
                          NotFoundError, translate_store_errors)
from ..models import OrderItem, Product, PurchaseOrder, SalesOrder
from ..money import MAX_ABS_AMOUNT, quantize_money, quantize_qty, to_decimal
from .audit_helper import log_action

logger = logging.getLogger(__name__)

# OrderItem.parent_type → order model
ORDER_MODELS = {
    "PURCHASE": PurchaseOrder,
    "SALES": SalesOrder,
}

MAX_QUANTITY = Decimal("1e10")


# ----------------------------
# Pure arithmetic
# ----------------------------
def compute_item_total(quantity, unit_price, tax_amount=0, discount_amount=0):
    """quantity × unit_price + tax − discount, rounded to two decimals."""
    quantity = to_decimal(quantity, "quantity")
    unit_price = to_decimal(unit_price, "unit_price")
    tax_amount = to_decimal(tax_amount, "tax_amount")
    discount_amount = to_decimal(discount_amount, "discount_amount")

    if quantity < 0:
        raise InputValidationError("quantity cannot be negative")
    if unit_price < 0:
        raise InputValidationError("unit_price cannot be negative")
    if tax_amount < 0 or discount_amount < 0:
        raise InputValidationError("tax and discount cannot be negative")
    # quantity column is max_digits=14, decimal_places=4
    if quantity >= MAX_QUANTITY:
        raise InputValidationError("quantity is too large")

    total = quantize_money(quantity * unit_price + tax_amount - discount_amount)
    if total < 0:
        raise InputValidationError("discount exceeds the line amount")
    if total >= MAX_ABS_AMOUNT:
        raise InputValidationError("line total is too large")
    return total


def build_item(company, parent, product, quantity, unit_price,
               tax_amount=0, discount_amount=0, description=""):
    """Unsaved OrderItem for `parent` with its total already derived."""
    total = compute_item_total(quantity, unit_price, tax_amount, discount_amount)
    return OrderItem(
        company=company,
        parent_type=parent.ITEM_PARENT_TYPE,
        parent_id=parent.pk,
        product=product,
        description=description or "",
        quantity=quantize_qty(to_decimal(quantity, "quantity")),
        unit_price=quantize_money(to_decimal(unit_price, "unit_price")),
        tax_amount=quantize_money(to_decimal(tax_amount, "tax_amount")),
        discount_amount=quantize_money(
            to_decimal(discount_amount, "discount_amount")),
        total_amount=total,
    )


def build_items(company, parent, rows, price_field):
    """
    Build unsaved items from request rows
    ({"product_id", "quantity", "unit_price"?, "tax_amount"?, ...}).
    A missing unit_price falls back to the product's `price_field`.
    """
    items = []
    for row in rows:
        product = get_product(company, row.get("product_id"))
        unit_price = row.get("unit_price")
        if unit_price is None or unit_price == "":
            unit_price = getattr(product, price_field)
        items.append(build_item(
            company, parent, product,
            quantity=row.get("quantity", 0),
            unit_price=unit_price,
            tax_amount=row.get("tax_amount", 0),
            discount_amount=row.get("discount_amount", 0),
            description=row.get("description", ""),
        ))
    return items


# ----------------------------
# Lookups
# ----------------------------
def order_model(order_type):
    try:
        return ORDER_MODELS[order_type]
    except KeyError:
        raise InputValidationError(
            f"order_type must be one of {', '.join(ORDER_MODELS)}")


def get_order(company, order_type, order_id, lock=False):
    """Order of this company or NotFoundError; lock=True holds the row."""
    model = order_model(order_type)
    qs = model.objects.for_company(company)
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=order_id)
    except (model.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"{model.__name__} {order_id} not found")


def get_product(company, product_id):
    try:
        return Product.objects.for_company(company).get(pk=product_id)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Product {product_id} not found")


def _get_order_item(company, item_id):
    try:
        item = OrderItem.objects.for_company(company).get(pk=item_id)
    except (OrderItem.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Order item {item_id} not found")
    if item.parent_type not in ORDER_MODELS:
        # invoice items are copies; they never change
        raise InvalidStateError("Invoice items cannot be modified")
    return item


def _require_draft(order):
    if order.status != "DRAFT":
        raise InvalidStateError(
            f"Items can only change while {order.order_number} is DRAFT "
            f"(currently {order.status})")


def refresh_order_total(order, user=None):
    """Persist order.total_amount = Σ item totals."""
    order.recalc_total()
    order.updated_by = user if getattr(user, "is_authenticated", False) else None
    order.save(update_fields=["total_amount", "updated_by", "updated_at"])
    return order.total_amount


# ----------------------------
# Item maintenance on DRAFT orders
# ----------------------------
@translate_store_errors
def add_item(company, order_type, order_id, product_id, quantity, unit_price,
             tax_amount=0, discount_amount=0, description="", user=None):
    """Add a line to a DRAFT order and recompute the order total."""
    with transaction.atomic():
        order = get_order(company, order_type, order_id, lock=True)
        _require_draft(order)
        product = get_product(company, product_id)

        item = build_item(company, order, product, quantity, unit_price,
                          tax_amount, discount_amount, description)
        item.save()
        refresh_order_total(order, user)

        log_action(action="add_item", instance=item, user=user,
                   changes={"order": order.order_number,
                            "total_amount": item.total_amount})

    logger.info("Added item %s to %s (order total %s)",
                item.pk, order.order_number, order.total_amount)
    return item


@translate_store_errors
def update_item(company, item_id, user=None, **fields):
    """Change quantity/price/tax/discount/description of a DRAFT order line."""
    allowed = {"quantity", "unit_price", "tax_amount", "discount_amount",
               "description", "product_id"}
    unknown = set(fields) - allowed
    if unknown:
        raise InputValidationError(
            f"Cannot update {', '.join(sorted(unknown))} on an order item")

    with transaction.atomic():
        item = _get_order_item(company, item_id)
        order = get_order(company, item.parent_type, item.parent_id, lock=True)
        _require_draft(order)

        product = item.product
        if "product_id" in fields:
            product = get_product(company, fields["product_id"])

        before = {"quantity": item.quantity, "unit_price": item.unit_price,
                  "total_amount": item.total_amount}
        rebuilt = build_item(
            company, order, product,
            quantity=fields.get("quantity", item.quantity),
            unit_price=fields.get("unit_price", item.unit_price),
            tax_amount=fields.get("tax_amount", item.tax_amount),
            discount_amount=fields.get("discount_amount", item.discount_amount),
            description=fields.get("description", item.description),
        )
        for field in ("product", "description", "quantity", "unit_price",
                      "tax_amount", "discount_amount", "total_amount"):
            setattr(item, field, getattr(rebuilt, field))
        item.save()
        refresh_order_total(order, user)

        log_action(action="update_item", instance=item, user=user,
                   changes={"before": before,
                            "after": {"quantity": item.quantity,
                                      "unit_price": item.unit_price,
                                      "total_amount": item.total_amount}})

    logger.info("Updated item %s on %s (order total %s)",
                item.pk, order.order_number, order.total_amount)
    return item


@translate_store_errors
def remove_item(company, item_id, user=None):
    """Delete a DRAFT order line; returns the new order total."""
    with transaction.atomic():
        item = _get_order_item(company, item_id)
        order = get_order(company, item.parent_type, item.parent_id, lock=True)
        _require_draft(order)

        removed = {"product_id": item.product_id, "quantity": item.quantity,
                   "total_amount": item.total_amount}
        log_action(action="remove_item", instance=item, user=user,
                   changes=removed)
        item.delete()
        total = refresh_order_total(order, user)

    logger.info("Removed item %s from %s (order total %s)",
                item_id, order.order_number, total)
    return total


def sum_items(items):
    """Invoice header amounts from a list of items (copied or new)."""
    sub_total = tax = discount = total = Decimal("0")
    for item in items:
        sub_total += item.quantity * item.unit_price
        tax += item.tax_amount
        discount += item.discount_amount
        total += item.total_amount
    return {
        "sub_total": quantize_money(sub_total),
        "tax_amount": quantize_money(tax),
        "discount_amount": quantize_money(discount),
        "total_amount": quantize_money(total),
    }
