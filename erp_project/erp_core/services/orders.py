import logging

from django.db import transaction

from ..exceptions import (InputValidationError, InvalidStateError,
                          NotFoundError, translate_store_errors)
from ..models import Contact, OrderItem
from .audit_helper import log_action
from .numbering import create_with_number, order_number
from .order_items import build_items, get_order, order_model, refresh_order_total

logger = logging.getLogger(__name__)

# order type → (counterparty field, contact types accepted, default price)
ORDER_SIDES = {
    "PURCHASE": ("vendor", (Contact.Type.VENDOR, Contact.Type.BOTH),
                 "purchase_price"),
    "SALES": ("customer", (Contact.Type.CUSTOMER, Contact.Type.BOTH),
              "sales_price"),
}


def _get_counterparty(company, order_type, contact_id):
    field, accepted, _ = ORDER_SIDES[order_type]
    try:
        contact = Contact.objects.for_company(company).get(pk=contact_id)
    except (Contact.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Contact {contact_id} not found")
    if contact.type not in accepted:
        raise InputValidationError(
            f"{contact.name} is a {contact.type} and cannot be the {field} "
            f"of a {order_type.lower()} order")
    return contact


@translate_store_errors
def create_order(company, order_type, counterparty_id, order_date,
                 items=(), notes="", user=None):
    """
    Create a DRAFT purchase/sales order with its items.
    The total is derived from the items; the number is PO-/SO-{epoch ms}.
    """
    model = order_model(order_type)
    field, _, price_field = ORDER_SIDES[order_type]
    actor = user if getattr(user, "is_authenticated", False) else None

    with transaction.atomic():
        contact = _get_counterparty(company, order_type, counterparty_id)

        def create(number):
            return model.objects.create(
                company=company,
                order_number=number,
                order_date=order_date,
                notes=notes or "",
                created_by=actor,
                updated_by=actor,
                **{field: contact},
            )

        def is_taken(number):
            return model.objects.for_company(company).filter(
                order_number=number).exists()

        order = create_with_number(
            lambda: order_number(model.NUMBER_PREFIX), create, is_taken)

        OrderItem.objects.bulk_create(
            build_items(company, order, items, price_field))
        refresh_order_total(order, user)

        log_action(action="create", instance=order, user=user,
                   changes={"order_number": order.order_number,
                            "total_amount": order.total_amount})

    logger.info("Created %s %s for %s (total %s)",
                model.__name__, order.order_number, contact.name,
                order.total_amount)
    return order


@translate_store_errors
def transition_order(company, order_type, order_id, new_status, user=None):
    """
    Move an order along DRAFT → APPROVED → RECEIVED/DELIVERED,
    or to CANCELLED from DRAFT/APPROVED.
    """
    with transaction.atomic():
        order = get_order(company, order_type, order_id, lock=True)
        old_status = order.status

        if new_status == "APPROVED" and not order.items.exists():
            raise InvalidStateError(
                f"{order.order_number} has no items and cannot be approved")

        order.transition_to(new_status)
        order.updated_by = user if getattr(user, "is_authenticated", False) else None
        order.save(update_fields=["status", "updated_by", "updated_at"])

        log_action(action="transition", instance=order, user=user,
                   changes={"from": old_status, "to": new_status})

    logger.info("%s moved %s → %s", order.order_number, old_status, new_status)
    return order
