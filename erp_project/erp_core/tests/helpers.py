import datetime
from decimal import Decimal

from django.utils.text import slugify

from .. import services
from ..models import Company, Contact, Product


def make_company(name="Test Co"):
    return Company.objects.create(name=name, slug=slugify(name))


def make_contact(company, type=Contact.Type.CUSTOMER, name=None):
    return Contact.objects.create(
        company=company, type=type, name=name or f"{type.title()} {company.slug}")


def make_product(company, name="Widget", **fields):
    fields.setdefault("purchase_price", Decimal("300.00"))
    fields.setdefault("sales_price", Decimal("500.00"))
    return Product.objects.create(company=company, name=name, **fields)


def make_order(company, order_type, contact, items, status="APPROVED",
               order_date=datetime.date(2024, 6, 1)):
    """Create an order through the services and walk it to `status`."""
    order = services.create_order(
        company, order_type, contact.pk, order_date, items=items)
    path = {
        "DRAFT": [],
        "APPROVED": ["APPROVED"],
        "CANCELLED": ["CANCELLED"],
        "RECEIVED": ["APPROVED", "RECEIVED"],
        "DELIVERED": ["APPROVED", "DELIVERED"],
    }[status]
    for step in path:
        order = services.transition_order(company, order_type, order.pk, step)
    return order
