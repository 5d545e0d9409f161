import datetime
from decimal import Decimal
from unittest import mock

from django.test import TestCase

from .. import services
from ..exceptions import ConflictError, InvalidStateError, NotFoundError
from ..models import Contact, Invoice, OrderItem, PurchaseOrder, SalesOrder
from ..services import conversion
from .helpers import make_company, make_contact, make_order, make_product

INVOICE_DATE = datetime.date(2024, 6, 15)


class SalesOrderConversionTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.customer = make_contact(self.company)
        self.product = make_product(self.company)
        self.order = make_order(
            self.company, "SALES", self.customer,
            items=[{"product_id": self.product.pk, "quantity": 2,
                    "unit_price": "500", "tax_amount": "180"}])

    def convert(self, order=None, order_type="SALES", **kwargs):
        order = order or self.order
        return services.convert_order_to_invoice(
            self.company, order_type, order.pk, INVOICE_DATE, **kwargs)

    def test_approved_sales_order_becomes_unpaid_invoice(self):
        invoice = self.convert()

        self.assertEqual(invoice.type, Invoice.Type.SALES)
        self.assertEqual(invoice.total_amount, Decimal("1180.00"))
        self.assertEqual(invoice.sub_total, Decimal("1000.00"))
        self.assertEqual(invoice.tax_amount, Decimal("180.00"))
        self.assertEqual(invoice.paid_amount, Decimal("0.00"))
        self.assertEqual(invoice.balance_amount, Decimal("1180.00"))
        self.assertEqual(invoice.status, Invoice.Status.UNPAID)
        self.assertRegex(invoice.invoice_number, r"^INV-2024-06-\d{4}$")
        self.assertEqual(invoice.source_order_id, self.order.pk)
        self.assertEqual(invoice.contact, self.customer)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, SalesOrder.Status.DELIVERED)

    def test_items_are_copied_verbatim(self):
        # historical pricing: the product price changes after ordering
        self.product.sales_price = Decimal("999.00")
        self.product.save()

        invoice = self.convert()
        source = list(OrderItem.objects.for_parent(self.order))
        copies = list(OrderItem.objects.for_parent(invoice))
        self.assertEqual(len(copies), len(source))
        for src, copy in zip(source, copies):
            self.assertEqual(copy.parent_type, "INVOICE")
            for field in ("product_id", "quantity", "unit_price", "tax_amount",
                          "discount_amount", "total_amount"):
                self.assertEqual(getattr(copy, field), getattr(src, field))

    def test_number_follows_invoice_date_not_order_date(self):
        invoice = services.convert_order_to_invoice(
            self.company, "SALES", self.order.pk, datetime.date(2024, 8, 3))
        self.assertTrue(invoice.invoice_number.startswith("INV-2024-08-"))

    def test_due_date_defaults_to_contact_terms(self):
        invoice = self.convert()
        self.assertEqual(invoice.due_date, INVOICE_DATE + datetime.timedelta(days=30))
        explicit = datetime.date(2024, 6, 20)
        other = make_order(
            self.company, "SALES", self.customer,
            items=[{"product_id": self.product.pk, "quantity": 1}])
        self.assertEqual(self.convert(other, due_date=explicit).due_date, explicit)

    def test_second_conversion_conflicts(self):
        first = self.convert()
        with self.assertRaises(ConflictError):
            self.convert()
        self.assertEqual(
            Invoice.objects.filter(source_order_id=self.order.pk).count(), 1)
        self.assertEqual(
            OrderItem.objects.filter(parent_type="INVOICE").count(),
            OrderItem.objects.for_parent(first).count())

    def test_number_collision_is_retried(self):
        first = self.convert()
        # a number handed out behind the counter's back
        Invoice.objects.filter(pk=first.pk).update(invoice_number="INV-2024-06-0002")
        other = make_order(
            self.company, "SALES", self.customer,
            items=[{"product_id": self.product.pk, "quantity": 1}])

        invoice = self.convert(other)
        self.assertEqual(invoice.invoice_number, "INV-2024-06-0003")
        self.assertEqual(OrderItem.objects.for_parent(invoice).count(), 1)

    def test_racing_conversion_is_stopped_by_the_live_invoice_constraint(self):
        first = self.convert()
        # the second caller checked before the first one committed
        with mock.patch.object(conversion, "live_invoice_for",
                               side_effect=[None, first]):
            with self.assertRaises(ConflictError):
                self.convert()
        self.assertEqual(
            Invoice.objects.filter(source_order_id=self.order.pk).count(), 1)

    def test_cancelled_invoice_allows_reconversion(self):
        first = self.convert()
        services.cancel_invoice(self.company, first.pk)
        second = self.convert()
        self.assertNotEqual(first.pk, second.pk)
        self.assertNotEqual(first.invoice_number, second.invoice_number)

    def test_delivered_order_converts_and_keeps_status(self):
        delivered = make_order(
            self.company, "SALES", self.customer, status="DELIVERED",
            items=[{"product_id": self.product.pk, "quantity": 1}])
        self.convert(delivered)
        delivered.refresh_from_db()
        self.assertEqual(delivered.status, SalesOrder.Status.DELIVERED)

    def test_precondition_order(self):
        with self.assertRaises(NotFoundError):
            services.convert_order_to_invoice(
                self.company, "SALES", 999999, INVOICE_DATE)

        draft = make_order(
            self.company, "SALES", self.customer, status="DRAFT",
            items=[{"product_id": self.product.pk, "quantity": 1}])
        with self.assertRaises(InvalidStateError):
            self.convert(draft)

        cancelled = make_order(
            self.company, "SALES", self.customer, status="CANCELLED",
            items=[{"product_id": self.product.pk, "quantity": 1}])
        with self.assertRaises(InvalidStateError):
            self.convert(cancelled)

    def test_order_without_items_is_invalid_state(self):
        order = make_order(
            self.company, "SALES", self.customer,
            items=[{"product_id": self.product.pk, "quantity": 1}])
        # emptied behind the service's back
        OrderItem.objects.for_parent(order).delete()
        with self.assertRaises(InvalidStateError):
            self.convert(order)
        self.assertFalse(Invoice.objects.filter(source_order_id=order.pk).exists())
        order.refresh_from_db()
        self.assertEqual(order.status, SalesOrder.Status.APPROVED)

    def test_other_company_cannot_convert(self):
        other = make_company("Other Co")
        with self.assertRaises(NotFoundError):
            services.convert_order_to_invoice(
                other, "SALES", self.order.pk, INVOICE_DATE)


class PurchaseOrderConversionTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.vendor = make_contact(self.company, type=Contact.Type.VENDOR)
        self.product = make_product(self.company)
        self.order = make_order(
            self.company, "PURCHASE", self.vendor,
            items=[{"product_id": self.product.pk, "quantity": 10,
                    "unit_price": "300", "tax_amount": "540",
                    "discount_amount": "40"}])

    def test_purchase_order_becomes_bill_and_is_received(self):
        bill = services.convert_order_to_invoice(
            self.company, "PURCHASE", self.order.pk, INVOICE_DATE)
        self.assertEqual(bill.type, Invoice.Type.PURCHASE)
        self.assertRegex(bill.invoice_number, r"^BILL-2024-06-\d{4}$")
        self.assertEqual(bill.total_amount, Decimal("3500.00"))
        self.assertEqual(bill.discount_amount, Decimal("40.00"))
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, PurchaseOrder.Status.RECEIVED)

    def test_second_conversion_conflicts(self):
        services.convert_order_to_invoice(
            self.company, "PURCHASE", self.order.pk, INVOICE_DATE)
        with self.assertRaises(ConflictError):
            services.convert_order_to_invoice(
                self.company, "PURCHASE", self.order.pk, INVOICE_DATE)

    def test_sales_invoice_with_same_source_id_does_not_block_bill(self):
        # order ids of the two tables overlap; the type tells them apart
        customer = make_contact(self.company)
        Invoice.objects.create(
            company=self.company, type=Invoice.Type.SALES,
            invoice_number="INV-MANUAL-1", contact=customer,
            source_order_id=self.order.pk, invoice_date=INVOICE_DATE)
        bill = services.convert_order_to_invoice(
            self.company, "PURCHASE", self.order.pk, INVOICE_DATE)
        self.assertEqual(bill.source_order_id, self.order.pk)
