import datetime
from decimal import Decimal

from django.db import transaction
from django.test import TestCase

from .. import services
from ..exceptions import (ConflictError, InputValidationError,
                          InvalidStateError, NotFoundError)
from ..models import AuditLog, Invoice, Payment
from .helpers import make_company, make_contact, make_product

PAY_DATE = datetime.date(2024, 6, 20)


class ApplyPaymentTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.customer = make_contact(self.company)
        product = make_product(self.company)
        self.invoice = services.create_invoice(
            self.company, Invoice.Type.SALES, self.customer.pk,
            datetime.date(2024, 6, 1),
            items=[{"product_id": product.pk, "quantity": 2, "unit_price": "500"}])

    def pay(self, amount, **kwargs):
        return services.apply_payment(
            self.company, self.invoice.pk, amount, PAY_DATE, **kwargs)

    def test_partial_full_and_over_payment(self):
        self.assertEqual(self.invoice.total_amount, Decimal("1000.00"))

        result = self.pay("700")
        self.assertEqual(result.invoice.status, Invoice.Status.PARTIAL)
        self.assertEqual(result.invoice.balance_amount, Decimal("300.00"))
        self.assertEqual(result.excess_amount, Decimal("0.00"))

        result = self.pay("300")
        self.assertEqual(result.invoice.status, Invoice.Status.PAID)
        self.assertEqual(result.invoice.balance_amount, Decimal("0.00"))

        result = self.pay("50")
        self.assertEqual(result.invoice.status, Invoice.Status.PAID)
        self.assertEqual(result.invoice.balance_amount, Decimal("0.00"))
        self.assertEqual(result.excess_amount, Decimal("50.00"))

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.paid_amount, Decimal("1050.00"))
        self.assertEqual(self.invoice.balance_amount, Decimal("0.00"))
        self.assertEqual(self.invoice.payments.count(), 3)

    def test_balance_invariant_after_every_payment(self):
        for amount in ("0.01", "333.33", "333.33", "333.33", "100"):
            self.pay(amount)
            self.invoice.refresh_from_db()
            self.assertEqual(
                self.invoice.balance_amount,
                max(Decimal("0.00"),
                    self.invoice.total_amount - self.invoice.paid_amount))

    def test_payment_numbers_are_sequential_per_year(self):
        first = self.pay("10").payment
        second = self.pay("10").payment
        self.assertEqual(first.payment_number, "2024-0001")
        self.assertEqual(second.payment_number, "2024-0002")
        self.assertEqual(first.currency_code, "INR")

    def test_client_supplied_number(self):
        payment = self.pay("10", payment_number="RCPT-9").payment
        self.assertEqual(payment.payment_number, "RCPT-9")
        with self.assertRaises(ConflictError):
            self.pay("10", payment_number="RCPT-9")
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.paid_amount, Decimal("10.00"))

    def test_non_positive_amount_is_rejected(self):
        for amount in ("0", "-5", "abc"):
            with self.assertRaises(InputValidationError):
                self.pay(amount)
        self.assertFalse(Payment.objects.exists())
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, Invoice.Status.UNPAID)

    def test_non_finite_or_huge_amount_is_rejected(self):
        for amount in ("NaN", "Infinity", "1e40"):
            with self.assertRaises(InputValidationError):
                self.pay(amount)
        self.assertFalse(Payment.objects.exists())

    def test_missing_invoice_is_not_found_before_amount_check(self):
        with self.assertRaises(NotFoundError):
            services.apply_payment(self.company, 999999, "-1", PAY_DATE)

    def test_other_company_cannot_pay(self):
        with self.assertRaises(NotFoundError):
            services.apply_payment(
                make_company("Other Co"), self.invoice.pk, "10", PAY_DATE)

    def test_unknown_method(self):
        with self.assertRaises(InputValidationError):
            self.pay("10", method="BITCOIN")

    def test_cancelled_invoice_cannot_be_paid(self):
        services.cancel_invoice(self.company, self.invoice.pk)
        with self.assertRaises(InvalidStateError):
            self.pay("10")

    def test_overdue_invoice_still_settles(self):
        Invoice.objects.filter(pk=self.invoice.pk).update(
            status=Invoice.Status.OVERDUE)
        result = self.pay("1000")
        self.assertEqual(result.invoice.status, Invoice.Status.PAID)

    def test_cheque_details_and_audit(self):
        payment = self.pay("100", method="CHEQUE", reference="CHQ-123",
                           cheque_date=datetime.date(2024, 6, 18),
                           status=Payment.Status.PENDING).payment
        self.assertEqual(payment.method, Payment.Method.CHEQUE)
        self.assertEqual(payment.status, Payment.Status.PENDING)
        log = AuditLog.objects.get(action="pay")
        self.assertEqual(log.object_id, str(payment.pk))
        self.assertEqual(log.changes["invoice_status"], ["UNPAID", "PARTIAL"])

    def test_unknown_detail_field(self):
        with self.assertRaises(InputValidationError):
            self.pay("10", amount_in_words="ten")


class PaymentStatusTests(TestCase):
    def setUp(self):
        self.company = make_company()
        customer = make_contact(self.company)
        product = make_product(self.company)
        invoice = services.create_invoice(
            self.company, Invoice.Type.SALES, customer.pk,
            datetime.date(2024, 6, 1),
            items=[{"product_id": product.pk, "quantity": 1, "unit_price": "100"}])
        self.result = services.apply_payment(
            self.company, invoice.pk, "100", PAY_DATE, method="CHEQUE",
            status=Payment.Status.PENDING)

    def test_status_changes_without_touching_amount(self):
        payment = services.update_payment_status(
            self.company, self.result.payment.pk, Payment.Status.CLEARED,
            clearance_date=datetime.date(2024, 6, 25))
        payment.refresh_from_db()
        self.assertEqual(payment.status, Payment.Status.CLEARED)
        self.assertEqual(payment.clearance_date, datetime.date(2024, 6, 25))
        self.assertEqual(payment.amount, Decimal("100.00"))
        self.assertEqual(payment.invoice_id, self.result.invoice.pk)

    def test_unknown_status(self):
        with self.assertRaises(InputValidationError):
            services.update_payment_status(
                self.company, self.result.payment.pk, "LOST")

    def test_missing_payment(self):
        with self.assertRaises(NotFoundError):
            services.update_payment_status(
                self.company, 999999, Payment.Status.BOUNCED)


class InvoiceCancellationTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.customer = make_contact(self.company)
        product = make_product(self.company)
        self.invoice = services.create_invoice(
            self.company, Invoice.Type.SALES, self.customer.pk,
            datetime.date(2024, 6, 1),
            items=[{"product_id": product.pk, "quantity": 1, "unit_price": "100"}])

    def test_cancel_without_payments(self):
        invoice = services.cancel_invoice(self.company, self.invoice.pk)
        self.assertEqual(invoice.status, Invoice.Status.CANCELLED)
        with self.assertRaises(InvalidStateError):
            services.cancel_invoice(self.company, self.invoice.pk)

    def test_cannot_cancel_or_delete_with_payments(self):
        services.apply_payment(self.company, self.invoice.pk, "10", PAY_DATE)
        with self.assertRaises(InvalidStateError):
            services.cancel_invoice(self.company, self.invoice.pk)
        with self.assertRaises(InvalidStateError):
            Invoice.objects.get(pk=self.invoice.pk).delete()
        self.assertTrue(Invoice.objects.filter(pk=self.invoice.pk).exists())
        # the session stays usable after a refused delete
        self.assertEqual(self.invoice.payments.count(), 1)

    def test_queryset_delete_is_refused_too(self):
        services.apply_payment(self.company, self.invoice.pk, "10", PAY_DATE)
        # bulk deletes skip Invoice.delete(); the pre_delete receiver still fires
        with self.assertRaises(InvalidStateError):
            with transaction.atomic():
                Invoice.objects.filter(pk=self.invoice.pk).delete()
        self.assertTrue(Invoice.objects.filter(pk=self.invoice.pk).exists())

    def test_invoice_without_payments_can_be_deleted(self):
        Invoice.objects.get(pk=self.invoice.pk).delete()
        self.assertFalse(Invoice.objects.filter(pk=self.invoice.pk).exists())

    def test_contact_type_must_match_invoice_type(self):
        with self.assertRaises(InputValidationError):
            services.create_invoice(
                self.company, Invoice.Type.PURCHASE, self.customer.pk,
                datetime.date(2024, 6, 1),
                items=[{"product_id": 1, "quantity": 1}])


class OverdueTests(TestCase):
    def setUp(self):
        self.company = make_company()
        customer = make_contact(self.company)
        product = make_product(self.company)
        rows = [{"product_id": product.pk, "quantity": 1, "unit_price": "100"}]
        self.open = services.create_invoice(
            self.company, Invoice.Type.SALES, customer.pk,
            datetime.date(2024, 6, 1), items=rows,
            due_date=datetime.date(2024, 6, 10))
        self.paid = services.create_invoice(
            self.company, Invoice.Type.SALES, customer.pk,
            datetime.date(2024, 6, 1), items=rows,
            due_date=datetime.date(2024, 6, 10))
        services.apply_payment(self.company, self.paid.pk, "100", PAY_DATE)
        self.not_due = services.create_invoice(
            self.company, Invoice.Type.SALES, customer.pk,
            datetime.date(2024, 6, 1), items=rows,
            due_date=datetime.date(2024, 7, 10))

    def test_mark_overdue(self):
        count = services.mark_overdue(self.company, today=datetime.date(2024, 6, 30))
        self.assertEqual(count, 1)
        statuses = dict(Invoice.objects.values_list("pk", "status"))
        self.assertEqual(statuses[self.open.pk], Invoice.Status.OVERDUE)
        self.assertEqual(statuses[self.paid.pk], Invoice.Status.PAID)
        self.assertEqual(statuses[self.not_due.pk], Invoice.Status.UNPAID)
