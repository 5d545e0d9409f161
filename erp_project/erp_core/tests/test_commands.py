from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from .. import services, tasks
from ..models import Company, EntityMembership, Invoice, Payment


class SeedDemoCommandTests(TestCase):
    def test_seeds_a_consistent_tenant(self):
        out = StringIO()
        call_command("seed_demo", "--company", "Seed Co", "--username", "seeder",
                     stdout=out)

        company = Company.objects.get(slug="seed-co")
        membership = EntityMembership.objects.get(company=company)
        self.assertEqual(membership.role, EntityMembership.Role.ADMIN)
        self.assertEqual(membership.user.username, "seeder")

        invoice = Invoice.objects.get(company=company, type=Invoice.Type.SALES)
        bill = Invoice.objects.get(company=company, type=Invoice.Type.PURCHASE)
        self.assertEqual(invoice.status, Invoice.Status.PARTIAL)
        self.assertEqual(bill.status, Invoice.Status.PAID)
        self.assertEqual(Payment.objects.filter(company=company).count(), 2)

        self.assertTrue(services.balance_sheet(company)["is_balanced"])
        self.assertIn("Demo data seeded successfully!", out.getvalue())

    def test_refuses_existing_company(self):
        call_command("seed_demo", "--company", "Seed Co", stdout=StringIO())
        with self.assertRaises(CommandError):
            call_command("seed_demo", "--company", "Seed Co", stdout=StringIO())


class OverdueTaskTests(TestCase):
    def test_task_marks_overdue_for_one_company(self):
        call_command("seed_demo", "--company", "Late Co", stdout=StringIO())
        company = Company.objects.get(slug="late-co")
        Invoice.objects.filter(company=company, type=Invoice.Type.SALES).update(
            due_date="2000-01-01")

        self.assertEqual(tasks.mark_overdue_invoices(company.pk), 1)
        self.assertEqual(
            Invoice.objects.get(company=company, type=Invoice.Type.SALES).status,
            Invoice.Status.OVERDUE)
        # the paid bill is left alone
        self.assertEqual(
            Invoice.objects.get(company=company, type=Invoice.Type.PURCHASE).status,
            Invoice.Status.PAID)

    def test_missing_company(self):
        self.assertEqual(tasks.mark_overdue_invoices(999999), 0)

    def test_fan_out_queues_one_task_per_company(self):
        Company.objects.create(name="A", slug="a")
        Company.objects.create(name="B", slug="b")
        with mock.patch.object(tasks.mark_overdue_invoices, "delay") as delay:
            self.assertEqual(tasks.mark_all_overdue_invoices(), 2)
        self.assertEqual(delay.call_count, 2)
