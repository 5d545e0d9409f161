import datetime
from decimal import Decimal

from django.db.models import ProtectedError
from django.test import TestCase

from .. import services
from ..exceptions import (ConflictError, InputValidationError,
                          InvalidStateError, NotFoundError)
from ..models import AuditLog, ChartOfAccount, LedgerTransaction
from .helpers import make_company

JUNE_1 = datetime.date(2024, 6, 1)
ASSET = ChartOfAccount.Type.ASSET
EQUITY = ChartOfAccount.Type.EQUITY


class ChartOfAccountTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.assets = services.create_account(
            self.company, "1000", "Current Assets", ASSET, is_group=True)

    def test_child_level_follows_parent(self):
        cash = services.create_account(
            self.company, "1010", "Cash", ASSET, parent_id=self.assets.pk)
        self.assertEqual(self.assets.level, 0)
        self.assertEqual(cash.level, 1)
        self.assertEqual(cash.parent, self.assets)
        self.assertTrue(cash.is_debit_normal)

    def test_duplicate_code_conflicts_within_company_only(self):
        with self.assertRaises(ConflictError):
            services.create_account(self.company, "1000", "Again", ASSET)
        other = services.create_account(
            make_company("Other Co"), "1000", "Current Assets", ASSET)
        self.assertEqual(other.code, "1000")

    def test_parent_must_be_group(self):
        cash = services.create_account(
            self.company, "1010", "Cash", ASSET, parent_id=self.assets.pk)
        with self.assertRaises(InvalidStateError):
            services.create_account(
                self.company, "1011", "Petty Cash", ASSET, parent_id=cash.pk)

    def test_parent_from_other_company_is_not_found(self):
        other = make_company("Other Co")
        with self.assertRaises(NotFoundError):
            services.create_account(
                other, "1010", "Cash", ASSET, parent_id=self.assets.pk)

    def test_input_validation(self):
        with self.assertRaises(InputValidationError):
            services.create_account(self.company, "", "Nameless", ASSET)
        with self.assertRaises(InputValidationError):
            services.create_account(self.company, "9000", "Odd", "INCOME")

    def test_delete_rules(self):
        cash = services.create_account(
            self.company, "1010", "Cash", ASSET, parent_id=self.assets.pk)
        capital = services.create_account(self.company, "3000", "Capital", EQUITY)

        with self.assertRaises(InvalidStateError):
            services.delete_account(self.company, self.assets.pk)

        services.post_transaction(self.company, JUNE_1, cash.pk, capital.pk, "100")
        with self.assertRaises(InvalidStateError):
            services.delete_account(self.company, cash.pk)
        # the foreign keys refuse it even without the service check
        with self.assertRaises(ProtectedError):
            ChartOfAccount.objects.get(pk=capital.pk).delete()

        spare = services.create_account(self.company, "3100", "Reserves", EQUITY)
        services.delete_account(self.company, spare.pk)
        self.assertFalse(ChartOfAccount.objects.filter(pk=spare.pk).exists())
        self.assertTrue(AuditLog.objects.filter(action="delete",
                                                object_id=str(spare.pk)).exists())


class PostingTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.group = services.create_account(
            self.company, "1000", "Current Assets", ASSET, is_group=True)
        self.cash = services.create_account(
            self.company, "1010", "Cash", ASSET, parent_id=self.group.pk)
        self.capital = services.create_account(
            self.company, "3000", "Capital", EQUITY)

    def test_post_transaction(self):
        posting = services.post_transaction(
            self.company, JUNE_1, self.cash.pk, self.capital.pk, "2500.505",
            description="Opening capital")
        self.assertEqual(posting.amount, Decimal("2500.51"))
        self.assertEqual(self.cash.debit_postings.count(), 1)
        self.assertEqual(self.capital.credit_postings.count(), 1)

    def test_amount_must_be_a_positive_number(self):
        for amount in ("0", "-1", "NaN", "1e40"):
            with self.assertRaises(InputValidationError):
                services.post_transaction(
                    self.company, JUNE_1, self.cash.pk, self.capital.pk, amount)
        self.assertFalse(LedgerTransaction.objects.exists())

    def test_accounts_must_differ(self):
        with self.assertRaises(InputValidationError):
            services.post_transaction(
                self.company, JUNE_1, self.cash.pk, self.cash.pk, "10")

    def test_group_and_inactive_accounts_take_no_postings(self):
        with self.assertRaises(InvalidStateError):
            services.post_transaction(
                self.company, JUNE_1, self.group.pk, self.capital.pk, "10")
        ChartOfAccount.objects.filter(pk=self.capital.pk).update(is_active=False)
        with self.assertRaises(InvalidStateError):
            services.post_transaction(
                self.company, JUNE_1, self.cash.pk, self.capital.pk, "10")

    def test_accounts_of_other_company_are_not_found(self):
        other = make_company("Other Co")
        with self.assertRaises(NotFoundError):
            services.post_transaction(
                other, JUNE_1, self.cash.pk, self.capital.pk, "10")
