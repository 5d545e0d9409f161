import datetime
import json

import pytest
from django.test import RequestFactory, TestCase

from .. import services
from ..middleware import CurrentCompanyMiddleware
from ..models import Company, EntityMembership, Invoice
from ..views import invoice_detail_view
from .helpers import make_company, make_contact, make_product


def _sales_invoice(company, amount):
    customer = make_contact(company)
    product = make_product(company)
    return services.create_invoice(
        company, Invoice.Type.SALES, customer.pk, datetime.date.today(),
        items=[{"product_id": product.pk, "quantity": 1, "unit_price": amount}])


class TenantIsolationManagerTests(TestCase):
    def setUp(self):
        self.company_a = make_company("Company A")
        self.company_b = make_company("Company B")

        # one invoice per company
        self.inv_a = _sales_invoice(self.company_a, "200")
        self.inv_b = _sales_invoice(self.company_b, "100")

    def test_for_company_returns_only_that_company_objects(self):
        """Compare invoice primary keys"""
        self.assertListEqual(
            list(
                Invoice.objects.for_company(self.company_a)
                .order_by("id")
                .values_list("pk", flat=True)
            ),
            [self.inv_a.pk],
        )
        self.assertListEqual(
            list(
                Invoice.objects.for_company(self.company_b)
                .order_by("id")
                .values_list("pk", flat=True)
            ),
            [self.inv_b.pk],
        )

    def test_get_other_company_object_raises_does_not_exist(self):
        # `for_company` shouldn't return the other company's record
        with self.assertRaises(Invoice.DoesNotExist):
            Invoice.objects.for_company(self.company_a).get(pk=self.inv_b.pk)

    def test_numbering_is_per_company(self):
        # both companies start their own INV series
        self.assertEqual(self.inv_a.invoice_number, self.inv_b.invoice_number)


class CurrentCompanyMiddlewareTests(TestCase):
    def setUp(self):
        from django.contrib.auth import get_user_model

        self.user = get_user_model().objects.create_user(username="alice", password="pw")
        self.first = make_company("First Co")
        self.second = make_company("Second Co")
        EntityMembership.objects.create(user=self.user, company=self.first)
        EntityMembership.objects.create(user=self.user, company=self.second,
                                        role=EntityMembership.Role.ADMIN)

    def _request(self, session=None):
        request = RequestFactory().get("/")
        request.user = self.user
        request.session = session or {}
        CurrentCompanyMiddleware(lambda r: None).process_request(request)
        return request

    def test_defaults_to_oldest_membership(self):
        request = self._request()
        self.assertEqual(request.company, self.first)
        self.assertEqual(request.membership.role, EntityMembership.Role.ACCOUNTANT)
        self.assertIsNone(request.contact_scope)

    def test_session_selects_company(self):
        request = self._request({"active_company_id": self.second.pk})
        self.assertEqual(request.company, self.second)

    def test_session_company_without_membership_resolves_nothing(self):
        stranger = Company.objects.create(name="Stranger", slug="stranger")
        request = self._request({"active_company_id": stranger.pk})
        self.assertIsNone(request.company)
        self.assertIsNone(request.membership)

    def test_inactive_membership_is_ignored(self):
        EntityMembership.objects.filter(company=self.first).update(is_active=False)
        self.assertEqual(self._request().company, self.second)


@pytest.mark.django_db
def test_invoice_detail_returns_only_tenant_data(client, django_user_model):
    c1 = make_company("Company A")
    c2 = make_company("Company B")
    u1 = django_user_model.objects.create_user(username="alice", password="pw")
    EntityMembership.objects.create(user=u1, company=c1)

    own = _sales_invoice(c1, "100")
    foreign = _sales_invoice(c2, "200")

    client.force_login(u1)
    response = client.get(f"/api/invoices/{own.pk}/")
    assert response.status_code == 200
    assert json.loads(response.content)["invoice"]["total_amount"] == "100.00"

    # the other tenant's invoice does not exist for this user
    response = client.get(f"/api/invoices/{foreign.pk}/")
    assert response.status_code == 404
    assert json.loads(response.content)["error"]["kind"] == "not_found"


@pytest.mark.django_db
def test_view_without_membership_is_forbidden(django_user_model):
    company = make_company("Company A")
    invoice = _sales_invoice(company, "100")
    user = django_user_model.objects.create_user(username="bob", password="pw")

    # Bypass client & call view with a RequestFactory
    request = RequestFactory().get(f"/api/invoices/{invoice.pk}/")
    request.user = user
    request.session = {}
    CurrentCompanyMiddleware(lambda r: None).process_request(request)

    response = invoice_detail_view(request, invoice_id=invoice.pk)
    assert response.status_code == 403
