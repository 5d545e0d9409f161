import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils.text import slugify

from erp_core import services
from erp_core.models import (ChartOfAccount, Company, Contact,
                             EntityMembership, Product)

User = get_user_model()


class Command(BaseCommand):
    help = (
        "Create a demo tenant with contacts, products, approved orders, "
        "one conversion per side and a payment."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--company",  # Define flag
            default="Demo Manufacturing",
            help="Name of the demo company (default: Demo Manufacturing)",
        )
        parser.add_argument(
            "--username", default="demo", help="Username for the demo admin."
        )
        parser.add_argument(
            "--password", default="demo123", help="Password for the demo admin."
        )

    @transaction.atomic
    def handle(self, *args, **options):
        company_name = options["company"]
        slug = slugify(company_name) or "company"
        if Company.objects.filter(slug=slug).exists():
            raise CommandError(f"Company {slug!r} already exists")

        self.stdout.write(self.style.NOTICE(
            f"Seeding demo data for {company_name}..."))

        # 1. Tenant + admin user
        company = Company.objects.create(name=company_name, slug=slug)
        user, created = User.objects.get_or_create(
            username=options["username"],
            defaults={"email": f"{options['username']}@example.com"},
        )
        if created:  # if user newly created
            user.set_password(options["password"])
            user.save()
        EntityMembership.objects.create(
            user=user, company=company, role=EntityMembership.Role.ADMIN)
        company.owner = user
        company.save(update_fields=["owner"])
        self.stdout.write(self.style.SUCCESS(
            f"Created company {company} and admin {user.username}"))

        # 2. Contacts and products
        customer = Contact.objects.create(
            company=company, type=Contact.Type.CUSTOMER, name="Acme Retail",
            email="buyer@acme.example")
        vendor = Contact.objects.create(
            company=company, type=Contact.Type.VENDOR, name="Steel Supplies",
            email="sales@steel.example")
        bolt = Product.objects.create(
            company=company, name="Hex bolt M8", sku="BOLT-M8",
            category="Fasteners", hsn_code="7318", purchase_price=Decimal("4.00"),
            sales_price=Decimal("7.50"), tax_percentage=Decimal("18"))
        bracket = Product.objects.create(
            company=company, name="Wall bracket", sku="BRK-01",
            category="Fittings", hsn_code="8302", purchase_price=Decimal("120.00"),
            sales_price=Decimal("199.00"), tax_percentage=Decimal("18"),
            reorder_level=Decimal("20"))

        # 3. A few accounts for the balance sheet
        accounts = {}
        for code, name, acc_type, is_group in (
            ("1000", "Current Assets", "ASSET", True),
            ("3000", "Owner's Equity", "EQUITY", False),
            ("4000", "Sales", "REVENUE", False),
            ("5000", "Purchases", "EXPENSE", False),
        ):
            accounts[code] = services.create_account(
                company, code, name, acc_type, is_group=is_group, user=user)
        accounts["1010"] = services.create_account(
            company, "1010", "Bank", ChartOfAccount.Type.ASSET,
            parent_id=accounts["1000"].pk, user=user)

        today = datetime.date.today()
        services.post_transaction(
            company, today, accounts["1010"].pk, accounts["3000"].pk,
            Decimal("50000"), description="Opening capital", user=user)

        # 4. Buy stock, sell some of it
        po = services.create_order(
            company, "PURCHASE", vendor.pk, today, user=user, items=[
                {"product_id": bolt.pk, "quantity": 500, "unit_price": "4.00",
                 "tax_amount": "360.00"},
                {"product_id": bracket.pk, "quantity": 40, "unit_price": "120.00",
                 "tax_amount": "864.00"},
            ])
        services.transition_order(company, "PURCHASE", po.pk, "APPROVED", user=user)
        bill = services.convert_order_to_invoice(
            company, "PURCHASE", po.pk, today, user=user)

        so = services.create_order(
            company, "SALES", customer.pk, today, user=user, items=[
                {"product_id": bolt.pk, "quantity": 200, "unit_price": "7.50",
                 "tax_amount": "270.00"},
                {"product_id": bracket.pk, "quantity": 25, "unit_price": "199.00",
                 "tax_amount": "895.50", "discount_amount": "100.00"},
            ])
        services.transition_order(company, "SALES", so.pk, "APPROVED", user=user)
        invoice = services.convert_order_to_invoice(
            company, "SALES", so.pk, today, user=user)

        # 5. Partial payment from the customer, full payment of the bill
        services.apply_payment(
            company, invoice.pk, Decimal("3000"), today, method="UPI", user=user)
        services.apply_payment(
            company, bill.pk, bill.total_amount, today, method="BANK", user=user)

        self.stdout.write(self.style.SUCCESS(
            f"Converted {po.order_number} → {bill.invoice_number} and "
            f"{so.order_number} → {invoice.invoice_number}"))
        self.stdout.write(self.style.SUCCESS("Demo data seeded successfully!"))
