import decimal

import django.core.serializers.json
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Company",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(max_length=80, unique=True)),
                ("currency_code", models.CharField(default="INR", max_length=10)),
                ("gstin", models.CharField(blank=True, max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("owner", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="owned_companies", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name_plural": "companies",
            },
        ),
        migrations.CreateModel(
            name="Contact",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(choices=[("CUSTOMER", "Customer"), ("VENDOR", "Vendor"), ("BOTH", "Customer & Vendor")], max_length=20)),
                ("name", models.CharField(max_length=255)),
                ("email", models.EmailField(blank=True, max_length=254, null=True)),
                ("mobile", models.CharField(blank=True, max_length=20)),
                ("address", models.TextField(blank=True)),
                ("gstin", models.CharField(blank=True, max_length=20)),
                ("payment_terms_days", models.IntegerField(default=30)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="erp_core.company")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "name"], name="idx_contact_company_name"),
                    models.Index(fields=["company", "type"], name="idx_contact_company_type"),
                ],
            },
        ),
        migrations.CreateModel(
            name="EntityMembership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(choices=[("ADMIN", "Admin"), ("ACCOUNTANT", "Accountant"), ("CONTACT", "Contact")], default="ACCOUNTANT", max_length=20)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="memberships", to="erp_core.company")),
                ("contact", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="memberships", to="erp_core.contact")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="memberships", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "user"], name="idx_membership_company_user"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "company"), name="uq_user_company_membership"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("sku", models.CharField(blank=True, max_length=80, null=True)),
                ("type", models.CharField(choices=[("GOODS", "Goods"), ("SERVICE", "Service")], default="GOODS", max_length=10)),
                ("category", models.CharField(blank=True, max_length=100)),
                ("hsn_code", models.CharField(blank=True, max_length=20)),
                ("unit", models.CharField(default="pcs", max_length=20)),
                ("sales_price", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=18)),
                ("purchase_price", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=18)),
                ("tax_percentage", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=5)),
                ("reorder_level", models.DecimalField(blank=True, decimal_places=4, max_digits=14, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="erp_core.company")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "name"], name="idx_product_company_name"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "sku"), name="uq_company_product_sku"),
                ],
            },
        ),
        migrations.CreateModel(
            name="DocumentSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("document_type", models.CharField(max_length=20)),
                ("year", models.PositiveIntegerField()),
                ("month", models.PositiveSmallIntegerField(default=0)),
                ("last_value", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="erp_core.company")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("company", "document_type", "year", "month"), name="uq_document_sequence_period"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to="erp_core.company")),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "user"], name="idx_auditlog_company_user"),
                    models.Index(fields=["company", "created_at"], name="idx_auditlog_company_created"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PurchaseOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_number", models.CharField(max_length=64)),
                ("order_date", models.DateField()),
                ("total_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=18)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("status", models.CharField(choices=[("DRAFT", "Draft"), ("APPROVED", "Approved"), ("RECEIVED", "Received"), ("CANCELLED", "Cancelled")], default="DRAFT", max_length=10)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="erp_core.company")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("updated_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("vendor", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="purchase_orders", to="erp_core.contact")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "status"], name="idx_po_company_status"),
                    models.Index(fields=["company", "vendor"], name="idx_po_company_vendor"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "order_number"), name="uq_purchaseorder_company_number"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SalesOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_number", models.CharField(max_length=64)),
                ("order_date", models.DateField()),
                ("total_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=18)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("status", models.CharField(choices=[("DRAFT", "Draft"), ("APPROVED", "Approved"), ("DELIVERED", "Delivered"), ("CANCELLED", "Cancelled")], default="DRAFT", max_length=10)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="erp_core.company")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("updated_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("customer", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="sales_orders", to="erp_core.contact")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "status"], name="idx_so_company_status"),
                    models.Index(fields=["company", "customer"], name="idx_so_company_customer"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "order_number"), name="uq_salesorder_company_number"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("parent_type", models.CharField(choices=[("PURCHASE", "Purchase order"), ("SALES", "Sales order"), ("INVOICE", "Invoice")], max_length=10)),
                ("parent_id", models.PositiveBigIntegerField()),
                ("description", models.CharField(blank=True, max_length=255)),
                ("quantity", models.DecimalField(decimal_places=4, default=decimal.Decimal("0"), max_digits=14)),
                ("unit_price", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=18)),
                ("tax_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=18)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=18)),
                ("total_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=18)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="erp_core.company")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="order_items", to="erp_core.product")),
            ],
            options={
                "ordering": ["id"],
                "indexes": [
                    models.Index(fields=["parent_type", "parent_id"], name="idx_orderitem_parent"),
                    models.Index(fields=["company", "product"], name="idx_orderitem_company_product"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("quantity__gte", 0)), name="ck_orderitem_quantity_non_negative"),
                    models.CheckConstraint(condition=models.Q(("unit_price__gte", 0)), name="ck_orderitem_unit_price_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(choices=[("SALES", "Invoice"), ("PURCHASE", "Bill")], max_length=10)),
                ("invoice_number", models.CharField(max_length=64)),
                ("source_order_id", models.PositiveBigIntegerField(blank=True, null=True)),
                ("invoice_date", models.DateField()),
                ("due_date", models.DateField(blank=True, null=True)),
                ("terms", models.TextField(blank=True)),
                ("notes", models.TextField(blank=True)),
                ("status", models.CharField(choices=[("DRAFT", "Draft"), ("UNPAID", "Unpaid"), ("PARTIAL", "Partially paid"), ("PAID", "Paid"), ("OVERDUE", "Overdue"), ("CANCELLED", "Cancelled")], default="UNPAID", max_length=10)),
                ("currency_code", models.CharField(default="INR", max_length=10)),
                ("sub_total", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=18)),
                ("tax_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=18)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=18)),
                ("total_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=18)),
                ("paid_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=18)),
                ("balance_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=18)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="erp_core.company")),
                ("contact", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="erp_core.contact")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("updated_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "contact"], name="idx_invoice_company_contact"),
                    models.Index(fields=["company", "type", "invoice_date"], name="idx_invoice_type_date"),
                    models.Index(fields=["company", "status"], name="idx_invoice_company_status"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "invoice_number"), name="uq_invoice_company_number"),
                    models.UniqueConstraint(condition=models.Q(("source_order_id__isnull", False), models.Q(("status", "CANCELLED"), _negated=True)), fields=("company", "type", "source_order_id"), name="uq_invoice_live_source_order"),
                    models.CheckConstraint(condition=models.Q(("balance_amount__gte", 0)), name="ck_invoice_balance_non_negative"),
                    models.CheckConstraint(condition=models.Q(("paid_amount__gte", 0)), name="ck_invoice_paid_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_number", models.CharField(max_length=32)),
                ("payment_date", models.DateField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("method", models.CharField(choices=[("CASH", "Cash"), ("BANK", "Bank transfer"), ("CHEQUE", "Cheque"), ("UPI", "UPI"), ("CARD", "Card")], default="BANK", max_length=10)),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("COMPLETED", "Completed"), ("CLEARED", "Cleared"), ("BOUNCED", "Bounced")], default="COMPLETED", max_length=10)),
                ("reference", models.CharField(blank=True, max_length=100)),
                ("bank_account", models.CharField(blank=True, max_length=100)),
                ("cheque_date", models.DateField(blank=True, null=True)),
                ("clearance_date", models.DateField(blank=True, null=True)),
                ("currency_code", models.CharField(default="INR", max_length=10)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="erp_core.company")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("invoice", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="payments", to="erp_core.invoice")),
            ],
            options={
                "ordering": ["payment_date", "id"],
                "indexes": [
                    models.Index(fields=["company", "payment_date"], name="idx_payment_company_date"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "payment_number"), name="uq_payment_company_number"),
                    models.CheckConstraint(condition=models.Q(("amount__gt", decimal.Decimal("0"))), name="ck_payment_amount_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ChartOfAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=32)),
                ("name", models.CharField(max_length=200)),
                ("type", models.CharField(choices=[("ASSET", "Asset"), ("LIABILITY", "Liability"), ("EQUITY", "Equity"), ("REVENUE", "Revenue"), ("EXPENSE", "Expense")], max_length=10)),
                ("is_group", models.BooleanField(default=False)),
                ("level", models.PositiveSmallIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="erp_core.company")),
                ("parent", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="children", to="erp_core.chartofaccount")),
            ],
            options={
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["company", "type"], name="idx_coa_company_type"),
                    models.Index(fields=["company", "parent"], name="idx_coa_company_parent"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "code"), name="uq_company_account_code"),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("description", models.CharField(blank=True, max_length=255)),
                ("reference", models.CharField(blank=True, max_length=100)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="erp_core.company")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("credit_account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="credit_postings", to="erp_core.chartofaccount")),
                ("debit_account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="debit_postings", to="erp_core.chartofaccount")),
            ],
            options={
                "ordering": ["date", "id"],
                "indexes": [
                    models.Index(fields=["company", "date"], name="idx_ledgertx_company_date"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", decimal.Decimal("0"))), name="ck_ledgertx_amount_positive"),
                    models.CheckConstraint(condition=models.Q(("debit_account", models.F("credit_account")), _negated=True), name="ck_ledgertx_distinct_accounts"),
                ],
            },
        ),
    ]
