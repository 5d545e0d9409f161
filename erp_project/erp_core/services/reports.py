"""
Read-only derivations over invoices, payments, items and postings.

Nothing here is cached; every call scans the store for one company.
Cancelled invoices (and their items) never count.
"""
import math
from datetime import timedelta
from decimal import Decimal

from django.db.models import Q, Sum
from django.utils import timezone

from ..conf import get_setting
from ..exceptions import InputValidationError, NotFoundError
from ..models import (ChartOfAccount, Contact, Invoice, LedgerTransaction,
                      OrderItem, Payment, Product)
from ..money import ZERO, quantize_money, quantize_qty

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
STOCK_SORTS = ("value", "stock", "name")
LOW_STATUSES = ("low", "critical", "out_of_stock")


def pct_change(current, previous):
    """(current − previous) / previous × 100; 0 when there is no previous."""
    if not previous:
        return ZERO
    return quantize_money((current - previous) / previous * 100)


def _sum(qs, field):
    # SQLite drops the scale of summed decimals
    return quantize_money(qs.aggregate(s=Sum(field))["s"] or ZERO)


# ---------- Partner ledger ----------
def _payment_is_credit(partner, invoice_type):
    # customer paying us reduces what they owe, us paying a vendor
    # reduces what we owe
    if partner.type == Contact.Type.CUSTOMER:
        return True
    if partner.type == Contact.Type.VENDOR:
        return False
    return invoice_type == Invoice.Type.SALES


def partner_ledger(company, partner_id, start_date=None, end_date=None,
                   restrict_to_contact=None):
    """
    Chronological invoice + payment history of one contact with a running
    balance (debit − credit). Opening balance is always 0.
    """
    if restrict_to_contact is not None and str(restrict_to_contact) != str(partner_id):
        raise NotFoundError(f"Partner {partner_id} not found")
    try:
        partner = Contact.objects.for_company(company).get(pk=partner_id)
    except (Contact.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Partner {partner_id} not found")

    invoices = (Invoice.objects.for_company(company)
                .filter(contact=partner)
                .exclude(status=Invoice.Status.CANCELLED))
    payments = (Payment.objects.for_company(company)
                .filter(invoice__contact=partner)
                .exclude(invoice__status=Invoice.Status.CANCELLED)
                .select_related("invoice"))
    if start_date:
        invoices = invoices.filter(invoice_date__gte=start_date)
        payments = payments.filter(payment_date__gte=start_date)
    if end_date:
        invoices = invoices.filter(invoice_date__lte=end_date)
        payments = payments.filter(payment_date__lte=end_date)

    events = []
    for inv in invoices.order_by("invoice_date", "id"):
        is_sales = inv.type == Invoice.Type.SALES
        events.append({
            "id": f"inv-{inv.pk}",
            "date": inv.invoice_date,
            "type": "INVOICE",
            "description": f"Invoice: {inv.invoice_number}",
            "debit": inv.total_amount if is_sales else ZERO,
            "credit": ZERO if is_sales else inv.total_amount,
            "status": inv.status,
        })
    for pay in payments.order_by("payment_date", "id"):
        is_credit = _payment_is_credit(partner, pay.invoice.type)
        events.append({
            "id": f"pay-{pay.pk}",
            "date": pay.payment_date,
            "type": "PAYMENT",
            "description": f"Payment for Invoice: {pay.invoice.invoice_number}",
            "debit": ZERO if is_credit else pay.amount,
            "credit": pay.amount if is_credit else ZERO,
            "payment_method": pay.method,
        })

    # stable: same-day invoices stay ahead of same-day payments
    events.sort(key=lambda e: e["date"])

    running = ZERO
    for event in events:
        running += event["debit"] - event["credit"]
        event["balance"] = running

    total_debit = sum((e["debit"] for e in events), ZERO)
    total_credit = sum((e["credit"] for e in events), ZERO)
    return {
        "partner": {
            "id": partner.pk,
            "name": partner.name,
            "type": partner.type,
            "email": partner.email,
            "mobile": partner.mobile,
        },
        "summary": {
            "opening_balance": ZERO,
            "total_debit": total_debit,
            "total_credit": total_credit,
            "closing_balance": total_debit - total_credit,
            "transaction_count": len(events),
        },
        "transactions": events,
    }


# ---------- Stock levels ----------
def reorder_point(product, current_stock):
    """Configured reorder_level, else max(MIN, floor(RATIO × stock))."""
    if product.reorder_level is not None:
        return product.reorder_level
    derived = math.floor(get_setting("ERP_REORDER_RATIO") * current_stock)
    return Decimal(max(get_setting("ERP_MIN_REORDER_POINT"), derived))


def stock_status(current_stock, point):
    if current_stock <= 0:
        return "out_of_stock"
    if current_stock <= point:
        return "critical"
    if current_stock <= point * get_setting("ERP_LOW_STOCK_MULTIPLIER"):
        return "low"
    return "good"


def _quantities_by_product(company, invoice_type):
    rows = (OrderItem.objects.for_company(company)
            .for_invoice_type(invoice_type)
            .values("product_id")
            .annotate(qty=Sum("quantity")))
    return {row["product_id"]: quantize_qty(row["qty"] or ZERO) for row in rows}


def stock_report(company, search="", category="", sort="value"):
    """
    Per-product stock = Σ qty on bills − Σ qty on sales invoices,
    with a status band, a summary and the first few low-stock alerts.
    """
    if sort not in STOCK_SORTS:
        raise InputValidationError(f"sort must be one of {', '.join(STOCK_SORTS)}")

    products = Product.objects.active(company)
    if search:
        products = products.filter(
            Q(name__icontains=search) | Q(hsn_code__icontains=search))
    if category and category != "all":
        products = products.filter(category=category)

    incoming = _quantities_by_product(company, Invoice.Type.PURCHASE)
    outgoing = _quantities_by_product(company, Invoice.Type.SALES)

    items = []
    for product in products:
        in_qty = incoming.get(product.pk, ZERO)
        out_qty = outgoing.get(product.pk, ZERO)
        stock = in_qty - out_qty
        point = reorder_point(product, stock)
        shown = max(ZERO, stock)  # never display negative stock
        items.append({
            "id": product.pk,
            "name": product.name,
            "sku": product.sku or f"SKU-{product.pk:04d}",
            "category": product.category or "Uncategorized",
            "hsn_code": product.hsn_code,
            "current_stock": quantize_qty(shown),
            "reorder_point": point,
            "unit_cost": product.purchase_price,
            "selling_price": product.sales_price,
            "total_value": quantize_money(shown * product.purchase_price),
            "status": stock_status(stock, point),
            "incoming_stock": in_qty,
            "outgoing_stock": out_qty,
        })

    if sort == "value":
        items.sort(key=lambda i: i["total_value"], reverse=True)
    elif sort == "stock":
        items.sort(key=lambda i: i["current_stock"], reverse=True)
    else:
        items.sort(key=lambda i: i["name"].lower())

    low = [i for i in items if i["status"] in LOW_STATUSES]
    average = (sum((i["current_stock"] for i in items), ZERO) / len(items)
               if items else ZERO)
    return {
        "items": items,
        "summary": {
            "total_items": len(items),
            "total_stock_value": sum((i["total_value"] for i in items), ZERO),
            "low_stock_items_count": len(low),
            "average_stock_level": quantize_money(average),
            "categories": sorted({i["category"] for i in items}),
        },
        "alerts": [
            {key: item[key] for key in ("id", "name", "current_stock",
                                        "reorder_point", "status", "total_value")}
            for item in low[:get_setting("ERP_STOCK_ALERT_LIMIT")]
        ],
    }


# ---------- Financial summary ----------
def _window(qs, field, start, end):
    # (start, end]: adjacent windows never share a day
    return qs.filter(**{f"{field}__gt": start, f"{field}__lte": end})


def financial_summary(company, period="30d", as_of=None):
    """Revenue, expenses, profit and receivables for the period ending as_of,
    compared with the period of the same length right before it."""
    if period not in PERIOD_DAYS:
        raise InputValidationError(
            f"period must be one of {', '.join(PERIOD_DAYS)}")
    end = as_of or timezone.localdate()
    length = timedelta(days=PERIOD_DAYS[period])
    start = end - length
    previous_start = start - length

    live = (Invoice.objects.for_company(company)
            .exclude(status=Invoice.Status.CANCELLED))
    sales = live.filter(type=Invoice.Type.SALES)
    purchases = live.filter(type=Invoice.Type.PURCHASE)

    revenue = _sum(_window(sales, "invoice_date", start, end), "total_amount")
    expenses = _sum(_window(purchases, "invoice_date", start, end), "total_amount")
    prev_revenue = _sum(
        _window(sales, "invoice_date", previous_start, start), "total_amount")
    prev_expenses = _sum(
        _window(purchases, "invoice_date", previous_start, start), "total_amount")

    net_profit = revenue - expenses
    prev_profit = prev_revenue - prev_expenses
    margin = quantize_money(net_profit / revenue * 100) if revenue else ZERO

    payments = _window(Payment.objects.for_company(company),
                       "payment_date", start, end)

    # items copied onto this period's sales invoices
    breakdown_rows = OrderItem.objects.for_company(company).filter(
        parent_type=OrderItem.ParentType.INVOICE,
        parent_id__in=_window(sales, "invoice_date", start, end).values("pk"),
    )
    breakdown = {}
    for row in breakdown_rows.values("product__category").annotate(
            amount=Sum("total_amount")):
        name = row["product__category"] or "Uncategorized"
        breakdown[name] = quantize_money(
            breakdown.get(name, ZERO) + (row["amount"] or ZERO))

    return {
        "period": {"period": period, "start_date": start, "end_date": end},
        "metrics": {
            "total_revenue": revenue,
            "total_expenses": expenses,
            "net_profit": net_profit,
            "profit_margin": margin,
            "outstanding_receivables": _sum(
                sales.filter(invoice_date__lte=end, balance_amount__gt=0),
                "balance_amount"),
            "outstanding_payables": _sum(
                purchases.filter(invoice_date__lte=end, balance_amount__gt=0),
                "balance_amount"),
            "payments_received": _sum(
                payments.filter(invoice__type=Invoice.Type.SALES), "amount"),
            "payments_made": _sum(
                payments.filter(invoice__type=Invoice.Type.PURCHASE), "amount"),
        },
        "trends": {
            "revenue_change": pct_change(revenue, prev_revenue),
            "expense_change": pct_change(expenses, prev_expenses),
            "profit_change": pct_change(net_profit, prev_profit),
        },
        "breakdowns": {
            "revenue": [
                {
                    "category": name,
                    "amount": amount,
                    "percentage": (quantize_money(amount / revenue * 100)
                                   if revenue else ZERO),
                }
                for name, amount in sorted(breakdown.items())
            ],
        },
    }


# ---------- Profit & loss ----------
PNL_PERIODS = ("current", "quarter", "year")


def pnl_period_start(period, end):
    """First day of the month / quarter / year that contains `end`."""
    if period == "current":
        return end.replace(day=1)
    if period == "quarter":
        return end.replace(month=(end.month - 1) // 3 * 3 + 1, day=1)
    return end.replace(month=1, day=1)


def profit_and_loss(company, period="current", as_of=None):
    """
    Income statement from the start of the period up to as_of (inclusive).

    revenue            = sales invoices + credits to REVENUE accounts
                         whose name does not mention "sales"
    cost of goods sold = purchase bills
    operating expenses = debits to EXPENSE accounts not named "interest"
    other expenses     = debits to EXPENSE accounts named "interest"
    """
    if period not in PNL_PERIODS:
        raise InputValidationError(
            f"period must be one of {', '.join(PNL_PERIODS)}")
    end = as_of or timezone.localdate()
    start = pnl_period_start(period, end)

    invoices = (Invoice.objects.for_company(company)
                .exclude(status=Invoice.Status.CANCELLED)
                .filter(invoice_date__gte=start, invoice_date__lte=end))
    sales = _sum(invoices.filter(type=Invoice.Type.SALES), "total_amount")
    cogs = _sum(invoices.filter(type=Invoice.Type.PURCHASE), "total_amount")

    postings = LedgerTransaction.objects.for_company(company).filter(
        date__gte=start, date__lte=end)
    # sales postings would count the invoices twice
    other_income = _sum(
        postings.filter(credit_account__type=ChartOfAccount.Type.REVENUE)
        .exclude(credit_account__name__icontains="sales"),
        "amount")
    expenses = postings.filter(debit_account__type=ChartOfAccount.Type.EXPENSE)
    operating_expenses = _sum(
        expenses.exclude(debit_account__name__icontains="interest"), "amount")
    other_expenses = _sum(
        expenses.filter(debit_account__name__icontains="interest"), "amount")

    total_revenue = sales + other_income
    gross_profit = total_revenue - cogs
    operating_profit = gross_profit - operating_expenses
    net_profit = operating_profit - other_expenses

    def margin(value):
        if not total_revenue:
            return ZERO
        return quantize_money(value / total_revenue * 100)

    return {
        "period": {"period": period, "start_date": start, "end_date": end},
        "revenue": {"sales": sales, "other": other_income,
                    "total": total_revenue},
        "cost_of_goods_sold": cogs,
        "gross_profit": gross_profit,
        "operating_expenses": operating_expenses,
        "operating_profit": operating_profit,
        "other_expenses": other_expenses,
        "net_profit": net_profit,
        "margins": {
            "gross_margin": margin(gross_profit),
            "operating_margin": margin(operating_profit),
            "net_margin": margin(net_profit),
        },
    }


# ---------- Balance sheet ----------
def balance_sheet(company, as_of=None):
    """
    Account balances from postings up to as_of.
    ASSET/EXPENSE: debit − credit, LIABILITY/EQUITY/REVENUE: credit − debit.
    Revenue − expense is carried into equity as current earnings.
    """
    end = as_of or timezone.localdate()
    postings = LedgerTransaction.objects.for_company(company).filter(date__lte=end)
    debits = {r["debit_account"]: quantize_money(r["s"]) for r in
              postings.values("debit_account").annotate(s=Sum("amount"))}
    credits = {r["credit_account"]: quantize_money(r["s"]) for r in
               postings.values("credit_account").annotate(s=Sum("amount"))}

    sections = {t: [] for t in ChartOfAccount.Type.values}
    totals = {t: ZERO for t in ChartOfAccount.Type.values}
    for account in ChartOfAccount.objects.for_company(company).filter(is_group=False):
        dr = debits.get(account.pk, ZERO)
        cr = credits.get(account.pk, ZERO)
        balance = dr - cr if account.is_debit_normal else cr - dr
        sections[account.type].append(
            {"id": account.pk, "code": account.code, "name": account.name,
             "balance": balance})
        totals[account.type] += balance

    current_earnings = totals["REVENUE"] - totals["EXPENSE"]
    total_equity = totals["EQUITY"] + current_earnings
    total_liabilities_equity = totals["LIABILITY"] + total_equity
    return {
        "as_of": end,
        "assets": sections["ASSET"],
        "liabilities": sections["LIABILITY"],
        "equity": sections["EQUITY"],
        "totals": {
            "assets": totals["ASSET"],
            "liabilities": totals["LIABILITY"],
            "equity": total_equity,
            "current_earnings": current_earnings,
            "liabilities_and_equity": total_liabilities_equity,
        },
        "is_balanced": totals["ASSET"] == total_liabilities_equity,
    }
