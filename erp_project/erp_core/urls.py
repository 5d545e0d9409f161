from django.urls import path

from . import views

app_name = "erp_core"

urlpatterns = [
    # orders
    path("orders/<str:order_type>/", views.create_order_view, name="order-create"),
    path("orders/<str:order_type>/<int:order_id>/status/",
         views.order_status_view, name="order-status"),
    path("orders/<str:order_type>/<int:order_id>/items/",
         views.add_order_item_view, name="order-item-add"),
    path("orders/<str:order_type>/<int:order_id>/convert/",
         views.convert_order_view, name="order-convert"),
    path("order-items/<int:item_id>/", views.order_item_view, name="order-item"),
    # invoices & payments
    path("invoices/", views.create_invoice_view, name="invoice-create"),
    path("invoices/<int:invoice_id>/", views.invoice_detail_view,
         name="invoice-detail"),
    path("invoices/<int:invoice_id>/cancel/", views.cancel_invoice_view,
         name="invoice-cancel"),
    path("invoices/<int:invoice_id>/payments/", views.apply_payment_view,
         name="invoice-pay"),
    path("payments/<int:payment_id>/status/", views.payment_status_view,
         name="payment-status"),
    # chart of accounts
    path("accounts/", views.create_account_view, name="account-create"),
    path("accounts/<int:account_id>/", views.delete_account_view,
         name="account-delete"),
    path("ledger/transactions/", views.post_transaction_view,
         name="ledger-post"),
    # reports
    path("reports/partner-ledger/<int:partner_id>/", views.partner_ledger_view,
         name="report-partner-ledger"),
    path("reports/stock/", views.stock_report_view, name="report-stock"),
    path("reports/financial/", views.financial_summary_view,
         name="report-financial"),
    path("reports/profit-loss/", views.profit_and_loss_view,
         name="report-profit-loss"),
    path("reports/balance-sheet/", views.balance_sheet_view,
         name="report-balance-sheet"),
]
