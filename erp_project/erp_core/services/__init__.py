from .audit_helper import log_action
from .conversion import convert_order_to_invoice
from .invoices import cancel_invoice, create_invoice, get_invoice, mark_overdue
from .ledger import create_account, delete_account, post_transaction
from .numbering import next_invoice_number, next_number, next_payment_number
from .order_items import add_item, compute_item_total, remove_item, update_item
from .orders import create_order, transition_order
from .payment import AppliedPayment, apply_payment, update_payment_status
from .reports import (balance_sheet, financial_summary, partner_ledger,
                      profit_and_loss, stock_report)
