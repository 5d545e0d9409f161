from .account import ChartOfAccount, LedgerTransaction
from .auditlog import AuditLog
from .company import Company, EntityMembership
from .contact import Contact
from .invoice import Invoice
from .order import Order, PurchaseOrder, SalesOrder
from .order_item import OrderItem
from .payment import Payment
from .product import Product
from .sequence import DocumentSequence
