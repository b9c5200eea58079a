from .tenancy import Tenant, Company
from .parties import Customer, Vendor, Product
from .accounts import AccountType, Account
from .orders import SalesOrder, SalesOrderItem, PurchaseOrder, PurchaseOrderItem
from .billing import Invoice, Bill, Receipt, Payment
from .intercompany import IntercompanyTransaction
from .documents import DocumentSequence

__all__ = [
    'Tenant', 'Company',
    'Customer', 'Vendor', 'Product',
    'AccountType', 'Account',
    'SalesOrder', 'SalesOrderItem', 'PurchaseOrder', 'PurchaseOrderItem',
    'Invoice', 'Bill', 'Receipt', 'Payment',
    'IntercompanyTransaction',
    'DocumentSequence',
]
