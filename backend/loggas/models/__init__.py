from .inventory import Product
from .sales import Sale, SaleItem, DeliveryRoute
from .ledger import LedgerTransaction
from .customers import Customer
from .auth import User, SessionToken

__all__ = [
    'Product',
    'Sale', 'SaleItem', 'DeliveryRoute',
    'LedgerTransaction',
    'Customer',
    'User', 'SessionToken',
]
