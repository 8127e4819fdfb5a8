from .catalog import Product, Supplier
from .customers import Customer
from .sales import Sale, SaleItem, SalePayment
from .finance import Expense
from .auth import User, SessionToken
from .settings import SiteSettings

__all__ = [
    'Product', 'Supplier',
    'Customer',
    'Sale', 'SaleItem', 'SalePayment',
    'Expense',
    'User', 'SessionToken',
    'SiteSettings',
]
