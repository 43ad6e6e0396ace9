from .auth import User, USER_ROLES, USER_STATUSES
from .inventory import Product
from .sales import Sale, SaleItem, PAYMENT_METHODS, DEFAULT_CUSTOMER_NAME

__all__ = [
    'User', 'USER_ROLES', 'USER_STATUSES',
    'Product',
    'Sale', 'SaleItem', 'PAYMENT_METHODS', 'DEFAULT_CUSTOMER_NAME',
]
