from .auth import User, SessionToken, ROLES, ROLE_ADMIN, ROLE_MANAGER, ROLE_CLERK
from .catalog import Product, Supplier, Customer, Adjustment
from .transactions import (
    Transaction,
    TransactionItem,
    TRANSACTION_TYPES,
    TRANSACTION_SALE,
    TRANSACTION_PURCHASE,
)

__all__ = [
    'User', 'SessionToken', 'ROLES', 'ROLE_ADMIN', 'ROLE_MANAGER', 'ROLE_CLERK',
    'Product', 'Supplier', 'Customer', 'Adjustment',
    'Transaction', 'TransactionItem',
    'TRANSACTION_TYPES', 'TRANSACTION_SALE', 'TRANSACTION_PURCHASE',
]
