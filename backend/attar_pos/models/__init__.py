from .inventory import InventoryItem, ITEM_TYPES
from .sales import Sale, SaleLine, InvoiceSequence
from .auth import User, SessionToken, ROLES

__all__ = [
    'InventoryItem', 'ITEM_TYPES',
    'Sale', 'SaleLine', 'InvoiceSequence',
    'User', 'SessionToken', 'ROLES',
]
