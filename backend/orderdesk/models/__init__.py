from .catalog import ProductRow, UserRow
from .orders import OrderRow, OrderLineRow, OrderSequenceRow
from .cash import LedgerEntryRow

__all__ = [
    'ProductRow', 'UserRow',
    'OrderRow', 'OrderLineRow', 'OrderSequenceRow',
    'LedgerEntryRow',
]
