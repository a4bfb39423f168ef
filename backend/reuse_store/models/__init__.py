from .checkouts import Checkout, Item, VERIFICATION_STATUSES
from .fridges import Fridge, FRIDGE_STATUSES, MAINTENANCE_CONDITIONS

__all__ = [
    'Checkout', 'Item', 'VERIFICATION_STATUSES',
    'Fridge', 'FRIDGE_STATUSES', 'MAINTENANCE_CONDITIONS',
]
