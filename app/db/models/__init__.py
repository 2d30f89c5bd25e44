from .customer_lookup import CustomerLookup
from .order_stats import OrderStats

__all__ = [
    'CustomerLookup',
    'OrderStats',
]
