from .orders import Order, OrderLine, ModificationRequest
from .policy import ModificationPolicy, PolicyConfig

__all__ = [
    'Order', 'OrderLine', 'ModificationRequest',
    'ModificationPolicy', 'PolicyConfig',
]
