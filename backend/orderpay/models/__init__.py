from ..statuses import OrderStatus, PaymentStatus, can_transition, can_transition_payment
from .auth import User, SessionToken
from .orders import Order, OrderItem
from .payments import Payment

__all__ = [
    'OrderStatus', 'PaymentStatus', 'can_transition', 'can_transition_payment',
    'User', 'SessionToken',
    'Order', 'OrderItem',
    'Payment',
]
