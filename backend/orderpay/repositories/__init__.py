from .order_repository import OrderRepository
from .pagination import Page
from .payment_repository import PaymentRepository

__all__ = ['OrderRepository', 'PaymentRepository', 'Page']
