from .invoice import Invoice
from .order import Order, OrderItem

__all__ = ["Invoice", "Order", "OrderItem"]
