from .invoices import AdminInvoiceViewSet, PublicInvoiceView
from .orders import AdminOrderViewSet, OrderCreateView, OrderTrackView

__all__ = [
    "AdminInvoiceViewSet",
    "AdminOrderViewSet",
    "OrderCreateView",
    "OrderTrackView",
    "PublicInvoiceView",
]
