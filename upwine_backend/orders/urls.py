# orders/urls.py
"""
Mounted under /api/ in backend/urls.py:
- POST /api/orders/
- GET  /api/orders/<order_number>/
- GET  /api/invoices/<invoice_number>/
- /api/admin/orders/ and /api/admin/invoices/ (router, admin only)
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from orders.views import (
    AdminInvoiceViewSet,
    AdminOrderViewSet,
    OrderCreateView,
    OrderTrackView,
    PublicInvoiceView,
)

app_name = "orders"

router = SimpleRouter()
router.register(r"admin/orders", AdminOrderViewSet, basename="admin-orders")
router.register(r"admin/invoices", AdminInvoiceViewSet, basename="admin-invoices")

urlpatterns = [
    path("orders/", OrderCreateView.as_view(), name="order-create"),
    path("orders/<str:order_number>/", OrderTrackView.as_view(), name="order-track"),
    path("invoices/<str:invoice_number>/", PublicInvoiceView.as_view(), name="invoice-detail"),
    path("", include(router.urls)),
]
