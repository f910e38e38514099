# inventory/urls.py
"""
Mounted under /api/ in backend/urls.py.
"""

from django.urls import path

from inventory.views import AdminStockView, CronResetStockView, PublicStockView

app_name = "inventory"

urlpatterns = [
    path("stock/", PublicStockView.as_view(), name="public-stock"),
    path("admin/stock/", AdminStockView.as_view(), name="admin-stock"),
    path("cron/reset-stock/", CronResetStockView.as_view(), name="cron-reset-stock"),
]
