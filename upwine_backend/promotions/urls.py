# promotions/urls.py
"""
Mounted under /api/ in backend/urls.py:
- POST /api/discount-codes/validate/
- /api/admin/discount-codes/ (router, admin only)
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from promotions.views import DiscountCodeAdminViewSet, DiscountCodeValidateView

app_name = "promotions"

router = SimpleRouter()
router.register(r"admin/discount-codes", DiscountCodeAdminViewSet, basename="admin-discount-codes")

urlpatterns = [
    path("discount-codes/validate/", DiscountCodeValidateView.as_view(), name="discount-code-validate"),
    path("", include(router.urls)),
]
