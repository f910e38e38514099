# delivery/urls.py

from django.urls import path

from delivery.views import DeliveryFeeView, DeliveryZonesView

app_name = "delivery"

urlpatterns = [
    path("delivery/zones/", DeliveryZonesView.as_view(), name="delivery-zones"),
    path("delivery/fee/", DeliveryFeeView.as_view(), name="delivery-fee"),
]
