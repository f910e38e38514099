from .fees import DeliveryFeeView, DeliveryZonesView

__all__ = ["DeliveryFeeView", "DeliveryZonesView"]
