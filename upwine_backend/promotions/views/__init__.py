from .discount_codes import DiscountCodeAdminViewSet, DiscountCodeValidateView

__all__ = ["DiscountCodeAdminViewSet", "DiscountCodeValidateView"]
