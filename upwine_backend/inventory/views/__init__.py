from .stock import AdminStockView, CronResetStockView, PublicStockView

__all__ = ["AdminStockView", "CronResetStockView", "PublicStockView"]
