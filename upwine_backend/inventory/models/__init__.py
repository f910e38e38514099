"""
PATH: inventory/models/__init__.py

Inventory models export surface.
"""

from .stock_period import StockPeriod

__all__ = ["StockPeriod"]
