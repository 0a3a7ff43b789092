"""
Database models for SalesDesk Catalog.

All SQLAlchemy models are imported here so that metadata is complete.
"""

from salesdesk.models.shop import Shop
from salesdesk.models.product import Product

__all__ = [
    "Shop",
    "Product",
]
