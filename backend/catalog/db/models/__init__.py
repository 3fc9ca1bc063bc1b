"""Database models package."""
from catalog.db.models.category import Category
from catalog.db.models.product import Product, ProductTag

__all__ = ["Category", "Product", "ProductTag"]
