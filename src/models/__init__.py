"""
Database models package.

This package contains all SQLAlchemy ORM models for the application.
"""

from .base import Base, BaseModel, SoftDeleteMixin
from .enums import ItemType, UnitCategory
from .unit import Unit
from .conversion_factor import ConversionFactor
from .item import Item, ItemUnit
from .stock import Stock
from .supplier import Supplier
from .recipe import Recipe, RecipeIngredient
from .purchase import Purchase, PurchaseItem
from .production import Production, ProductionItem

__all__ = [
    "Base",
    "BaseModel",
    "SoftDeleteMixin",
    # Enums
    "ItemType",
    "UnitCategory",
    # Reference data
    "Unit",
    "ConversionFactor",
    # Inventory
    "Item",
    "ItemUnit",
    "Stock",
    "Supplier",
    # Recipes
    "Recipe",
    "RecipeIngredient",
    # Transactions
    "Purchase",
    "PurchaseItem",
    "Production",
    "ProductionItem",
]
