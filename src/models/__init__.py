"""
Database models package.

This package contains all SQLAlchemy ORM models for the application.
"""

from .base import Base, BaseModel
from .vendor import Vendor
from .material import Material
from .vendor_quote import VendorQuote
from .price_change_log import PriceChangeLogEntry
from .recipe import Recipe, RecipeLineItem
from .recipe_change_log import RecipeChangeLogEntry
from .recipe_history import RecipeHistorySnapshot, SnapshotImmutableError

__all__ = [
    "Base",
    "BaseModel",
    # Master data
    "Vendor",
    "Material",
    "Recipe",
    "RecipeLineItem",
    # Pricing ledger
    "VendorQuote",
    "PriceChangeLogEntry",
    # Audit trail
    "RecipeChangeLogEntry",
    "RecipeHistorySnapshot",
    "SnapshotImmutableError",
]
