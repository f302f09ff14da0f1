"""
Material model for purchased raw materials.

A Material is the thing vendors quote prices for and recipes consume.
Classification (category, subcategory, unit, brand) is owned by master data;
this model only keeps the references plus a denormalized "current price"
projection of the pricing ledger.
"""

from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    DateTime,
    Numeric,
    Index,
)
from sqlalchemy.orm import relationship

from .base import BaseModel


class Material(BaseModel):
    """
    Material model representing a purchasable raw material.

    Attributes:
        code: Business code (e.g., "RM00001"), unique
        name: Display name (e.g., "Refined Sugar")
        category_id: Reference to master-data category
        subcategory_id: Reference to master-data subcategory
        unit_id: Reference to master-data unit
        unit_name: Unit display name (e.g., "kg")
        brand_name: Optional brand display name
        current_price: Price of the most recently recorded quote (cache)
        current_vendor_name: Vendor of the most recently recorded quote (cache)
        current_price_date: When that quote was recorded (cache)
        is_deleted: Soft delete flag

    Relationships:
        quotes: One-to-Many with VendorQuote
        recipe_items: One-to-Many with RecipeLineItem

    Note:
        The current_* fields are a cache derived from the vendor_quotes
        ledger. pricing_ledger_service.rebuild_current_price() recomputes
        them by replaying quotes.
    """

    __tablename__ = "materials"

    # Identity
    code = Column(String(20), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)

    # Master-data references
    category_id = Column(Integer, nullable=True)
    subcategory_id = Column(Integer, nullable=True)
    unit_id = Column(Integer, nullable=True)
    unit_name = Column(String(50), nullable=True)
    brand_name = Column(String(200), nullable=True)

    # Denormalized current price (cache of the latest quote)
    current_price = Column(Numeric(12, 4), nullable=True)
    current_vendor_name = Column(String(200), nullable=True)
    current_price_date = Column(DateTime, nullable=True)

    # Soft delete flag
    is_deleted = Column(Boolean, nullable=False, default=False)

    # Relationships
    quotes = relationship(
        "VendorQuote",
        back_populates="material",
        lazy="select",
    )
    recipe_items = relationship(
        "RecipeLineItem",
        back_populates="material",
        lazy="select",
    )

    __table_args__ = (
        Index("idx_material_name", "name"),
        Index("idx_material_deleted", "is_deleted"),
    )

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert material to dictionary.

        Args:
            include_relationships: If True, include quotes

        Returns:
            Dictionary representation
        """
        result = super().to_dict(False)
        if include_relationships:
            result["quotes"] = [q.to_dict() for q in self.quotes]
        return result
