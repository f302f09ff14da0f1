"""
VendorQuote model for the append-only pricing ledger.

Each row is one price offer from a vendor for a material at a point in time.
Rows are never updated: a new price from the same vendor is a new row, so
the ledger for a (material, vendor) pair is a timeline rather than a single
"current" record.
"""

from sqlalchemy import (
    Column,
    String,
    Integer,
    DateTime,
    Numeric,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from src.utils.datetime_utils import utc_now


class VendorQuote(BaseModel):
    """
    VendorQuote model representing one vendor price quote.

    This model is IMMUTABLE after creation - no updated_at field.

    Attributes:
        material_id: Foreign key to Material
        vendor_id: Foreign key to Vendor
        vendor_name: Vendor name at quote time
        quantity: Quoted quantity (> 0)
        unit_name: Unit of the quoted quantity
        price: Quoted price (>= 0)
        effective_date: When the quote was recorded; orders the timeline
        recorded_by: User who recorded the quote
        brand_name: Optional brand quoted

    Relationships:
        material: Many-to-One with Material
        vendor: Many-to-One with Vendor
    """

    __tablename__ = "vendor_quotes"

    # Override BaseModel's updated_at - quotes are immutable
    updated_at = None

    material_id = Column(
        Integer,
        ForeignKey("materials.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    vendor_id = Column(
        Integer,
        ForeignKey("vendors.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    vendor_name = Column(String(200), nullable=False)

    quantity = Column(Numeric(12, 4), nullable=False)
    unit_name = Column(String(50), nullable=True)
    price = Column(Numeric(12, 4), nullable=False)
    effective_date = Column(DateTime, nullable=False, default=utc_now)
    recorded_by = Column(String(100), nullable=False)
    brand_name = Column(String(200), nullable=True)

    material = relationship("Material", back_populates="quotes")
    vendor = relationship("Vendor", foreign_keys=[vendor_id])

    __table_args__ = (
        Index("idx_vendor_quote_material_vendor", "material_id", "vendor_id"),
        Index("idx_vendor_quote_effective_date", "effective_date"),
        CheckConstraint("quantity > 0", name="ck_vendor_quote_quantity_positive"),
        CheckConstraint("price >= 0", name="ck_vendor_quote_price_non_negative"),
    )

    def __repr__(self) -> str:
        """String representation of vendor quote."""
        return (
            f"VendorQuote(id={self.id}, material_id={self.material_id}, "
            f"vendor_id={self.vendor_id}, price={self.price})"
        )
