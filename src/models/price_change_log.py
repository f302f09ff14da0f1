"""
PriceChangeLogEntry model for vendor price changes.

One row is written when a newly recorded quote's price differs from the prior
quote of the same (material, vendor) pair.
"""

from sqlalchemy import (
    Column,
    String,
    Integer,
    DateTime,
    Numeric,
    ForeignKey,
    Index,
)

from .base import BaseModel
from src.utils.datetime_utils import utc_now


class PriceChangeLogEntry(BaseModel):
    """
    Audit record of a vendor price change for a material.

    Attributes:
        material_id: Foreign key to Material
        vendor_id: Foreign key to Vendor
        vendor_name: Vendor name at change time
        old_price: Price of the prior quote
        new_price: Price of the new quote
        quantity: Quantity of the new quote
        unit_name: Unit of the new quote
        changed_at: When the change was recorded
        changed_by: User who recorded the new quote
    """

    __tablename__ = "price_change_logs"

    updated_at = None

    material_id = Column(
        Integer,
        ForeignKey("materials.id", ondelete="CASCADE"),
        nullable=False,
    )
    vendor_id = Column(
        Integer,
        ForeignKey("vendors.id", ondelete="RESTRICT"),
        nullable=False,
    )
    vendor_name = Column(String(200), nullable=False)
    old_price = Column(Numeric(12, 4), nullable=False)
    new_price = Column(Numeric(12, 4), nullable=False)
    quantity = Column(Numeric(12, 4), nullable=False)
    unit_name = Column(String(50), nullable=True)
    changed_at = Column(DateTime, nullable=False, default=utc_now)
    changed_by = Column(String(100), nullable=False)

    __table_args__ = (
        Index("idx_price_change_log_material", "material_id"),
        Index("idx_price_change_log_changed_at", "changed_at"),
    )

    def __repr__(self) -> str:
        """String representation of price change log entry."""
        return (
            f"PriceChangeLogEntry(id={self.id}, material_id={self.material_id}, "
            f"vendor_id={self.vendor_id}, {self.old_price} -> {self.new_price})"
        )
