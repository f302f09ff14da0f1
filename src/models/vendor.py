"""
Vendor model for suppliers that quote raw material prices.

Vendors are master data owned outside the pricing engine. The ledger only
needs to resolve a vendor reference and read its name.
"""

from sqlalchemy import Column, String, Boolean, Text, Index

from .base import BaseModel


class Vendor(BaseModel):
    """
    Vendor model representing a supplier of raw materials.

    Attributes:
        name: Vendor name (e.g., "Acme Chemicals")
        contact_person: Optional contact name
        notes: Optional notes
        is_active: Soft delete flag (True = active, False = deactivated)
    """

    __tablename__ = "vendors"

    name = Column(String(200), nullable=False)
    contact_person = Column(String(200), nullable=True)
    notes = Column(Text, nullable=True)

    # Soft delete flag
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("idx_vendor_name", "name"),
        Index("idx_vendor_active", "is_active"),
    )

    def __repr__(self) -> str:
        """String representation of vendor."""
        return f"Vendor(id={self.id}, name='{self.name}')"
