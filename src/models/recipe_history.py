"""
RecipeHistorySnapshot model for immutable recipe cost history.

A snapshot stores a full copy of a recipe's aggregates and line items at the
moment a propagation (or another tagged event) changed it, so historical cost
stays readable after later price changes.
"""

import json

from sqlalchemy import (
    Column,
    String,
    Integer,
    Text,
    DateTime,
    Numeric,
    ForeignKey,
    Index,
    event,
)
from sqlalchemy.orm import relationship, object_session

from .base import BaseModel
from src.utils.datetime_utils import utc_now


class SnapshotImmutableError(Exception):
    """Raised when a flush would modify an existing recipe history snapshot."""

    def __init__(self, snapshot_id: int):
        self.snapshot_id = snapshot_id
        super().__init__(f"Recipe history snapshot {snapshot_id} is immutable")


class RecipeHistorySnapshot(BaseModel):
    """
    Immutable snapshot of a recipe's cost state.

    Attributes:
        recipe_id: FK to the source recipe (RESTRICT on delete)
        recipe_code: Recipe code at snapshot time
        recipe_name: Recipe name at snapshot time
        snapshot_at: When the snapshot was captured
        total_raw_material_cost: Recipe aggregate at snapshot time
        price_per_unit: Recipe aggregate at snapshot time
        items_data: JSON string with the complete line item list
        reason: Why the snapshot was taken (e.g., "price_change")
        changed_by: Actor responsible for the change

    Note:
        - No updated_at: rows are never modified; a before_update listener
          rejects any attempt
        - Rows are removed only by recipe_history_service.clear_recipe_history()
        - JSON stored as Text for SQLite compatibility
    """

    __tablename__ = "recipe_history"

    updated_at = None

    recipe_id = Column(
        Integer,
        ForeignKey("recipes.id", ondelete="RESTRICT"),
        nullable=False,
    )
    recipe_code = Column(String(50), nullable=False)
    recipe_name = Column(String(200), nullable=False)
    snapshot_at = Column(DateTime, nullable=False, default=utc_now)
    total_raw_material_cost = Column(Numeric(22, 8), nullable=False)
    price_per_unit = Column(Numeric(14, 2), nullable=False)
    items_data = Column(Text, nullable=False)
    reason = Column(String(50), nullable=False)
    changed_by = Column(String(100), nullable=False)

    recipe = relationship("Recipe", back_populates="history")

    __table_args__ = (
        Index("idx_recipe_history_recipe", "recipe_id"),
        Index("idx_recipe_history_snapshot_at", "snapshot_at"),
    )

    def get_items_data(self) -> list:
        """
        Parse and return the line items captured in this snapshot.

        Returns:
            List of line item dictionaries at snapshot time.
            Empty list if items_data is None or invalid JSON.
        """
        if not self.items_data:
            return []
        try:
            return json.loads(self.items_data)
        except json.JSONDecodeError:
            return []

    def __repr__(self) -> str:
        """String representation of recipe history snapshot."""
        return (
            f"RecipeHistorySnapshot(id={self.id}, recipe_id={self.recipe_id}, "
            f"reason='{self.reason}', total={self.total_raw_material_cost})"
        )

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert snapshot to dictionary with parsed items.

        Args:
            include_relationships: Ignored; snapshots are self-contained

        Returns:
            Dictionary representation with "items" parsed from JSON
        """
        result = super().to_dict(False)
        result["items"] = self.get_items_data()
        return result


@event.listens_for(RecipeHistorySnapshot, "before_update")
def _reject_snapshot_update(mapper, connection, target):
    """Refuse to flush changes to an already persisted snapshot."""
    session = object_session(target)
    if session is None or session.is_modified(target, include_collections=False):
        raise SnapshotImmutableError(target.id)
