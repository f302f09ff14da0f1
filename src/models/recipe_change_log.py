"""
RecipeChangeLogEntry model for per-line-item recipe changes.

Propagation writes one row for every line item whose price it changes.
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
from src.utils.constants import CHANGE_FIELD_PRICE
from src.utils.datetime_utils import utc_now


class RecipeChangeLogEntry(BaseModel):
    """
    Audit record of one field change on a recipe line item.

    Attributes:
        recipe_id: Foreign key to Recipe
        recipe_item_id: Line item that changed
        material_id: Material referenced by the line item
        field_changed: Name of the changed field (always "price" today)
        old_value: Value before the change
        new_value: Value after the change
        changed_at: When the change was written
        changed_by: Actor responsible for the change
        recipe_code: Recipe code at change time
    """

    __tablename__ = "recipe_change_logs"

    updated_at = None

    recipe_id = Column(
        Integer,
        ForeignKey("recipes.id", ondelete="CASCADE"),
        nullable=False,
    )
    recipe_item_id = Column(Integer, nullable=True)
    material_id = Column(Integer, nullable=False)
    field_changed = Column(String(50), nullable=False, default=CHANGE_FIELD_PRICE)
    old_value = Column(Numeric(12, 4), nullable=True)
    new_value = Column(Numeric(12, 4), nullable=True)
    changed_at = Column(DateTime, nullable=False, default=utc_now)
    changed_by = Column(String(100), nullable=False)
    recipe_code = Column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_recipe_change_log_recipe", "recipe_id"),
        Index("idx_recipe_change_log_material", "material_id"),
    )

    def __repr__(self) -> str:
        """String representation of recipe change log entry."""
        return (
            f"RecipeChangeLogEntry(id={self.id}, recipe_id={self.recipe_id}, "
            f"{self.field_changed}: {self.old_value} -> {self.new_value})"
        )
