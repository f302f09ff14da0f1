"""
Recipe models for raw material costing.

This module contains:
- Recipe: A formulation with a batch size and derived cost aggregates
- RecipeLineItem: One raw material consumed by a recipe, with derived costs

Derived values are never edited directly. RecipeLineItem.recalculate_totals()
and Recipe.recalculate_aggregates() are the only writers of those columns.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from sqlalchemy import (
    Column,
    String,
    Integer,
    Numeric,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from src.utils.constants import LINE_TOTAL_QUANTUM, PRICE_QUANTUM, PRICE_PER_UNIT_QUANTUM


class Recipe(BaseModel):
    """
    Recipe model representing a costed formulation.

    Attributes:
        code: Recipe code (unique)
        name: Recipe name
        batch_size: Units produced per batch; divides the raw material cost
        total_raw_material_cost: Sum of line item total_price (derived)
        price_per_unit: total_raw_material_cost / batch_size, 2 decimals (derived)
        version: Optimistic concurrency counter, bumped by SQLAlchemy on
            every UPDATE of this row

    Relationships:
        items: One-to-Many with RecipeLineItem
        history: One-to-Many with RecipeHistorySnapshot
    """

    __tablename__ = "recipes"

    code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    batch_size = Column(Numeric(12, 4), nullable=False, default=Decimal("0"))

    # Derived aggregates
    total_raw_material_cost = Column(Numeric(22, 8), nullable=False, default=Decimal("0"))
    price_per_unit = Column(Numeric(14, 2), nullable=False, default=Decimal("0"))

    version = Column(Integer, nullable=False)

    items = relationship(
        "RecipeLineItem",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeLineItem.id",
    )
    history = relationship(
        "RecipeHistorySnapshot",
        back_populates="recipe",
        lazy="select",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("batch_size >= 0", name="ck_recipe_batch_size_non_negative"),
    )

    def recalculate_aggregates(self, items: Iterable["RecipeLineItem"]) -> None:
        """
        Recompute total_raw_material_cost and price_per_unit from items.

        Args:
            items: The complete set of this recipe's line items
        """
        total = sum(
            (Decimal(item.total_price or 0) for item in items),
            Decimal("0"),
        )
        self.total_raw_material_cost = total
        self.price_per_unit = calculate_price_per_unit(total, self.batch_size)


class RecipeLineItem(BaseModel):
    """
    Junction model linking a recipe to a raw material it consumes.

    Attributes:
        recipe_id: Foreign key to Recipe
        material_id: Foreign key to Material
        quantity: Quantity of material used per batch
        yield_quantity: Optional yield used to compute price_per_kg
        price: Material price applied to this line
        total_price: quantity * price (derived)
        price_per_kg: total_price / yield_quantity when yield is set (derived)
    """

    __tablename__ = "recipe_line_items"

    recipe_id = Column(
        Integer,
        ForeignKey("recipes.id", ondelete="CASCADE"),
        nullable=False,
    )
    material_id = Column(
        Integer,
        ForeignKey("materials.id", ondelete="RESTRICT"),
        nullable=False,
    )

    quantity = Column(Numeric(12, 4), nullable=False, default=Decimal("0"))
    yield_quantity = Column(Numeric(12, 4), nullable=True)
    price = Column(Numeric(12, 4), nullable=True)
    total_price = Column(Numeric(20, 8), nullable=False, default=Decimal("0"))
    price_per_kg = Column(Numeric(16, 4), nullable=True)

    recipe = relationship("Recipe", back_populates="items")
    material = relationship("Material", back_populates="recipe_items")

    __table_args__ = (
        Index("idx_recipe_line_item_recipe", "recipe_id"),
        Index("idx_recipe_line_item_material", "material_id"),
        CheckConstraint("quantity >= 0", name="ck_recipe_line_item_quantity_non_negative"),
    )

    def apply_price(self, price: Decimal) -> None:
        """Set the line price and re-derive totals."""
        self.price = price
        self.recalculate_totals()

    def recalculate_totals(self) -> None:
        """Re-derive total_price and price_per_kg from quantity, price and yield."""
        self.total_price, self.price_per_kg = calculate_line_totals(
            self.quantity, self.price, self.yield_quantity
        )

    def __repr__(self) -> str:
        """String representation of recipe line item."""
        return (
            f"RecipeLineItem(id={self.id}, recipe_id={self.recipe_id}, "
            f"material_id={self.material_id}, price={self.price})"
        )


def calculate_line_totals(
    quantity: Optional[Decimal],
    price: Optional[Decimal],
    yield_quantity: Optional[Decimal] = None,
) -> tuple:
    """
    Calculate (total_price, price_per_kg) for a line item.

    A missing quantity or price counts as zero. A missing or zero yield
    yields no price_per_kg.

    Examples:
        >>> calculate_line_totals(Decimal("2"), Decimal("12"), None)
        (Decimal('24.00000000'), None)
        >>> calculate_line_totals(Decimal("2"), Decimal("12"), Decimal("4"))
        (Decimal('24.00000000'), Decimal('6.0000'))
    """
    total = (Decimal(quantity or 0) * Decimal(price or 0)).quantize(LINE_TOTAL_QUANTUM)
    per_kg = None
    if yield_quantity:
        per_kg = (total / Decimal(yield_quantity)).quantize(PRICE_QUANTUM)
    return total, per_kg


def calculate_price_per_unit(total_cost: Decimal, batch_size: Optional[Decimal]) -> Decimal:
    """
    Calculate recipe price per unit, rounded half-up to 2 decimal places.

    Returns Decimal("0.00") when batch_size is missing or not positive.

    Examples:
        >>> calculate_price_per_unit(Decimal("60"), Decimal("10"))
        Decimal('6.00')
        >>> calculate_price_per_unit(Decimal("60"), Decimal("0"))
        Decimal('0.00')
    """
    if batch_size is None or Decimal(batch_size) <= 0:
        return Decimal("0").quantize(PRICE_PER_UNIT_QUANTUM)
    return (Decimal(total_cost) / Decimal(batch_size)).quantize(
        PRICE_PER_UNIT_QUANTUM, rounding=ROUND_HALF_UP
    )
