"""
Catalog Service - minimal master data for vendors, materials and recipes.

The pricing engine only reads this data; these functions exist so the CLI and
tests can set up vendors, materials and recipes to price. Recipe line items
take their initial price from the material's current price.

Session Management Pattern:
- All public functions accept session=None parameter
- If session provided, use it directly (caller owns the commit)
- If session is None, create a new session via session_scope()
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from src.models import Material, Recipe, RecipeLineItem, Vendor
from src.services.database import session_scope
from src.services.exceptions import (
    MaterialNotFound,
    RecipeNotFound,
    ValidationError,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.utils.constants import MATERIAL_CODE_PREFIX, MATERIAL_CODE_WIDTH
from src.utils.decimal_utils import quantize_price, to_decimal

logger = get_service_logger(__name__)


def _require_name(value: Optional[str], field: str) -> str:
    if not value or not value.strip():
        raise ValidationError([f"{field} is required"])
    return value.strip()


def _non_negative(value: Any, field: str) -> Decimal:
    try:
        result = to_decimal(value)
    except ValueError as e:
        raise ValidationError([f"{field} is invalid: {e}"])
    if result < 0:
        raise ValidationError([f"{field} cannot be negative"])
    return result


# ============================================================================
# Vendors
# ============================================================================


def create_vendor(
    name: str,
    contact_person: Optional[str] = None,
    notes: Optional[str] = None,
    session: Session = None,
) -> Dict[str, Any]:
    """
    Create a vendor.

    Raises:
        ValidationError: If name is empty
    """
    name = _require_name(name, "Vendor name")
    if session is not None:
        return _create_vendor_impl(name, contact_person, notes, session)
    with session_scope() as session:
        return _create_vendor_impl(name, contact_person, notes, session)


def _create_vendor_impl(name, contact_person, notes, session: Session) -> Dict[str, Any]:
    vendor = Vendor(name=name, contact_person=contact_person, notes=notes)
    session.add(vendor)
    session.flush()
    log_operation(logger, operation="create_vendor", outcome="success", vendor_id=vendor.id)
    return vendor.to_dict()


# ============================================================================
# Materials
# ============================================================================


def generate_material_code(session: Session) -> str:
    """
    Generate the next material code, e.g. "RM00001".

    Codes are sequential over every material ever created, deleted ones included.
    """
    highest = session.query(func.max(Material.id)).scalar() or 0
    return f"{MATERIAL_CODE_PREFIX}{highest + 1:0{MATERIAL_CODE_WIDTH}d}"


def create_material(
    name: str,
    unit_name: Optional[str] = None,
    code: Optional[str] = None,
    brand_name: Optional[str] = None,
    category_id: Optional[int] = None,
    subcategory_id: Optional[int] = None,
    unit_id: Optional[int] = None,
    session: Session = None,
) -> Dict[str, Any]:
    """
    Create a material with no price.

    Args:
        name: Material name
        unit_name: Unit display name (e.g., "kg")
        code: Business code; generated when omitted
        brand_name: Optional brand
        category_id: Optional master-data category reference
        subcategory_id: Optional master-data subcategory reference
        unit_id: Optional master-data unit reference
        session: Optional session

    Returns:
        Material dict

    Raises:
        ValidationError: If name is empty or code is already used
    """
    name = _require_name(name, "Material name")
    fields = {
        "name": name,
        "unit_name": unit_name,
        "code": code,
        "brand_name": brand_name,
        "category_id": category_id,
        "subcategory_id": subcategory_id,
        "unit_id": unit_id,
    }
    if session is not None:
        return _create_material_impl(fields, session)
    with session_scope() as session:
        return _create_material_impl(fields, session)


def _create_material_impl(fields: Dict[str, Any], session: Session) -> Dict[str, Any]:
    if not fields["code"]:
        fields["code"] = generate_material_code(session)
    elif session.query(Material).filter(Material.code == fields["code"]).first():
        raise ValidationError([f"Material code '{fields['code']}' already exists"])

    material = Material(**fields)
    session.add(material)
    session.flush()
    log_operation(
        logger,
        operation="create_material",
        outcome="success",
        material_id=material.id,
        code=material.code,
    )
    return material.to_dict()


def get_material(material_id: int, session: Session = None) -> Dict[str, Any]:
    """
    Get a material by ID.

    Raises:
        MaterialNotFound: If the material does not exist or is deleted
    """
    if session is not None:
        return _get_material_impl(material_id, session)
    with session_scope() as session:
        return _get_material_impl(material_id, session)


def _get_material_impl(material_id: int, session: Session) -> Dict[str, Any]:
    material = session.get(Material, material_id)
    if material is None or material.is_deleted:
        raise MaterialNotFound(material_id)
    return material.to_dict()


def soft_delete_material(material_id: int, session: Session = None) -> None:
    """
    Mark a material deleted. Its quotes and logs are kept.

    Raises:
        MaterialNotFound: If the material does not exist or is already deleted
    """
    if session is not None:
        return _soft_delete_material_impl(material_id, session)
    with session_scope() as session:
        return _soft_delete_material_impl(material_id, session)


def _soft_delete_material_impl(material_id: int, session: Session) -> None:
    material = session.get(Material, material_id)
    if material is None or material.is_deleted:
        raise MaterialNotFound(material_id)
    material.is_deleted = True
    session.flush()
    log_operation(logger, operation="soft_delete_material", outcome="success", material_id=material_id)


# ============================================================================
# Recipes
# ============================================================================


def create_recipe(
    code: str,
    name: str,
    batch_size: Any,
    session: Session = None,
) -> Dict[str, Any]:
    """
    Create an empty recipe.

    Raises:
        ValidationError: If code or name is empty, code is taken, or
            batch_size is negative
    """
    code = _require_name(code, "Recipe code")
    name = _require_name(name, "Recipe name")
    batch_value = _non_negative(batch_size, "Batch size")
    if session is not None:
        return _create_recipe_impl(code, name, batch_value, session)
    with session_scope() as session:
        return _create_recipe_impl(code, name, batch_value, session)


def _create_recipe_impl(code: str, name: str, batch_size: Decimal, session: Session) -> Dict[str, Any]:
    if session.query(Recipe).filter(Recipe.code == code).first():
        raise ValidationError([f"Recipe code '{code}' already exists"])

    recipe = Recipe(code=code, name=name, batch_size=batch_size)
    recipe.recalculate_aggregates([])
    session.add(recipe)
    session.flush()
    log_operation(logger, operation="create_recipe", outcome="success", recipe_id=recipe.id)
    return recipe.to_dict()


def add_recipe_item(
    recipe_id: int,
    material_id: int,
    quantity: Any,
    yield_quantity: Any = None,
    session: Session = None,
) -> Dict[str, Any]:
    """
    Add a material to a recipe, priced at the material's current price.

    The recipe's aggregates are recalculated.

    Args:
        recipe_id: Recipe to extend
        material_id: Material consumed
        quantity: Quantity per batch (>= 0)
        yield_quantity: Optional yield for price_per_kg
        session: Optional session

    Returns:
        Line item dict

    Raises:
        ValidationError: If quantity or yield is invalid
        RecipeNotFound: If the recipe does not exist
        MaterialNotFound: If the material does not exist or is deleted
    """
    qty_value = _non_negative(quantity, "Quantity")
    yield_value = None
    if yield_quantity is not None:
        yield_value = _non_negative(yield_quantity, "Yield")

    if session is not None:
        return _add_recipe_item_impl(recipe_id, material_id, qty_value, yield_value, session)
    with session_scope() as session:
        return _add_recipe_item_impl(recipe_id, material_id, qty_value, yield_value, session)


def _add_recipe_item_impl(
    recipe_id: int,
    material_id: int,
    quantity: Decimal,
    yield_quantity: Optional[Decimal],
    session: Session,
) -> Dict[str, Any]:
    recipe = session.get(Recipe, recipe_id)
    if recipe is None:
        raise RecipeNotFound(recipe_id)
    material = session.get(Material, material_id)
    if material is None or material.is_deleted:
        raise MaterialNotFound(material_id)

    price = quantize_price(material.current_price) if material.current_price is not None else None
    item = RecipeLineItem(
        recipe_id=recipe.id,
        material_id=material.id,
        quantity=quantity,
        yield_quantity=yield_quantity,
    )
    item.apply_price(price)
    session.add(item)
    session.flush()

    all_items = session.query(RecipeLineItem).filter(RecipeLineItem.recipe_id == recipe.id).all()
    recipe.recalculate_aggregates(all_items)
    session.flush()

    log_operation(
        logger,
        operation="add_recipe_item",
        outcome="success",
        recipe_id=recipe.id,
        material_id=material.id,
        item_id=item.id,
    )
    return item.to_dict()


def get_recipe(recipe_id: int, session: Session = None) -> Dict[str, Any]:
    """
    Get a recipe with its line items.

    Returns:
        Recipe dict with an "items" list

    Raises:
        RecipeNotFound: If the recipe does not exist
    """
    if session is not None:
        return _get_recipe_impl(recipe_id, session)
    with session_scope() as session:
        return _get_recipe_impl(recipe_id, session)


def _get_recipe_impl(recipe_id: int, session: Session) -> Dict[str, Any]:
    recipe = session.get(Recipe, recipe_id)
    if recipe is None:
        raise RecipeNotFound(recipe_id)
    result = recipe.to_dict()
    items = (
        session.query(RecipeLineItem)
        .filter(RecipeLineItem.recipe_id == recipe.id)
        .order_by(RecipeLineItem.id)
        .all()
    )
    result["items"] = [item.to_dict() for item in items]
    return result
