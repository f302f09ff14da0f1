"""Audit Log Service - shared writer for price and recipe change logs.

Both the pricing ledger and the propagation engine record what they changed.
The writers here always run inside the caller's session so a log row shares
the fate of the change it describes. Readers follow the usual optional
session pattern.
"""

from decimal import Decimal
from typing import Optional, List, Dict, Any

from sqlalchemy.orm import Session

from src.models import PriceChangeLogEntry, RecipeChangeLogEntry
from src.services.database import session_scope
from src.utils.constants import CHANGE_FIELD_PRICE
from src.utils.datetime_utils import utc_now


def write_price_change_log(
    session: Session,
    material_id: int,
    vendor_id: int,
    vendor_name: str,
    old_price: Decimal,
    new_price: Decimal,
    quantity: Decimal,
    unit_name: Optional[str],
    changed_by: str,
) -> PriceChangeLogEntry:
    """Append one PriceChangeLogEntry and flush it.

    Args:
        session: Active session owned by the caller
        material_id: Material whose vendor price changed
        vendor_id: Vendor that quoted the new price
        vendor_name: Vendor name at change time
        old_price: Price of the prior quote for this (material, vendor)
        new_price: Price of the new quote
        quantity: Quantity of the new quote
        unit_name: Unit of the new quote
        changed_by: User recording the quote

    Returns:
        The flushed PriceChangeLogEntry
    """
    entry = PriceChangeLogEntry(
        material_id=material_id,
        vendor_id=vendor_id,
        vendor_name=vendor_name,
        old_price=old_price,
        new_price=new_price,
        quantity=quantity,
        unit_name=unit_name,
        changed_at=utc_now(),
        changed_by=changed_by,
    )
    session.add(entry)
    session.flush()
    return entry


def write_recipe_change_log(
    session: Session,
    recipe_id: int,
    recipe_item_id: Optional[int],
    material_id: int,
    old_value: Optional[Decimal],
    new_value: Optional[Decimal],
    changed_by: str,
    recipe_code: Optional[str] = None,
    field_changed: str = CHANGE_FIELD_PRICE,
) -> RecipeChangeLogEntry:
    """Append one RecipeChangeLogEntry and flush it.

    Args:
        session: Active session owned by the caller
        recipe_id: Recipe that owns the changed line item
        recipe_item_id: Line item that changed
        material_id: Material referenced by the line item
        old_value: Value before the change
        new_value: Value after the change
        changed_by: Actor responsible for the change
        recipe_code: Recipe code, denormalized for reporting
        field_changed: Changed field name (default "price")

    Returns:
        The flushed RecipeChangeLogEntry
    """
    entry = RecipeChangeLogEntry(
        recipe_id=recipe_id,
        recipe_item_id=recipe_item_id,
        material_id=material_id,
        field_changed=field_changed,
        old_value=old_value,
        new_value=new_value,
        changed_at=utc_now(),
        changed_by=changed_by,
        recipe_code=recipe_code,
    )
    session.add(entry)
    session.flush()
    return entry


def get_recipe_change_logs(
    recipe_id: int, session: Optional[Session] = None
) -> List[Dict[str, Any]]:
    """Get change logs for a recipe, newest first.

    Args:
        recipe_id: Recipe ID
        session: Optional database session

    Returns:
        List of change log dicts
    """
    if session is not None:
        return _get_recipe_change_logs_impl(recipe_id, session)
    with session_scope() as session:
        return _get_recipe_change_logs_impl(recipe_id, session)


def _get_recipe_change_logs_impl(recipe_id: int, session: Session) -> List[Dict[str, Any]]:
    """Implementation of get_recipe_change_logs."""
    entries = (
        session.query(RecipeChangeLogEntry)
        .filter(RecipeChangeLogEntry.recipe_id == recipe_id)
        .order_by(RecipeChangeLogEntry.changed_at.desc(), RecipeChangeLogEntry.id.desc())
        .all()
    )
    return [e.to_dict() for e in entries]


def get_price_change_logs(
    material_id: int, session: Optional[Session] = None
) -> List[Dict[str, Any]]:
    """Get vendor price change logs for a material, newest first.

    Args:
        material_id: Material ID
        session: Optional database session

    Returns:
        List of price change log dicts
    """
    if session is not None:
        return _get_price_change_logs_impl(material_id, session)
    with session_scope() as session:
        return _get_price_change_logs_impl(material_id, session)


def _get_price_change_logs_impl(material_id: int, session: Session) -> List[Dict[str, Any]]:
    """Implementation of get_price_change_logs."""
    entries = (
        session.query(PriceChangeLogEntry)
        .filter(PriceChangeLogEntry.material_id == material_id)
        .order_by(PriceChangeLogEntry.changed_at.desc(), PriceChangeLogEntry.id.desc())
        .all()
    )
    return [e.to_dict() for e in entries]
