"""
Recipe History Service - immutable recipe cost snapshots.

Provides snapshot creation, retrieval and the explicit bulk history clear.
NO UPDATE METHODS. A snapshot captures a recipe's aggregates and its complete
line item list at call time so historical costs stay accurate after later
price changes.

Session Management Pattern:
- All public functions accept session=None parameter
- If session provided, use it directly (caller owns the commit)
- If session is None, create a new session via session_scope()
"""

import json
from decimal import Decimal
from typing import Optional, List, Dict, Any

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from src.models import Recipe, RecipeLineItem, RecipeHistorySnapshot
from src.services.database import session_scope
from src.services.exceptions import RecipeNotFound, ValidationError, DatabaseError
from src.services.logging_utils import get_service_logger, log_operation
from src.utils.constants import SNAPSHOT_REASONS
from src.utils.datetime_utils import utc_now

logger = get_service_logger(__name__)


def archive_recipe(
    recipe_id: int,
    reason: str,
    actor: str,
    session: Session = None,
) -> dict:
    """
    Append an immutable snapshot of a recipe's current cost state.

    Args:
        recipe_id: Recipe to archive
        reason: Reason code, one of SNAPSHOT_REASONS (e.g., "price_change")
        actor: User or process responsible for the change
        session: Optional SQLAlchemy session for transaction sharing

    Returns:
        dict with snapshot data including id and parsed items

    Raises:
        ValidationError: If reason is not a known reason code
        RecipeNotFound: If the recipe does not exist
        DatabaseError: If the write fails and this call owns the session
    """
    if reason not in SNAPSHOT_REASONS:
        raise ValidationError([f"Unknown snapshot reason '{reason}'"])

    if session is not None:
        return _archive_recipe_impl(recipe_id, reason, actor, session)

    try:
        with session_scope() as session:
            return _archive_recipe_impl(recipe_id, reason, actor, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"creating snapshot for recipe {recipe_id}", e)


def _archive_recipe_impl(recipe_id: int, reason: str, actor: str, session: Session) -> dict:
    """Internal implementation of snapshot creation."""
    recipe = session.get(Recipe, recipe_id)
    if recipe is None:
        raise RecipeNotFound(recipe_id)

    items = (
        session.query(RecipeLineItem)
        .filter(RecipeLineItem.recipe_id == recipe_id)
        .order_by(RecipeLineItem.id)
        .all()
    )
    items_data = [_serialize_item(item) for item in items]

    snapshot = RecipeHistorySnapshot(
        recipe_id=recipe.id,
        recipe_code=recipe.code,
        recipe_name=recipe.name,
        snapshot_at=utc_now(),
        total_raw_material_cost=recipe.total_raw_material_cost,
        price_per_unit=recipe.price_per_unit,
        items_data=json.dumps(items_data),
        reason=reason,
        changed_by=actor,
    )
    session.add(snapshot)
    session.flush()

    log_operation(
        logger,
        operation="archive_recipe",
        outcome="success",
        recipe_id=recipe_id,
        snapshot_id=snapshot.id,
        reason=reason,
    )

    return snapshot.to_dict()


def _serialize_item(item: RecipeLineItem) -> Dict[str, Any]:
    """Copy a line item into a JSON-safe dict (Decimals become strings)."""
    material = item.material
    return {
        "id": item.id,
        "material_id": item.material_id,
        "material_code": material.code if material else None,
        "material_name": material.name if material else None,
        "quantity": _decimal_str(item.quantity),
        "yield_quantity": _decimal_str(item.yield_quantity),
        "price": _decimal_str(item.price),
        "total_price": _decimal_str(item.total_price),
        "price_per_kg": _decimal_str(item.price_per_kg),
    }


def _decimal_str(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def get_recipe_history(recipe_id: int, session: Session = None) -> List[dict]:
    """
    Get all snapshots for a recipe, newest first.

    Args:
        recipe_id: Recipe to get history for
        session: Optional session

    Returns:
        List of snapshot dicts
    """
    if session is not None:
        return _get_recipe_history_impl(recipe_id, session)

    with session_scope() as session:
        return _get_recipe_history_impl(recipe_id, session)


def _get_recipe_history_impl(recipe_id: int, session: Session) -> List[dict]:
    """Internal implementation of get_recipe_history."""
    snapshots = (
        session.query(RecipeHistorySnapshot)
        .filter_by(recipe_id=recipe_id)
        .order_by(RecipeHistorySnapshot.snapshot_at.desc(), RecipeHistorySnapshot.id.desc())
        .all()
    )
    return [s.to_dict() for s in snapshots]


def get_snapshot(snapshot_id: int, session: Session = None) -> Optional[dict]:
    """
    Get a snapshot by its ID.

    Args:
        snapshot_id: Snapshot ID
        session: Optional session

    Returns:
        Snapshot dict or None if not found
    """
    if session is not None:
        return _get_snapshot_impl(snapshot_id, session)

    with session_scope() as session:
        return _get_snapshot_impl(snapshot_id, session)


def _get_snapshot_impl(snapshot_id: int, session: Session) -> Optional[dict]:
    """Internal implementation of get_snapshot."""
    snapshot = session.get(RecipeHistorySnapshot, snapshot_id)
    return snapshot.to_dict() if snapshot else None


def clear_recipe_history(recipe_id: Optional[int] = None, session: Session = None) -> int:
    """
    Bulk delete recipe history snapshots.

    This is the only way snapshots are removed.

    Args:
        recipe_id: Clear one recipe's history; None clears every recipe
        session: Optional session

    Returns:
        Number of snapshots deleted
    """
    if session is not None:
        return _clear_recipe_history_impl(recipe_id, session)

    with session_scope() as session:
        return _clear_recipe_history_impl(recipe_id, session)


def _clear_recipe_history_impl(recipe_id: Optional[int], session: Session) -> int:
    """Internal implementation of clear_recipe_history."""
    query = session.query(RecipeHistorySnapshot)
    if recipe_id is not None:
        query = query.filter(RecipeHistorySnapshot.recipe_id == recipe_id)
    deleted = query.delete(synchronize_session=False)

    log_operation(
        logger,
        operation="clear_recipe_history",
        outcome="success",
        recipe_id=recipe_id,
        deleted=deleted,
    )
    return deleted
