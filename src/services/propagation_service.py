"""
Propagation Service - recipe cost fan-out for material price changes.

Given a material whose effective price changed, this service finds every
recipe line item that references it, re-prices those items, recalculates the
owning recipes' aggregates, writes one recipe change log per changed item and
archives a history snapshot for every recipe that actually changed.

Key Features:
- Idempotent: items already at the new price are skipped, so repeating a
  propagation writes nothing
- Per-recipe isolation: each recipe runs in its own SAVEPOINT; a failure rolls
  back that recipe only, is logged, and the batch continues
- Concurrency: a per-material lock serializes propagate() calls for one
  material in this process. Propagations of different materials that share a
  recipe are serialized by the database write lock (BEGIN IMMEDIATE on
  SQLite). Recipe.version (SQLAlchemy version_id_col) detects any writer that
  slips past both, and the recipe is retried on conflict

Session Management Pattern:
- propagate() accepts session=None
- If session provided, use it directly (caller owns the commit)
- If session is None, create a new session via session_scope()
"""

import logging
import threading
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from src.models import Recipe, RecipeLineItem
from src.services import audit_log_service, recipe_history_service
from src.services.database import session_scope
from src.services.logging_utils import get_service_logger, log_operation
from src.utils.constants import (
    PROPAGATION_MAX_RETRIES,
    SNAPSHOT_REASON_PRICE_CHANGE,
    SYSTEM_ACTOR,
)
from src.utils.datetime_utils import utc_now
from src.utils.decimal_utils import quantize_price

logger = get_service_logger(__name__)


class KeyedLockRegistry:
    """
    Thread-safe registry of re-entrant locks, one per key.

    A key's lock exists only while some thread holds or waits on it; the
    entry is dropped when the last holder leaves hold().
    """

    def __init__(self):
        # key -> [lock, number of active hold() calls for that key]
        self._locks: Dict[Any, list] = {}
        self._guard = threading.Lock()

    def _acquire_entry(self, key: Any) -> threading.RLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._locks[key] = entry
            entry[1] += 1
            return entry[0]

    def _release_entry(self, key: Any) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, key: Any):
        """Hold the lock for key for the duration of the with-block."""
        lock = self._acquire_entry(key)
        try:
            with lock:
                yield
        finally:
            self._release_entry(key)

    def size(self) -> int:
        """Number of keys that currently have a lock."""
        with self._guard:
            return len(self._locks)


# Global per-material lock registry
_material_locks = KeyedLockRegistry()


def propagate(
    material_id: int,
    new_price: Decimal,
    actor: str = SYSTEM_ACTOR,
    session: Session = None,
) -> Dict[str, Any]:
    """
    Push a material's new price into every recipe that uses it.

    Args:
        material_id: Material whose price changed
        new_price: The material's new effective price
        actor: User or process responsible for the change
        session: Optional SQLAlchemy session for transaction sharing

    Returns:
        Dict with keys:
            - "material_id" (int)
            - "new_price" (Decimal)
            - "updated_recipe_ids" (list): recipes whose items changed
            - "failed_recipe_ids" (list): recipes skipped after an error
            - "changed_item_count" (int): line items re-priced

    Note:
        When a session is passed the per-material lock is released when this
        function returns, before the caller commits. The Recipe.version check
        still guards the aggregate write in that case.
    """
    new_price = quantize_price(new_price)

    with _material_locks.hold(material_id):
        if session is not None:
            return _propagate_impl(material_id, new_price, actor, session)
        with session_scope() as session:
            return _propagate_impl(material_id, new_price, actor, session)


def _propagate_impl(
    material_id: int,
    new_price: Decimal,
    actor: str,
    session: Session,
) -> Dict[str, Any]:
    """Implementation of propagate."""
    rows = (
        session.query(RecipeLineItem.id, RecipeLineItem.recipe_id)
        .filter(RecipeLineItem.material_id == material_id)
        .order_by(RecipeLineItem.recipe_id, RecipeLineItem.id)
        .all()
    )

    # Group line items by owning recipe, preserving recipe order
    items_by_recipe: Dict[int, List[int]] = {}
    for item_id, recipe_id in rows:
        items_by_recipe.setdefault(recipe_id, []).append(item_id)

    updated_recipe_ids: List[int] = []
    failed_recipe_ids: List[int] = []
    changed_item_count = 0

    for recipe_id, item_ids in items_by_recipe.items():
        try:
            changed = _propagate_recipe_with_retry(
                recipe_id, item_ids, material_id, new_price, actor, session
            )
        except SQLAlchemyError as e:
            failed_recipe_ids.append(recipe_id)
            log_operation(
                logger,
                operation="propagate",
                outcome="recipe_failed",
                level=logging.ERROR,
                material_id=material_id,
                recipe_id=recipe_id,
                error=str(e),
            )
            continue

        if changed:
            updated_recipe_ids.append(recipe_id)
            changed_item_count += changed
            log_operation(
                logger,
                operation="propagate",
                outcome="recipe_updated",
                material_id=material_id,
                recipe_id=recipe_id,
                changed_items=changed,
            )

    log_operation(
        logger,
        operation="propagate",
        outcome="success" if not failed_recipe_ids else "partial",
        material_id=material_id,
        new_price=str(new_price),
        recipes_considered=len(items_by_recipe),
        recipes_updated=len(updated_recipe_ids),
        recipes_failed=len(failed_recipe_ids),
    )

    return {
        "material_id": material_id,
        "new_price": new_price,
        "updated_recipe_ids": updated_recipe_ids,
        "failed_recipe_ids": failed_recipe_ids,
        "changed_item_count": changed_item_count,
    }


def _propagate_recipe_with_retry(
    recipe_id: int,
    item_ids: List[int],
    material_id: int,
    new_price: Decimal,
    actor: str,
    session: Session,
) -> int:
    """Run _propagate_recipe, retrying when the recipe version check fails."""
    attempt = 1
    while True:
        try:
            return _propagate_recipe(recipe_id, item_ids, material_id, new_price, actor, session)
        except StaleDataError as e:
            log_operation(
                logger,
                operation="propagate",
                outcome="version_conflict",
                level=logging.WARNING,
                material_id=material_id,
                recipe_id=recipe_id,
                attempt=attempt,
                error=str(e),
            )
            if attempt >= PROPAGATION_MAX_RETRIES:
                raise
            attempt += 1


def _propagate_recipe(
    recipe_id: int,
    item_ids: List[int],
    material_id: int,
    new_price: Decimal,
    actor: str,
    session: Session,
) -> int:
    """
    Re-price one recipe's items for a material inside a SAVEPOINT.

    Order of writes: line items and their change logs, then the recipe
    aggregates, then the history snapshot. Any exception rolls back the
    whole recipe.

    Returns:
        Number of line items changed (0 means the recipe was left untouched)
    """
    with session.begin_nested():
        # populate_existing so a retry sees the current version and prices
        recipe = session.get(Recipe, recipe_id, populate_existing=True)
        if recipe is None:
            return 0

        items = (
            session.query(RecipeLineItem)
            .filter(RecipeLineItem.id.in_(item_ids))
            .filter(RecipeLineItem.material_id == material_id)
            .order_by(RecipeLineItem.id)
            .populate_existing()
            .all()
        )

        changed = 0
        for item in items:
            if item.price is not None and Decimal(item.price) == new_price:
                continue

            old_price = item.price
            item.apply_price(new_price)
            session.flush()

            audit_log_service.write_recipe_change_log(
                session,
                recipe_id=recipe.id,
                recipe_item_id=item.id,
                material_id=material_id,
                old_value=old_price,
                new_value=new_price,
                changed_by=actor,
                recipe_code=recipe.code,
            )
            changed += 1

        if not changed:
            return 0

        # Aggregates come from every item, not only the ones just changed
        all_items = (
            session.query(RecipeLineItem)
            .filter(RecipeLineItem.recipe_id == recipe.id)
            .all()
        )
        recipe.recalculate_aggregates(all_items)
        # Always issue the UPDATE so the version is checked and bumped
        recipe.updated_at = utc_now()
        session.flush()

        recipe_history_service.archive_recipe(
            recipe.id,
            SNAPSHOT_REASON_PRICE_CHANGE,
            actor,
            session=session,
        )

    return changed
