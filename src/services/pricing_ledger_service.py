"""
Pricing Ledger Service - vendor quotes, price change logs and the current price cache.

This service owns the append-only vendor_quotes ledger. Recording a quote:
1. Validates input before any write
2. Compares against the prior quote from the same vendor and writes a
   PriceChangeLogEntry when the price moved
3. Appends the new VendorQuote
4. Refreshes Material.current_* from the new quote
5. Propagates the price into recipes when the material's effective price
   changed

Steps 1-5 share one transaction. Propagation isolates each recipe in a
SAVEPOINT, so one bad recipe does not undo the quote.

Session Management Pattern:
- All public functions accept session=None parameter
- If session provided, use it directly (caller owns the commit)
- If session is None, create a new session via session_scope()
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.models import Material, PriceChangeLogEntry, Vendor, VendorQuote
from src.services import audit_log_service, propagation_service
from src.services.database import session_scope
from src.services.exceptions import (
    DatabaseError,
    MaterialNotFound,
    PriceChangeLogNotFound,
    ValidationError,
    VendorNotFound,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.utils.constants import SYSTEM_ACTOR
from src.utils.datetime_utils import as_utc, utc_now
from src.utils.decimal_utils import quantize_price, to_decimal

logger = get_service_logger(__name__)


# ============================================================================
# Helpers
# ============================================================================


def _get_active_material(session: Session, material_id: int) -> Material:
    """Load a material or raise MaterialNotFound (soft-deleted counts as missing)."""
    material = session.get(Material, material_id)
    if material is None or material.is_deleted:
        raise MaterialNotFound(material_id)
    return material


def _latest_quote_query(session: Session, material_id: int, vendor_id: Optional[int] = None):
    """Quotes for a material newest first; ties on effective_date go to the later insert."""
    query = session.query(VendorQuote).filter(VendorQuote.material_id == material_id)
    if vendor_id is not None:
        query = query.filter(VendorQuote.vendor_id == vendor_id)
    return query.order_by(VendorQuote.effective_date.desc(), VendorQuote.id.desc())


def _prices_differ(old: Optional[Decimal], new: Decimal) -> bool:
    if old is None:
        return True
    return Decimal(old) != new


def _validate_quote(quantity: Any, price: Any, recorded_by: str) -> tuple:
    """
    Validate quote input.

    Returns:
        (quantity, price) as Decimals

    Raises:
        ValidationError: With every problem found
    """
    errors = []
    qty_value = None
    price_value = None

    try:
        qty_value = to_decimal(quantity)
        if qty_value <= 0:
            errors.append("Quantity must be greater than zero")
    except ValueError as e:
        errors.append(f"Quantity is invalid: {e}")

    try:
        price_value = quantize_price(price)
        if price_value < 0:
            errors.append("Price cannot be negative")
    except ValueError as e:
        errors.append(f"Price is invalid: {e}")

    if not recorded_by or not str(recorded_by).strip():
        errors.append("recorded_by is required")

    if errors:
        raise ValidationError(errors)
    return qty_value, price_value


# ============================================================================
# Recording quotes
# ============================================================================


def record_quote(
    material_id: int,
    vendor_id: int,
    vendor_name: Optional[str],
    quantity: Any,
    unit_name: Optional[str],
    price: Any,
    recorded_by: str,
    brand_name: Optional[str] = None,
    effective_date: Optional[datetime] = None,
    session: Session = None,
) -> Dict[str, Any]:
    """
    Record a vendor price quote for a material.

    Args:
        material_id: Material being quoted
        vendor_id: Vendor quoting the price
        vendor_name: Vendor display name (defaults to the vendor's name)
        quantity: Quoted quantity, must be > 0
        unit_name: Unit of the quoted quantity
        price: Quoted price, must be >= 0
        recorded_by: User recording the quote
        brand_name: Optional brand quoted
        effective_date: Quote timestamp (defaults to now, UTC)
        session: Optional SQLAlchemy session for transaction sharing

    Returns:
        Quote dict plus:
            - "price_changed" (bool): a PriceChangeLogEntry was written
            - "propagation" (dict or None): propagate() result, None when the
              material's current price did not change

    Raises:
        ValidationError: If quantity, price or recorded_by is invalid
        MaterialNotFound: If the material does not exist or is deleted
        VendorNotFound: If the vendor does not exist
        DatabaseError: If the write fails and this call owns the session
    """
    qty_value, price_value = _validate_quote(quantity, price, recorded_by)

    if session is not None:
        return _record_quote_impl(
            material_id, vendor_id, vendor_name, qty_value, unit_name,
            price_value, recorded_by, brand_name, effective_date, session,
        )
    try:
        with session_scope() as session:
            return _record_quote_impl(
                material_id, vendor_id, vendor_name, qty_value, unit_name,
                price_value, recorded_by, brand_name, effective_date, session,
            )
    except SQLAlchemyError as e:
        log_operation(
            logger,
            operation="record_quote",
            outcome="database_error",
            level=logging.ERROR,
            material_id=material_id,
            vendor_id=vendor_id,
            error=str(e),
        )
        raise DatabaseError(f"recording quote for material {material_id}", e)


def _record_quote_impl(
    material_id: int,
    vendor_id: int,
    vendor_name: Optional[str],
    quantity: Decimal,
    unit_name: Optional[str],
    price: Decimal,
    recorded_by: str,
    brand_name: Optional[str],
    effective_date: Optional[datetime],
    session: Session,
) -> Dict[str, Any]:
    """Implementation of record_quote."""
    material = _get_active_material(session, material_id)
    vendor = session.get(Vendor, vendor_id)
    if vendor is None:
        raise VendorNotFound(vendor_id)

    vendor_name = vendor_name or vendor.name
    effective_date = as_utc(effective_date) or utc_now()

    # Price change log against the prior quote from this vendor
    prior = _latest_quote_query(session, material_id, vendor_id).first()
    price_changed = prior is not None and _prices_differ(prior.price, price)
    if price_changed:
        audit_log_service.write_price_change_log(
            session,
            material_id=material_id,
            vendor_id=vendor_id,
            vendor_name=vendor_name,
            old_price=prior.price,
            new_price=price,
            quantity=quantity,
            unit_name=unit_name,
            changed_by=recorded_by,
        )

    quote = VendorQuote(
        material_id=material_id,
        vendor_id=vendor_id,
        vendor_name=vendor_name,
        quantity=quantity,
        unit_name=unit_name,
        price=price,
        effective_date=effective_date,
        recorded_by=recorded_by,
        brand_name=brand_name,
    )
    session.add(quote)
    session.flush()

    # Refresh the cache unconditionally; propagate only on an effective change
    previous_price = material.current_price
    material.current_price = price
    material.current_vendor_name = vendor_name
    material.current_price_date = effective_date
    session.flush()

    propagation = None
    if _prices_differ(previous_price, price):
        propagation = propagation_service.propagate(
            material_id, price, actor=recorded_by, session=session
        )

    log_operation(
        logger,
        operation="record_quote",
        outcome="success",
        material_id=material_id,
        vendor_id=vendor_id,
        quote_id=quote.id,
        new_price=str(price),
        price_changed=price_changed,
        propagated=propagation is not None,
    )

    result = quote.to_dict()
    result["price_changed"] = price_changed
    result["propagation"] = propagation
    return result


def sync_latest_price(
    material_id: int,
    actor: str = SYSTEM_ACTOR,
    session: Session = None,
) -> Dict[str, Any]:
    """
    Reconcile the material's current price with its newest quote.

    Looks at the latest quote across all vendors. If its price differs from
    Material.current_price the cache is updated and the price propagated.
    Calling this twice in a row changes nothing the second time.

    Args:
        material_id: Material to sync
        actor: User or process requesting the sync
        session: Optional session

    Returns:
        Dict with keys:
            - "changed" (bool)
            - "price" (Decimal or None): latest quoted price, None without quotes
            - "updated_recipe_ids" (list)
            - "failed_recipe_ids" (list)

    Raises:
        MaterialNotFound: If the material does not exist or is deleted
    """
    if session is not None:
        return _sync_latest_price_impl(material_id, actor, session)
    with session_scope() as session:
        return _sync_latest_price_impl(material_id, actor, session)


def _sync_latest_price_impl(material_id: int, actor: str, session: Session) -> Dict[str, Any]:
    """Implementation of sync_latest_price."""
    material = _get_active_material(session, material_id)
    latest = _latest_quote_query(session, material_id).first()

    result = {
        "changed": False,
        "price": None,
        "updated_recipe_ids": [],
        "failed_recipe_ids": [],
    }
    if latest is None:
        log_operation(
            logger, operation="sync_latest_price", outcome="no_quotes", material_id=material_id
        )
        return result

    latest_price = quantize_price(latest.price)
    result["price"] = latest_price

    if not _prices_differ(material.current_price, latest_price):
        log_operation(
            logger,
            operation="sync_latest_price",
            outcome="no_change",
            material_id=material_id,
            new_price=str(latest_price),
        )
        return result

    old_price = material.current_price
    material.current_price = latest_price
    material.current_vendor_name = latest.vendor_name
    material.current_price_date = latest.effective_date
    session.flush()

    propagation = propagation_service.propagate(
        material_id, latest_price, actor=actor, session=session
    )

    log_operation(
        logger,
        operation="sync_latest_price",
        outcome="success",
        material_id=material_id,
        old_price=str(old_price) if old_price is not None else None,
        new_price=str(latest_price),
    )

    result["changed"] = True
    result["updated_recipe_ids"] = propagation["updated_recipe_ids"]
    result["failed_recipe_ids"] = propagation["failed_recipe_ids"]
    return result


# ============================================================================
# Queries
# ============================================================================


def list_quotes(
    material_id: int,
    vendor_id: Optional[int] = None,
    session: Session = None,
) -> List[Dict[str, Any]]:
    """
    Get quotes for a material, newest first.

    Args:
        material_id: Material ID
        vendor_id: Optional filter to one vendor
        session: Optional session

    Returns:
        List of quote dicts

    Raises:
        MaterialNotFound: If the material does not exist or is deleted
    """
    if session is not None:
        return _list_quotes_impl(material_id, vendor_id, session)
    with session_scope() as session:
        return _list_quotes_impl(material_id, vendor_id, session)


def _list_quotes_impl(
    material_id: int, vendor_id: Optional[int], session: Session
) -> List[Dict[str, Any]]:
    _get_active_material(session, material_id)
    quotes = _latest_quote_query(session, material_id, vendor_id).all()
    return [q.to_dict() for q in quotes]


def get_latest_quote(
    material_id: int,
    vendor_id: Optional[int] = None,
    session: Session = None,
) -> Optional[Dict[str, Any]]:
    """
    Get the newest quote for a material, optionally from one vendor.

    Returns:
        Quote dict, or None if there are no quotes
    """
    if session is not None:
        return _get_latest_quote_impl(material_id, vendor_id, session)
    with session_scope() as session:
        return _get_latest_quote_impl(material_id, vendor_id, session)


def _get_latest_quote_impl(
    material_id: int, vendor_id: Optional[int], session: Session
) -> Optional[Dict[str, Any]]:
    quote = _latest_quote_query(session, material_id, vendor_id).first()
    return quote.to_dict() if quote else None


def get_price_change_logs(material_id: int, session: Session = None) -> List[Dict[str, Any]]:
    """
    Get vendor price change logs for a material, newest first.

    Raises:
        MaterialNotFound: If the material does not exist or is deleted
    """
    if session is not None:
        _get_active_material(session, material_id)
        return audit_log_service.get_price_change_logs(material_id, session=session)
    with session_scope() as session:
        _get_active_material(session, material_id)
        return audit_log_service.get_price_change_logs(material_id, session=session)


def get_price_history(material_id: int, session: Session = None) -> List[Dict[str, Any]]:
    """
    Get every quote for a material with its change relative to the previous one.

    Quotes are returned newest first. Each dict adds:
        - "previous_price": price of the previous quote from the same
          vendor, None for that vendor's first quote
        - "is_price_change": previous_price exists and differs
        - "changed_from": old price of the newest price change log for the
          vendor written at or before the quote, else None

    Raises:
        MaterialNotFound: If the material does not exist or is deleted
    """
    if session is not None:
        return _get_price_history_impl(material_id, session)
    with session_scope() as session:
        return _get_price_history_impl(material_id, session)


def _get_price_history_impl(material_id: int, session: Session) -> List[Dict[str, Any]]:
    _get_active_material(session, material_id)
    quotes = (
        session.query(VendorQuote)
        .filter(VendorQuote.material_id == material_id)
        .order_by(VendorQuote.effective_date.asc(), VendorQuote.id.asc())
        .all()
    )
    logs = (
        session.query(PriceChangeLogEntry)
        .filter(PriceChangeLogEntry.material_id == material_id)
        .order_by(PriceChangeLogEntry.changed_at.desc(), PriceChangeLogEntry.id.desc())
        .all()
    )

    history = []
    previous_by_vendor: Dict[int, Decimal] = {}
    for quote in quotes:
        entry = quote.to_dict()
        previous_price = previous_by_vendor.get(quote.vendor_id)
        entry["previous_price"] = previous_price
        entry["is_price_change"] = previous_price is not None and _prices_differ(
            previous_price, quote.price
        )
        entry["changed_from"] = _changed_from(logs, quote)
        history.append(entry)
        previous_by_vendor[quote.vendor_id] = quote.price

    history.reverse()
    return history


def _changed_from(logs: List[PriceChangeLogEntry], quote: VendorQuote) -> Optional[Decimal]:
    """Old price of the newest log for the quote's vendor written at or before the quote."""
    recorded_at = as_utc(quote.created_at)
    for log in logs:
        if log.vendor_id == quote.vendor_id and as_utc(log.changed_at) <= recorded_at:
            return log.old_price
    return None


# ============================================================================
# Maintenance
# ============================================================================


def delete_price_change_log(material_id: int, log_id: int, session: Session = None) -> None:
    """
    Delete one price change log entry.

    Raises:
        PriceChangeLogNotFound: If no log with log_id belongs to material_id
    """
    if session is not None:
        return _delete_price_change_log_impl(material_id, log_id, session)
    with session_scope() as session:
        return _delete_price_change_log_impl(material_id, log_id, session)


def _delete_price_change_log_impl(material_id: int, log_id: int, session: Session) -> None:
    entry = (
        session.query(PriceChangeLogEntry)
        .filter(PriceChangeLogEntry.id == log_id)
        .filter(PriceChangeLogEntry.material_id == material_id)
        .first()
    )
    if entry is None:
        raise PriceChangeLogNotFound(material_id, log_id)

    session.delete(entry)
    session.flush()
    log_operation(
        logger,
        operation="delete_price_change_log",
        outcome="success",
        material_id=material_id,
        log_id=log_id,
    )


def rebuild_current_price(material_id: int, session: Session = None) -> Dict[str, Any]:
    """
    Recompute Material.current_* by replaying the vendor_quotes ledger.

    Clears the cache when the material has no quotes. Does not propagate;
    use sync_latest_price() for that.

    Returns:
        Updated material dict
    """
    if session is not None:
        return _rebuild_current_price_impl(material_id, session)
    with session_scope() as session:
        return _rebuild_current_price_impl(material_id, session)


def _rebuild_current_price_impl(material_id: int, session: Session) -> Dict[str, Any]:
    material = _get_active_material(session, material_id)
    latest = _latest_quote_query(session, material_id).first()

    if latest is None:
        material.current_price = None
        material.current_vendor_name = None
        material.current_price_date = None
    else:
        material.current_price = latest.price
        material.current_vendor_name = latest.vendor_name
        material.current_price_date = latest.effective_date
    session.flush()

    log_operation(
        logger,
        operation="rebuild_current_price",
        outcome="success",
        material_id=material_id,
        new_price=str(material.current_price) if material.current_price is not None else None,
    )
    return material.to_dict()


def clear_all_prices(session: Session = None) -> int:
    """
    Delete every vendor quote and price change log.

    Material current price caches are cleared with them. Recipe prices and
    recipe history are left as they are.

    Returns:
        Number of quotes deleted
    """
    if session is not None:
        return _clear_all_prices_impl(session)
    with session_scope() as session:
        return _clear_all_prices_impl(session)


def _clear_all_prices_impl(session: Session) -> int:
    logs_deleted = session.query(PriceChangeLogEntry).delete(synchronize_session=False)
    quotes_deleted = session.query(VendorQuote).delete(synchronize_session=False)
    session.query(Material).update(
        {
            Material.current_price: None,
            Material.current_vendor_name: None,
            Material.current_price_date: None,
        },
        synchronize_session=False,
    )
    session.expire_all()

    log_operation(
        logger,
        operation="clear_all_prices",
        outcome="success",
        quotes_deleted=quotes_deleted,
        logs_deleted=logs_deleted,
    )
    return quotes_deleted
