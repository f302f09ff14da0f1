"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across the pricing ledger, propagation
and history services.

Usage:
    from src.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    # Log successful operation
    log_operation(
        logger,
        operation="propagate",
        outcome="recipe_updated",
        material_id=7,
        recipe_id=45,
    )

    # Log a skipped recipe
    log_operation(
        logger,
        operation="propagate",
        outcome="recipe_failed",
        level=logging.ERROR,
        recipe_id=45,
        error="database is locked",
    )
"""

import logging
from typing import Any

LOGGER_PREFIX = "rm_cost_tracker.services"


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger instance with the 'rm_cost_tracker.services' prefix.

    Example:
        >>> logger = get_service_logger("src.services.propagation_service")
        >>> logger.name
        'rm_cost_tracker.services.propagation_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The message is always "<operation>: <outcome>"; context fields are passed
    through ``extra`` so handlers and tests can read them from the record.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "record_quote", "propagate")
        outcome: Outcome description (e.g., "success", "no_change", "recipe_failed")
        level: Log level (default: INFO). Use DEBUG for verbose/frequent logs.
        **context: Additional context fields. Common fields:
            - material_id, vendor_id, recipe_id, snapshot_id
            - old_price, new_price
            - error: Error message if outcome is a failure
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)
