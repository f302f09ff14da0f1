"""Services package - Business logic layer for the Raw Material Cost Tracker.

This package contains all service modules that provide business logic
and database operations for the application.

Architecture:
- Services: Stateless functions organized by domain (pricing, propagation, history)
- Transactions: Managed via session_scope() context manager
- Exceptions: Consistent error handling via ServiceError hierarchy
- Validation: Input validation before database operations

Service Modules:
- pricing_ledger_service: Vendor quotes, price change logs, current price cache
- propagation_service: Push material price changes into recipe costs
- recipe_history_service: Immutable recipe cost snapshots
- audit_log_service: Price and recipe change log writers and readers
- catalog_service: Vendors, materials and recipes to price

Infrastructure:
- exceptions: Custom exception classes for service layer errors
- database: Session management and database utilities
- logging_utils: Structured service logging
"""

# Service modules
from . import (
    database,
    audit_log_service,
    recipe_history_service,
    propagation_service,
    pricing_ledger_service,
    catalog_service,
)

# Exceptions
from .exceptions import (
    ServiceError,
    ValidationError,
    MaterialNotFound,
    VendorNotFound,
    RecipeNotFound,
    PriceChangeLogNotFound,
    DatabaseError,
    SnapshotImmutableError,
)

__all__ = [
    # Modules
    "database",
    "audit_log_service",
    "recipe_history_service",
    "propagation_service",
    "pricing_ledger_service",
    "catalog_service",
    # Exceptions
    "ServiceError",
    "ValidationError",
    "MaterialNotFound",
    "VendorNotFound",
    "RecipeNotFound",
    "PriceChangeLogNotFound",
    "DatabaseError",
    "SnapshotImmutableError",
]
