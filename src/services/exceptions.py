"""Service layer exception classes for the Raw Material Cost Tracker.

This module defines all custom exceptions used by the service layer to provide
consistent error handling across the application.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    ├── MaterialNotFound
    ├── VendorNotFound
    ├── RecipeNotFound
    ├── PriceChangeLogNotFound
    └── DatabaseError

    SnapshotImmutableError is raised from the model layer at flush time and
    re-exported here.
"""

from src.models.recipe_history import SnapshotImmutableError  # noqa: F401


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions should inherit from this class.
    """

    pass


class ValidationError(ServiceError):
    """Raised when input validation fails before any write.

    Args:
        errors: List of human-readable validation messages

    Example:
        >>> raise ValidationError(["quantity must be positive"])
        ValidationError: Validation failed: quantity must be positive
    """

    def __init__(self, errors: list):
        self.errors = errors
        error_msg = "; ".join(errors)
        super().__init__(f"Validation failed: {error_msg}")


class MaterialNotFound(ServiceError):
    """Raised when a material cannot be found by ID (or is soft-deleted).

    Example:
        >>> raise MaterialNotFound(42)
        MaterialNotFound: Material with ID 42 not found
    """

    def __init__(self, material_id: int):
        self.material_id = material_id
        super().__init__(f"Material with ID {material_id} not found")


class VendorNotFound(ServiceError):
    """Raised when a vendor cannot be found by ID."""

    def __init__(self, vendor_id: int):
        self.vendor_id = vendor_id
        super().__init__(f"Vendor with ID {vendor_id} not found")


class RecipeNotFound(ServiceError):
    """Raised when a recipe cannot be found by ID."""

    def __init__(self, recipe_id: int):
        self.recipe_id = recipe_id
        super().__init__(f"Recipe with ID {recipe_id} not found")


class PriceChangeLogNotFound(ServiceError):
    """Raised when a price change log does not exist for the given material.

    Args:
        material_id: Material the log was expected to belong to
        log_id: The log ID that was not found
    """

    def __init__(self, material_id: int, log_id: int):
        self.material_id = material_id
        self.log_id = log_id
        super().__init__(f"Price change log {log_id} not found for material {material_id}")


class DatabaseError(ServiceError):
    """Raised when a database operation fails."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
