"""Service layer exception classes for the Bakery Ledger.

This module defines all custom exceptions used by the service layer to provide
consistent error handling across the application.

Exception Hierarchy:
    ServiceError (base, http_status_code 500)
    ├── ValidationError (422)
    ├── ConversionPathNotFound (422)
    ├── ItemNotFound (404)
    ├── RecipeNotFound (404)
    ├── UnitNotFound (404)
    ├── SupplierNotFound (404)
    ├── PurchaseNotFound (404)
    ├── ProductionNotFound (404)
    ├── SkuAlreadyExists (409)
    ├── EntityInUse (409)
    ├── InsufficientStock (409)
    ├── ProductionShortageError (409)
    └── DatabaseError (500)

Shortages found while planning a production are NOT exceptions; they are
returned as data by ``production_service.plan_production``.
"""

from typing import Any, Dict, List, Optional


class ServiceError(Exception):
    """Base exception for all service layer errors.

    Args:
        message: Human-readable message (also ``str(error)``)
        correlation_id: Optional id tying the error to a request or log line
        **context: Extra structured fields (entity ids etc.)
    """

    http_status_code = 500

    def __init__(self, message: str = "", correlation_id: Optional[str] = None, **context: Any):
        self.message = message
        self.correlation_id = correlation_id
        self.context: Dict[str, Any] = context
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for API or log consumers."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "correlation_id": self.correlation_id,
            "http_status_code": self.http_status_code,
            "context": self.context,
        }


class ValidationError(ServiceError):
    """Raised when input validation fails, before any mutation.

    Args:
        errors: List of validation messages

    Example:
        >>> raise ValidationError(["Quantity must be positive"])
        ValidationError: Validation failed: Quantity must be positive
    """

    http_status_code = 422

    def __init__(self, errors: List[str]):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__(f"Validation failed: {'; '.join(self.errors)}", errors=self.errors)


class ConversionPathNotFound(ServiceError):
    """Raised by strict conversions when no direct or inverse factor exists."""

    http_status_code = 422

    def __init__(self, from_unit_id: int, to_unit_id: int):
        self.from_unit_id = from_unit_id
        self.to_unit_id = to_unit_id
        super().__init__(
            f"No conversion found from unit {from_unit_id} to unit {to_unit_id}",
            from_unit_id=from_unit_id,
            to_unit_id=to_unit_id,
        )


class ItemNotFound(ServiceError):
    """Raised when an item cannot be found by ID."""

    http_status_code = 404

    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Item with ID {item_id} not found", item_id=item_id)


class RecipeNotFound(ServiceError):
    """Raised when a recipe cannot be found by ID."""

    http_status_code = 404

    def __init__(self, recipe_id: int):
        self.recipe_id = recipe_id
        super().__init__(f"Recipe with ID {recipe_id} not found", recipe_id=recipe_id)


class UnitNotFound(ServiceError):
    """Raised when a unit reference does not exist."""

    http_status_code = 404

    def __init__(self, unit_ref):
        self.unit_ref = unit_ref
        super().__init__(f"Unit '{unit_ref}' not found", unit_ref=unit_ref)


class SupplierNotFound(ServiceError):
    """Raised when a supplier cannot be found by ID."""

    http_status_code = 404

    def __init__(self, supplier_id: int):
        self.supplier_id = supplier_id
        super().__init__(f"Supplier with ID {supplier_id} not found", supplier_id=supplier_id)


class PurchaseNotFound(ServiceError):
    """Raised when a purchase cannot be found by ID."""

    http_status_code = 404

    def __init__(self, purchase_id: int):
        self.purchase_id = purchase_id
        super().__init__(f"Purchase with ID {purchase_id} not found", purchase_id=purchase_id)


class ProductionNotFound(ServiceError):
    """Raised when a production cannot be found by ID."""

    http_status_code = 404

    def __init__(self, production_id: int):
        self.production_id = production_id
        super().__init__(
            f"Production with ID {production_id} not found", production_id=production_id
        )


class SkuAlreadyExists(ServiceError):
    """Raised when creating or renaming an item to an SKU already in use."""

    http_status_code = 409

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"An item with SKU '{sku}' already exists", sku=sku)


class EntityInUse(ServiceError):
    """Raised when a hard delete is blocked by dependent records.

    Args:
        entity_type: "item", "recipe", "supplier", ...
        entity_id: Id of the row that could not be deleted
        dependencies: Optional mapping of dependent record kind to count

    Example:
        >>> raise EntityInUse("item", 12, {"recipes": 2, "purchases": 5})
        EntityInUse: Cannot delete item 12: used in 2 recipes, 5 purchases
    """

    http_status_code = 409

    def __init__(
        self, entity_type: str, entity_id: int, dependencies: Optional[Dict[str, int]] = None
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.dependencies = dependencies or {}
        details = ", ".join(
            f"{count} {kind}" for kind, count in self.dependencies.items() if count > 0
        )
        reason = f"used in {details}" if details else "it is still referenced by other records"
        super().__init__(
            f"Cannot delete {entity_type} {entity_id}: {reason}",
            entity_type=entity_type,
            entity_id=entity_id,
        )


class InsufficientStock(ServiceError):
    """Raised when an atomic stock decrement would take stock below zero."""

    http_status_code = 409

    def __init__(self, item_name: str, required, available):
        self.item_name = item_name
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient stock for {item_name}: required {required}, available {available}",
            item_name=item_name,
        )


class ProductionShortageError(ServiceError):
    """Raised by commit_production when any ingredient is short.

    Args:
        shortages: Shortage dicts as produced by plan_production
    """

    http_status_code = 409

    def __init__(self, shortages: List[Dict[str, Any]]):
        self.shortages = shortages
        names = ", ".join(str(s.get("item_name")) for s in shortages)
        super().__init__(f"Insufficient stock: {names}", shortage_count=len(shortages))


class DatabaseError(ServiceError):
    """Raised when a database operation fails unexpectedly."""

    http_status_code = 500

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
