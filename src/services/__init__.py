"""Services package - Business logic layer for the Bakery Ledger.

This package contains all service modules that provide business logic
and database operations for the application.

Architecture:
- Services: Stateless functions organized by domain (item, stock, recipe, purchase, production)
- Transactions: Managed via session_scope(); every function also accepts a session
- Exceptions: Consistent error handling via the ServiceError hierarchy
- Validation: Input validation before any database mutation

Core Modules:
- unit_converter: Unit conversion engine (fail-open and strict)
- recipe_service: Recipe management and yield scaling
- stock_service: On-hand stock ledger with atomic decrement
- production_service: Availability check, costing and production recording
- purchase_service: Price updates and stock receipt from purchases

Supporting Modules:
- unit_service: Units and conversion factors
- item_service: Raw material and essence catalog
- supplier_service: Supplier management
- trash_service: Restore and purge of soft-deleted records
- dashboard_service: Overview statistics

Infrastructure:
- exceptions: Custom exception classes for service layer errors
- database: Session management and database utilities
- logging_utils: Structured operation logging
"""

from . import (
    database,
    unit_converter,
    unit_service,
    item_service,
    stock_service,
    supplier_service,
    recipe_service,
    purchase_service,
    production_service,
    trash_service,
    dashboard_service,
)

from .exceptions import (
    ServiceError,
    ValidationError,
    ConversionPathNotFound,
    ItemNotFound,
    RecipeNotFound,
    UnitNotFound,
    SupplierNotFound,
    PurchaseNotFound,
    ProductionNotFound,
    SkuAlreadyExists,
    EntityInUse,
    InsufficientStock,
    ProductionShortageError,
    DatabaseError,
)

from .unit_converter import ConversionResult, convert_quantity, try_convert
from .recipe_service import scale_recipe
from .production_service import plan_production, commit_production
from .purchase_service import apply_purchase, record_purchase

__all__ = [
    # Modules
    "database",
    "unit_converter",
    "unit_service",
    "item_service",
    "stock_service",
    "supplier_service",
    "recipe_service",
    "purchase_service",
    "production_service",
    "trash_service",
    "dashboard_service",
    # Core operations
    "ConversionResult",
    "convert_quantity",
    "try_convert",
    "scale_recipe",
    "plan_production",
    "commit_production",
    "apply_purchase",
    "record_purchase",
    # Exceptions
    "ServiceError",
    "ValidationError",
    "ConversionPathNotFound",
    "ItemNotFound",
    "RecipeNotFound",
    "UnitNotFound",
    "SupplierNotFound",
    "PurchaseNotFound",
    "ProductionNotFound",
    "SkuAlreadyExists",
    "EntityInUse",
    "InsufficientStock",
    "ProductionShortageError",
    "DatabaseError",
]
