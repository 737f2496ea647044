"""
Constants for the Bakery Ledger application.

This module defines all system-wide constants including:
- Application metadata
- The default unit reference data and conversion factors
- Numeric precision for quantities and money
- Validation limits
"""

from decimal import Decimal
from typing import List, Tuple

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Bakery Ledger"
APP_VERSION = "0.1.0"
DATABASE_FILENAME = "bakery_ledger.db"

# ============================================================================
# Default Units
# ============================================================================

# Seed data: (code, display_name, symbol, category, sort_order)
DEFAULT_UNITS: List[Tuple[str, str, str, str, int]] = [
    ("g", "Gram", "g", "weight", 0),
    ("kg", "Kilogram", "kg", "weight", 1),
    ("ml", "Milliliter", "ml", "volume", 0),
    ("l", "Liter", "L", "volume", 1),
    ("piece", "Piece", "piece", "count", 0),
    ("tray", "Tray", "tray", "count", 1),
]

# Seed data: (from_code, to_code, factor) meaning 1 from = factor to
DEFAULT_CONVERSION_FACTORS: List[Tuple[str, str, Decimal]] = [
    ("g", "kg", Decimal("0.001")),
    ("kg", "g", Decimal("1000")),
    ("ml", "l", Decimal("0.001")),
    ("l", "ml", Decimal("1000")),
]

# ============================================================================
# Numeric precision
# ============================================================================

# Numeric(precision, scale) used for database columns
QUANTITY_PRECISION: Tuple[int, int] = (18, 6)
MONEY_PRECISION: Tuple[int, int] = (18, 4)
FACTOR_PRECISION: Tuple[int, int] = (24, 10)

# ============================================================================
# Validation Limits
# ============================================================================

MAX_NAME_LENGTH = 200
MAX_SKU_LENGTH = 50
