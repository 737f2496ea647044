"""
Unit conversion engine for the Bakery Ledger.

This module provides:
- Lookup of stored conversion factors, direct or inverse
- Best-effort conversion that falls back to the input quantity
- A tagged result form (``try_convert``) so callers can tell a real
  conversion from a fallback
- A strict form that raises ``ConversionPathNotFound`` instead

Conversion Strategy:
- Same unit: the quantity is returned untouched (no float drift)
- Stored (from, to) factor: ``quantity * factor``
- Stored (to, from) factor: ``quantity / factor``
- Otherwise: no path. There is no multi-hop chaining (g -> kg -> L is
  never attempted).

Display and estimation flows use the fail-open form so incomplete
conversion tables never crash them. Stock and costing flows pass
``strict=True`` (see ``Config.strict_stock_conversions``).
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy.orm import Session

from src.models import ConversionFactor
from src.services.database import session_scope
from src.services.exceptions import ConversionPathNotFound, ValidationError
from src.services.logging_utils import get_service_logger
from src.utils.config import get_config

logger = get_service_logger(__name__)


@dataclass(frozen=True)
class ConversionResult:
    """
    Outcome of a conversion attempt.

    Attributes:
        value: Converted quantity, or the original one when converted is False
        converted: True when the value is expressed in to_unit_id
        from_unit_id: Source unit
        to_unit_id: Requested target unit
    """

    value: Decimal
    converted: bool
    from_unit_id: int
    to_unit_id: int


def to_decimal(value: Any, field_name: str = "Quantity") -> Decimal:
    """
    Coerce a number-like value to Decimal.

    Floats go through ``str`` so 0.1 becomes Decimal("0.1"), not its binary
    expansion.

    Raises:
        ValidationError: If the value is not numeric
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise ValidationError([f"{field_name} must be a number"])
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError([f"{field_name} must be a number"])
    if not result.is_finite():
        raise ValidationError([f"{field_name} must be a finite number"])
    return result


def strict_stock_conversions() -> bool:
    """Whether stock and costing paths should convert strictly."""
    return get_config().strict_stock_conversions


def find_conversion_factor(
    from_unit_id: int, to_unit_id: int, session: Optional[Session] = None
) -> Optional[Decimal]:
    """
    Get the effective multiplier from one unit to another.

    Args:
        from_unit_id: Source unit
        to_unit_id: Target unit
        session: Optional database session

    Returns:
        Decimal multiplier, 1 for identical units, or None if no direct or
        inverse factor is stored
    """
    if from_unit_id == to_unit_id:
        return Decimal("1")

    def _impl(sess: Session) -> Optional[Decimal]:
        direct = (
            sess.query(ConversionFactor)
            .filter_by(from_unit_id=from_unit_id, to_unit_id=to_unit_id)
            .first()
        )
        if direct is not None:
            return Decimal(direct.factor)

        reverse = (
            sess.query(ConversionFactor)
            .filter_by(from_unit_id=to_unit_id, to_unit_id=from_unit_id)
            .first()
        )
        if reverse is not None:
            return Decimal("1") / Decimal(reverse.factor)

        return None

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def try_convert(
    quantity: Any,
    from_unit_id: int,
    to_unit_id: int,
    session: Optional[Session] = None,
) -> ConversionResult:
    """
    Convert a quantity and report whether a path was found.

    Args:
        quantity: Amount in from_unit_id
        from_unit_id: Source unit
        to_unit_id: Target unit
        session: Optional database session

    Returns:
        ConversionResult; on a missing path ``converted`` is False and
        ``value`` is the original quantity
    """
    quantity = to_decimal(quantity)

    if from_unit_id == to_unit_id:
        return ConversionResult(quantity, True, from_unit_id, to_unit_id)

    def _impl(sess: Session) -> ConversionResult:
        direct = (
            sess.query(ConversionFactor)
            .filter_by(from_unit_id=from_unit_id, to_unit_id=to_unit_id)
            .first()
        )
        if direct is not None:
            return ConversionResult(direct.convert(quantity), True, from_unit_id, to_unit_id)

        reverse = (
            sess.query(ConversionFactor)
            .filter_by(from_unit_id=to_unit_id, to_unit_id=from_unit_id)
            .first()
        )
        if reverse is not None:
            return ConversionResult(
                reverse.reverse_convert(quantity), True, from_unit_id, to_unit_id
            )

        return ConversionResult(quantity, False, from_unit_id, to_unit_id)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def convert_quantity(
    quantity: Any,
    from_unit_id: int,
    to_unit_id: int,
    session: Optional[Session] = None,
    strict: bool = False,
) -> Decimal:
    """
    Convert a quantity between units.

    Never raises for a missing path unless ``strict`` is set: it logs a
    warning and returns the original, unconverted quantity.

    Args:
        quantity: Amount in from_unit_id
        from_unit_id: Source unit
        to_unit_id: Target unit
        session: Optional database session
        strict: Raise instead of falling back

    Returns:
        Quantity expressed in to_unit_id (or the input on fallback)

    Raises:
        ConversionPathNotFound: If strict and no factor exists

    Example:
        >>> convert_quantity(Decimal("2000"), grams.id, kilograms.id)
        Decimal('2.0000000000')
    """
    result = try_convert(quantity, from_unit_id, to_unit_id, session=session)
    if result.converted:
        return result.value

    if strict:
        raise ConversionPathNotFound(from_unit_id, to_unit_id)

    logger.warning(f"No conversion found from unit {from_unit_id} to unit {to_unit_id}")
    return result.value
