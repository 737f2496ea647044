"""Unit Service - Queries and maintenance for units and conversion factors.

All functions accept an optional session parameter to support being called from
other service functions that need to maintain transactional atomicity.

Example Usage:
    >>> from src.services.unit_service import get_unit_by_code, add_conversion_factor
    >>>
    >>> kg = get_unit_by_code("kg")
    >>> tray = get_unit_by_code("tray")
    >>> piece = get_unit_by_code("piece")
    >>> add_conversion_factor(tray.id, piece.id, Decimal("24"))  # 1 tray = 24 pieces
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..models import ConversionFactor, Unit, UnitCategory
from .database import session_scope
from .exceptions import UnitNotFound, ValidationError
from .logging_utils import get_service_logger, log_operation
from .unit_converter import to_decimal

logger = get_service_logger(__name__)


def get_all_units(session: Optional[Session] = None) -> List[Unit]:
    """Get all units ordered by category and sort_order.

    Args:
        session: Optional database session. If None, creates a new session.

    Returns:
        List of Unit objects ordered by category then sort_order.
    """

    def _impl(sess: Session) -> List[Unit]:
        return sess.query(Unit).order_by(Unit.category, Unit.sort_order).all()

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def get_units_by_category(category: str, session: Optional[Session] = None) -> List[Unit]:
    """Get units filtered by a specific category.

    Args:
        category: The unit category ('weight', 'volume', 'count').
        session: Optional database session. If None, creates a new session.

    Returns:
        List of Unit objects in the specified category, ordered by sort_order.
    """

    def _impl(sess: Session) -> List[Unit]:
        return sess.query(Unit).filter(Unit.category == category).order_by(Unit.sort_order).all()

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def get_unit(unit_id: int, session: Optional[Session] = None) -> Unit:
    """Get a unit by id.

    Raises:
        UnitNotFound: If no such unit exists
    """

    def _impl(sess: Session) -> Unit:
        unit = sess.get(Unit, unit_id)
        if unit is None:
            raise UnitNotFound(unit_id)
        return unit

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def get_unit_by_code(code: str, session: Optional[Session] = None) -> Optional[Unit]:
    """Get a unit by its code.

    Args:
        code: The unit code to look up (e.g., 'kg', 'ml'). Case-insensitive.
        session: Optional database session. If None, creates a new session.

    Returns:
        Unit object if found, None otherwise.
    """

    def _impl(sess: Session) -> Optional[Unit]:
        return sess.query(Unit).filter(Unit.code == code.strip().lower()).first()

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def is_valid_unit(unit_id: int, session: Optional[Session] = None) -> bool:
    """Check if a unit id exists in the reference table."""

    def _impl(sess: Session) -> bool:
        return sess.get(Unit, unit_id) is not None

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def create_unit(
    code: str,
    display_name: str,
    symbol: str,
    category: str,
    sort_order: int = 0,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Add a unit to the reference table.

    Raises:
        ValidationError: If a field is missing, the category is unknown, or
            the code/symbol is already taken
    """
    errors = []
    if not code or not code.strip():
        errors.append("Unit code is required")
    if not display_name or not display_name.strip():
        errors.append("Unit name is required")
    if not symbol or not symbol.strip():
        errors.append("Unit symbol is required")
    if category not in {c.value for c in UnitCategory}:
        errors.append(f"Unit category must be one of: {', '.join(c.value for c in UnitCategory)}")
    if errors:
        raise ValidationError(errors)

    def _impl(sess: Session) -> Dict[str, Any]:
        normalized = code.strip().lower()
        clash = (
            sess.query(Unit)
            .filter((Unit.code == normalized) | (Unit.symbol == symbol.strip()))
            .first()
        )
        if clash is not None:
            raise ValidationError([f"Unit '{code}' already exists"])
        unit = Unit(
            code=normalized,
            display_name=display_name.strip(),
            symbol=symbol.strip(),
            category=category,
            sort_order=sort_order,
        )
        sess.add(unit)
        sess.flush()
        return unit.to_dict()

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def add_conversion_factor(
    from_unit_id: int,
    to_unit_id: int,
    factor,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Store (or replace) the factor for a directed unit pair.

    ``quantity_in_to_unit = quantity_in_from_unit * factor``.

    Args:
        from_unit_id: Source unit
        to_unit_id: Target unit
        factor: Positive multiplier
        session: Optional database session

    Returns:
        The stored factor as a dictionary

    Raises:
        ValidationError: If factor <= 0 or the units are identical
        UnitNotFound: If either unit does not exist
    """
    factor = to_decimal(factor, "Conversion factor")
    errors = []
    if factor <= 0:
        errors.append("Conversion factor must be greater than zero")
    if from_unit_id == to_unit_id:
        errors.append("Conversion factor needs two different units")
    if errors:
        raise ValidationError(errors)

    def _impl(sess: Session) -> Dict[str, Any]:
        for unit_id in (from_unit_id, to_unit_id):
            if sess.get(Unit, unit_id) is None:
                raise UnitNotFound(unit_id)

        row = (
            sess.query(ConversionFactor)
            .filter_by(from_unit_id=from_unit_id, to_unit_id=to_unit_id)
            .first()
        )
        if row is None:
            row = ConversionFactor(
                from_unit_id=from_unit_id, to_unit_id=to_unit_id, factor=factor
            )
            sess.add(row)
        else:
            row.factor = factor
        sess.flush()

        log_operation(
            logger,
            operation="add_conversion_factor",
            outcome="success",
            from_unit_id=from_unit_id,
            to_unit_id=to_unit_id,
            factor=str(factor),
        )
        return row.to_dict()

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def get_conversion_factors(session: Optional[Session] = None) -> List[Dict[str, Any]]:
    """List every stored conversion factor with its unit symbols."""

    def _impl(sess: Session) -> List[Dict[str, Any]]:
        rows = sess.query(ConversionFactor).order_by(ConversionFactor.id).all()
        result = []
        for row in rows:
            data = row.to_dict()
            data["from_symbol"] = row.from_unit.symbol
            data["to_symbol"] = row.to_unit.symbol
            result.append(data)
        return result

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)

