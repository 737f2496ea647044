"""Stock Service - The on-hand ledger for items.

There is one Stock row per item. Its quantity is always expressed in the
row's own unit; callers pass quantities in any unit and the service
converts before touching the row.

Key operations:
- increment_stock: add a quantity (creating the row in the item's base unit
  on first receipt)
- decrement_stock_if_available: conditional, atomic decrement that refuses
  to go below zero
- decrement_stock: unconditional decrement (corrections only)
- get_low_stock_items: items at or below their reorder threshold

Conversions on these paths are strict by default (see
``Config.strict_stock_conversions``): adding grams to a stock kept in
pieces without a factor raises ``ConversionPathNotFound`` rather than
booking a wrong number.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, update
from sqlalchemy.orm import Session

from src.models import Item, Stock
from src.services.database import session_scope
from src.services.exceptions import InsufficientStock, ItemNotFound, ValidationError
from src.services.logging_utils import get_service_logger, log_operation
from src.services.unit_converter import convert_quantity, strict_stock_conversions, to_decimal
from src.utils.constants import QUANTITY_PRECISION

logger = get_service_logger(__name__)

# Smallest stored quantity step, and half of it as comparison slack for
# REAL-backed columns
_QUANTITY_SCALE = QUANTITY_PRECISION[1]
_QUANTITY_STEP = Decimal(1).scaleb(-_QUANTITY_SCALE)
_QUANTITY_SLACK = _QUANTITY_STEP / 2


def _stock_to_dict(stock: Stock) -> Dict[str, Any]:
    return {
        "item_id": stock.item_id,
        "quantity": Decimal(stock.quantity),
        "unit_id": stock.unit_id,
        "unit_symbol": stock.unit.symbol if stock.unit else None,
    }


def _resolve_strict(strict: Optional[bool]) -> bool:
    return strict_stock_conversions() if strict is None else strict


def _load_item(sess: Session, item_id: int) -> Item:
    # Deleted items may still be referenced by in-flight ledger entries
    item = sess.query(Item).execution_options(include_deleted=True).filter(Item.id == item_id).first()
    if item is None:
        raise ItemNotFound(item_id)
    return item


def _positive_quantity(quantity) -> Decimal:
    quantity = to_decimal(quantity)
    if quantity <= 0:
        raise ValidationError(["Quantity must be greater than zero"])
    return quantity


def get_stock(item_id: int, session: Optional[Session] = None) -> Optional[Dict[str, Any]]:
    """Return the stock row of an item, or None if it was never stocked."""

    def _impl(sess: Session) -> Optional[Dict[str, Any]]:
        stock = sess.query(Stock).filter(Stock.item_id == item_id).first()
        return _stock_to_dict(stock) if stock is not None else None

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def increment_stock(
    item_id: int,
    quantity,
    unit_id: int,
    session: Optional[Session] = None,
    strict: Optional[bool] = None,
) -> Dict[str, Any]:
    """
    Add a quantity to an item's stock.

    When the item has no stock row yet, one is created in the item's base
    unit and the quantity is converted into it.

    Args:
        item_id: Item receiving stock
        quantity: Amount, > 0, expressed in unit_id
        unit_id: Unit of quantity
        session: Optional database session
        strict: Override ``Config.strict_stock_conversions``

    Returns:
        Updated stock as dictionary

    Raises:
        ItemNotFound: If the item doesn't exist
        ValidationError: If quantity is not positive
        ConversionPathNotFound: If strict and the unit can't be converted
    """
    quantity = _positive_quantity(quantity)
    strict = _resolve_strict(strict)

    def _impl(sess: Session) -> Dict[str, Any]:
        item = _load_item(sess, item_id)
        stock = sess.query(Stock).filter(Stock.item_id == item_id).first()
        target_unit_id = stock.unit_id if stock is not None else item.base_unit_id
        converted = convert_quantity(quantity, unit_id, target_unit_id, session=sess, strict=strict)

        if stock is None:
            stock = Stock(item_id=item_id, quantity=converted, unit_id=target_unit_id)
            sess.add(stock)
        else:
            stock.quantity = Decimal(stock.quantity) + converted
        sess.flush()

        log_operation(
            logger,
            operation="increment_stock",
            outcome="success",
            item_id=item_id,
            quantity=str(converted),
            unit_id=target_unit_id,
        )
        return _stock_to_dict(stock)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def decrement_stock(
    item_id: int,
    quantity,
    unit_id: int,
    session: Optional[Session] = None,
    strict: Optional[bool] = None,
) -> Dict[str, Any]:
    """
    Subtract a quantity without a sufficiency check.

    Meant for manual corrections; production uses
    :func:`decrement_stock_if_available`.

    Raises:
        ItemNotFound: If the item has no stock row
        ValidationError: If quantity is not positive
        ConversionPathNotFound: If strict and the unit can't be converted
    """
    quantity = _positive_quantity(quantity)
    strict = _resolve_strict(strict)

    def _impl(sess: Session) -> Dict[str, Any]:
        stock = sess.query(Stock).filter(Stock.item_id == item_id).first()
        if stock is None:
            raise ItemNotFound(item_id)
        converted = convert_quantity(quantity, unit_id, stock.unit_id, session=sess, strict=strict)
        stock.quantity = Decimal(stock.quantity) - converted
        sess.flush()

        log_operation(
            logger,
            operation="decrement_stock",
            outcome="success",
            item_id=item_id,
            quantity=str(converted),
        )
        return _stock_to_dict(stock)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def decrement_stock_if_available(
    item_id: int,
    quantity,
    unit_id: int,
    session: Optional[Session] = None,
    strict: Optional[bool] = None,
) -> Dict[str, Any]:
    """
    Atomically subtract a quantity only if enough stock is on hand.

    The check and the write are one conditional UPDATE
    (``... WHERE quantity >= :q``), so two concurrent consumers can never
    both pass the check against the same stock.

    Both sides are compared at the stored scale (six places) and the new
    quantity is rounded to it, so a REAL-backed column that drifted after
    earlier decrements (0.3 - 0.1 stored as 0.19999999999999998) still
    accepts a request for exactly what planning reported as available.
    A remainder below half a step is stored as zero.

    Args:
        item_id: Item to consume
        quantity: Amount, > 0, expressed in unit_id
        unit_id: Unit of quantity
        session: Optional database session
        strict: Override ``Config.strict_stock_conversions``

    Returns:
        Updated stock as dictionary

    Raises:
        InsufficientStock: If the item has no stock row or not enough of it
        ValidationError: If quantity is not positive
        ConversionPathNotFound: If strict and the unit can't be converted
    """
    quantity = _positive_quantity(quantity)
    strict = _resolve_strict(strict)

    def _impl(sess: Session) -> Dict[str, Any]:
        item = _load_item(sess, item_id)
        stock = sess.query(Stock).filter(Stock.item_id == item_id).first()
        if stock is None:
            raise InsufficientStock(item.name, quantity, Decimal("0"))

        converted = convert_quantity(
            quantity, unit_id, stock.unit_id, session=sess, strict=strict
        ).quantize(_QUANTITY_STEP)
        remaining = Stock.quantity - converted
        result = sess.execute(
            update(Stock)
            .where(Stock.item_id == item_id, Stock.quantity + _QUANTITY_SLACK >= converted)
            .values(
                quantity=case(
                    (remaining < _QUANTITY_SLACK, Decimal("0")),
                    else_=func.round(remaining, _QUANTITY_SCALE),
                )
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            sess.refresh(stock)
            log_operation(
                logger,
                operation="decrement_stock_if_available",
                outcome="insufficient",
                item_id=item_id,
                required=str(converted),
                available=str(stock.quantity),
            )
            raise InsufficientStock(item.name, converted, Decimal(stock.quantity))

        sess.refresh(stock)
        log_operation(
            logger,
            operation="decrement_stock_if_available",
            outcome="success",
            item_id=item_id,
            quantity=str(converted),
        )
        return _stock_to_dict(stock)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def get_low_stock_items(session: Optional[Session] = None) -> List[Dict[str, Any]]:
    """
    List active items whose stock is at or below their reorder threshold.

    Items that were never stocked have no stock row and are not listed.

    Returns:
        List of dicts with item_id, name, sku, quantity, unit_symbol and
        reorder_threshold, ordered by name
    """

    def _impl(sess: Session) -> List[Dict[str, Any]]:
        rows = (
            sess.query(Item, Stock)
            .join(Stock, Stock.item_id == Item.id)
            .filter(Stock.quantity <= Item.reorder_threshold)
            .order_by(Item.name)
            .all()
        )
        return [
            {
                "item_id": item.id,
                "name": item.name,
                "sku": item.sku,
                "quantity": Decimal(stock.quantity),
                "unit_symbol": stock.unit.symbol if stock.unit else None,
                "reorder_threshold": Decimal(item.reorder_threshold),
            }
            for item, stock in rows
        ]

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)
