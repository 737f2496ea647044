"""Purchase Service - Recording purchases, item prices and stock receipt.

This module provides:
- ``apply_purchase``: per-line price update plus stock increment
- ``record_purchase``: validate, persist and apply a whole multi-line
  purchase in one transaction
- ``update_purchase``: edit date, supplier, notes and lines (stock and
  prices are not re-applied)
- Lookups (``get_purchase``, ``list_purchases``) and soft delete

Price update rules (per line, independently):
- ``last_purchase_price`` becomes the line's unit price
- ``avg_price`` becomes the unit price when it was 0, else
  ``(avg_price + unit_price) / 2``. This is a plain running mean of the two
  numbers, not weighted by quantity.

Example Usage:
    >>> from src.services.purchase_service import record_purchase
    >>>
    >>> purchase = record_purchase(
    ...     purchase_date="2025-03-01",
    ...     supplier_id=metro.id,
    ...     items=[{"item_id": sugar.id, "unit_id": kg.id,
    ...             "quantity": Decimal("5"), "unit_price": Decimal("40")}],
    ... )
    >>> purchase["total_amount"]
    Decimal('200')
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from src.models import Item, Purchase, PurchaseItem, Supplier, Unit
from src.services import stock_service
from src.services.database import session_scope
from src.services.exceptions import (
    ItemNotFound,
    PurchaseNotFound,
    SupplierNotFound,
    ValidationError,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.services.unit_converter import to_decimal
from src.utils.datetime_utils import parse_date

logger = get_service_logger(__name__)


def _purchase_to_dict(purchase: Purchase) -> Dict[str, Any]:
    result = purchase.to_dict()
    result["supplier_name"] = purchase.supplier.name if purchase.supplier else None
    result["items"] = [
        {
            "item_id": line.item_id,
            "item_name": line.item.name if line.item else None,
            "quantity": Decimal(line.quantity),
            "unit_id": line.unit_id,
            "unit_symbol": line.unit.symbol if line.unit else None,
            "unit_price": Decimal(line.unit_price),
            "line_total": Decimal(line.line_total),
        }
        for line in purchase.items
    ]
    return result


def calculate_new_average(avg_price: Decimal, unit_price: Decimal) -> Decimal:
    """Return the next running average price.

    Example:
        >>> calculate_new_average(Decimal("0"), Decimal("40"))
        Decimal('40')
        >>> calculate_new_average(Decimal("40"), Decimal("60"))
        Decimal('50')
    """
    if avg_price == 0:
        return unit_price
    return (avg_price + unit_price) / 2


def apply_purchase(
    item_id: int,
    quantity,
    unit_id: int,
    unit_price,
    session: Optional[Session] = None,
    strict: Optional[bool] = None,
) -> Dict[str, Any]:
    """
    Apply one purchased line to an item's prices and stock.

    Args:
        item_id: Item bought
        quantity: Quantity bought, > 0, in unit_id
        unit_id: Unit the quantity was entered in
        unit_price: Price per unit_id, > 0
        session: Optional database session
        strict: Override ``Config.strict_stock_conversions`` for the stock step

    Returns:
        Dict with item_id, last_purchase_price, avg_price and stock

    Raises:
        ItemNotFound: If the item doesn't exist
        ValidationError: If quantity or unit_price is not positive
        ConversionPathNotFound: If strict and the unit can't reach the stock unit
    """
    quantity = to_decimal(quantity)
    unit_price = to_decimal(unit_price, "Unit price")
    errors = []
    if quantity <= 0:
        errors.append("Quantity must be greater than zero")
    if unit_price <= 0:
        errors.append("Unit price must be greater than zero")
    if errors:
        raise ValidationError(errors)

    def _impl(sess: Session) -> Dict[str, Any]:
        item = (
            sess.query(Item)
            .execution_options(include_deleted=True)
            .filter(Item.id == item_id)
            .first()
        )
        if item is None:
            raise ItemNotFound(item_id)

        previous_avg = Decimal(item.avg_price or 0)
        item.avg_price = calculate_new_average(previous_avg, unit_price)
        item.last_purchase_price = unit_price

        stock = stock_service.increment_stock(
            item_id, quantity, unit_id, session=sess, strict=strict
        )

        log_operation(
            logger,
            operation="apply_purchase",
            outcome="success",
            item_id=item_id,
            unit_price=str(unit_price),
            avg_price=str(item.avg_price),
        )
        return {
            "item_id": item_id,
            "last_purchase_price": Decimal(item.last_purchase_price),
            "avg_price": Decimal(item.avg_price),
            "stock": stock,
        }

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def _validate_purchase(
    purchase_date: Any, supplier_id: Any, items: Optional[Sequence[Dict[str, Any]]]
) -> tuple:
    """Validate a purchase payload and return (date, cleaned lines)."""
    errors = []
    parsed_date = None

    if purchase_date is None or purchase_date == "":
        errors.append("Date is required")
    else:
        try:
            parsed_date = parse_date(purchase_date)
        except ValueError:
            errors.append("Invalid date format")
        else:
            if parsed_date > date.today():
                errors.append("Purchase date cannot be in the future")

    if not supplier_id:
        errors.append("Supplier is required")

    if not items:
        errors.append("At least one item is required")
        items = []

    cleaned = []
    for index, line in enumerate(items, start=1):
        if not line.get("item_id"):
            errors.append(f"Item {index}: Item is required")
        if not line.get("unit_id"):
            errors.append(f"Item {index}: Unit is required")
        try:
            quantity = to_decimal(line.get("quantity"))
        except ValidationError:
            quantity = Decimal("0")
        if quantity <= 0:
            errors.append(f"Item {index}: Valid quantity is required")
        try:
            unit_price = to_decimal(line.get("unit_price"), "Unit price")
        except ValidationError:
            unit_price = Decimal("0")
        if unit_price <= 0:
            errors.append(f"Item {index}: Valid unit price is required")
        cleaned.append(
            {
                "item_id": line.get("item_id"),
                "unit_id": line.get("unit_id"),
                "quantity": quantity,
                "unit_price": unit_price,
            }
        )

    if errors:
        raise ValidationError(errors)
    return parsed_date, cleaned


def _check_references(sess: Session, supplier_id: int, lines: List[Dict[str, Any]]) -> None:
    if sess.query(Supplier).filter(Supplier.id == supplier_id).first() is None:
        raise SupplierNotFound(supplier_id)
    for line in lines:
        if sess.get(Unit, line["unit_id"]) is None:
            raise ValidationError([f"Unit {line['unit_id']} does not exist"])
        if sess.query(Item).filter(Item.id == line["item_id"]).first() is None:
            raise ItemNotFound(line["item_id"])


def _build_lines(lines: List[Dict[str, Any]]) -> tuple:
    """Return (PurchaseItem rows, total amount) for validated lines."""
    purchase_items = []
    total_amount = Decimal("0")
    for line in lines:
        line_total = line["quantity"] * line["unit_price"]
        total_amount += line_total
        purchase_items.append(
            PurchaseItem(
                item_id=line["item_id"],
                quantity=line["quantity"],
                unit_id=line["unit_id"],
                unit_price=line["unit_price"],
                line_total=line_total,
            )
        )
    return purchase_items, total_amount


def record_purchase(
    purchase_date,
    supplier_id: int,
    items: Sequence[Dict[str, Any]],
    notes: Optional[str] = None,
    session: Optional[Session] = None,
    strict: Optional[bool] = None,
) -> Dict[str, Any]:
    """
    Record a purchase and apply every line to prices and stock.

    The whole payload is validated before anything is written; the purchase
    record and all line applications share one transaction.

    Args:
        purchase_date: ``date`` or ``YYYY-MM-DD`` string, not in the future
        supplier_id: Supplier the goods came from
        items: Dicts with item_id, unit_id, quantity (> 0) and unit_price (> 0)
        notes: Optional notes
        session: Optional database session
        strict: Override ``Config.strict_stock_conversions``

    Returns:
        Purchase dict with its lines

    Raises:
        ValidationError: If the payload is invalid
        SupplierNotFound: If the supplier doesn't exist
        ItemNotFound: If a line references an unknown item
    """
    parsed_date, lines = _validate_purchase(purchase_date, supplier_id, items)

    def _impl(sess: Session) -> Dict[str, Any]:
        _check_references(sess, supplier_id, lines)
        purchase_items, total_amount = _build_lines(lines)

        purchase = Purchase(
            purchase_date=parsed_date,
            supplier_id=supplier_id,
            total_amount=total_amount,
            notes=notes,
            items=purchase_items,
        )
        sess.add(purchase)
        sess.flush()

        for line in lines:
            apply_purchase(
                line["item_id"],
                line["quantity"],
                line["unit_id"],
                line["unit_price"],
                session=sess,
                strict=strict,
            )

        log_operation(
            logger,
            operation="record_purchase",
            outcome="success",
            purchase_id=purchase.id,
            supplier_id=supplier_id,
            line_count=len(lines),
            total_amount=str(total_amount),
        )
        return _purchase_to_dict(purchase)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def update_purchase(
    purchase_id: int,
    purchase_date,
    supplier_id: int,
    items: Sequence[Dict[str, Any]],
    notes: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Edit a purchase: date, supplier, notes and its whole line list.

    The payload is validated exactly like :func:`record_purchase`, the lines
    are replaced and ``total_amount`` recomputed. Stock and item prices are
    NOT touched: the receipt booked when the purchase was recorded stands,
    and corrections to stock go through :mod:`stock_service`.

    Raises:
        ValidationError: If the payload is invalid
        PurchaseNotFound: If the purchase doesn't exist or is soft deleted
        SupplierNotFound: If the supplier doesn't exist
        ItemNotFound: If a line references an unknown item
    """
    parsed_date, lines = _validate_purchase(purchase_date, supplier_id, items)

    def _impl(sess: Session) -> Dict[str, Any]:
        purchase = sess.query(Purchase).filter(Purchase.id == purchase_id).first()
        if purchase is None:
            raise PurchaseNotFound(purchase_id)
        _check_references(sess, supplier_id, lines)
        purchase_items, total_amount = _build_lines(lines)

        purchase.purchase_date = parsed_date
        purchase.supplier_id = supplier_id
        purchase.notes = notes
        purchase.total_amount = total_amount
        purchase.items.clear()
        sess.flush()
        purchase.items.extend(purchase_items)
        sess.flush()
        sess.refresh(purchase)

        log_operation(
            logger,
            operation="update_purchase",
            outcome="success",
            purchase_id=purchase_id,
            line_count=len(lines),
            total_amount=str(total_amount),
        )
        return _purchase_to_dict(purchase)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def get_purchase(purchase_id: int, session: Optional[Session] = None) -> Dict[str, Any]:
    """Get an active purchase with its lines.

    Raises:
        PurchaseNotFound: If the purchase doesn't exist or is soft deleted
    """

    def _impl(sess: Session) -> Dict[str, Any]:
        purchase = sess.query(Purchase).filter(Purchase.id == purchase_id).first()
        if purchase is None:
            raise PurchaseNotFound(purchase_id)
        return _purchase_to_dict(purchase)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def list_purchases(
    start_date=None,
    end_date=None,
    supplier_id: Optional[int] = None,
    session: Optional[Session] = None,
) -> List[Dict[str, Any]]:
    """
    List active purchases, newest first.

    Args:
        start_date: Optional inclusive lower bound (date or YYYY-MM-DD)
        end_date: Optional inclusive upper bound (date or YYYY-MM-DD)
        supplier_id: Optional supplier filter
        session: Optional database session

    Raises:
        ValidationError: If a date bound cannot be parsed
    """
    try:
        start = parse_date(start_date) if start_date else None
        end = parse_date(end_date) if end_date else None
    except ValueError:
        raise ValidationError(["Invalid date format"])

    def _impl(sess: Session) -> List[Dict[str, Any]]:
        query = sess.query(Purchase)
        if start is not None:
            query = query.filter(Purchase.purchase_date >= start)
        if end is not None:
            query = query.filter(Purchase.purchase_date <= end)
        if supplier_id is not None:
            query = query.filter(Purchase.supplier_id == supplier_id)
        purchases = query.order_by(Purchase.purchase_date.desc(), Purchase.id.desc()).all()
        return [_purchase_to_dict(p) for p in purchases]

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def soft_delete_purchase(purchase_id: int, session: Optional[Session] = None) -> None:
    """
    Move a purchase to the trash.

    Stock and item prices are left as they are; the purchase only stops
    showing up in listings.

    Raises:
        PurchaseNotFound: If the purchase doesn't exist or is already deleted
    """

    def _impl(sess: Session) -> None:
        purchase = sess.query(Purchase).filter(Purchase.id == purchase_id).first()
        if purchase is None:
            raise PurchaseNotFound(purchase_id)
        purchase.soft_delete()
        sess.flush()
        log_operation(
            logger, operation="soft_delete_purchase", outcome="success", purchase_id=purchase_id
        )

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)
