"""Item Service - Catalog operations for raw materials and essences.

This module provides business logic for managing stocked items: creation
with validation, lookups, updates, alternate units, soft delete and hard
delete guarded by referential integrity.

All functions accept an optional session for transactional atomicity and
return plain dictionaries.

Example Usage:
    >>> from src.services.item_service import create_item
    >>> flour = create_item(
    ...     name="All Purpose Flour",
    ...     item_type="RAW_MATERIAL",
    ...     base_unit_id=kg.id,
    ...     sku="RM-001",
    ...     reorder_threshold=Decimal("10"),
    ... )
    >>> flour["avg_price"]
    Decimal('0')
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from src.models import (
    Item,
    ItemType,
    ItemUnit,
    ProductionItem,
    PurchaseItem,
    RecipeIngredient,
    Stock,
    Unit,
)
from src.services.database import session_scope
from src.services.exceptions import (
    EntityInUse,
    ItemNotFound,
    SkuAlreadyExists,
    ValidationError,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.services.unit_converter import to_decimal
from src.utils.constants import MAX_NAME_LENGTH, MAX_SKU_LENGTH

logger = get_service_logger(__name__)

_UPDATABLE_FIELDS = {"name", "sku", "category", "location", "notes", "reorder_threshold", "base_quantity"}


def _validate_item_fields(
    name: Optional[str],
    item_type: Optional[str],
    sku: Optional[str],
    reorder_threshold: Decimal,
) -> List[str]:
    errors = []
    if name is None or not name.strip():
        errors.append("Item name is required")
    elif len(name.strip()) > MAX_NAME_LENGTH:
        errors.append(f"Item name must be {MAX_NAME_LENGTH} characters or less")
    if item_type not in {t.value for t in ItemType}:
        errors.append("Item type must be RAW_MATERIAL or ESSENCE")
    if sku is not None and len(sku) > MAX_SKU_LENGTH:
        errors.append(f"SKU must be {MAX_SKU_LENGTH} characters or less")
    if reorder_threshold < 0:
        errors.append("Reorder threshold cannot be negative")
    return errors


def _normalize_sku(sku: Optional[str]) -> Optional[str]:
    if sku is None:
        return None
    sku = sku.strip()
    return sku or None


def _ensure_sku_free(sess: Session, sku: Optional[str], exclude_id: Optional[int] = None) -> None:
    if sku is None:
        return
    # SKUs stay reserved while an item sits in the trash
    query = sess.query(Item).execution_options(include_deleted=True).filter(Item.sku == sku)
    if exclude_id is not None:
        query = query.filter(Item.id != exclude_id)
    if query.first() is not None:
        raise SkuAlreadyExists(sku)


def _item_to_dict(item: Item) -> Dict[str, Any]:
    return item.to_dict(include_relationships=True)


def get_item_or_raise(item_id: int, session: Session, include_deleted: bool = False) -> Item:
    """Load an Item ORM object inside an existing session.

    Raises:
        ItemNotFound: If the item doesn't exist (or is soft deleted)
    """
    query = session.query(Item).filter(Item.id == item_id)
    if include_deleted:
        query = query.execution_options(include_deleted=True)
    item = query.first()
    if item is None:
        raise ItemNotFound(item_id)
    return item


def create_item(
    name: str,
    item_type: str,
    base_unit_id: int,
    sku: Optional[str] = None,
    category: Optional[str] = None,
    location: Optional[str] = None,
    notes: Optional[str] = None,
    base_quantity=Decimal("1"),
    reorder_threshold=Decimal("0"),
    unit_ids: Optional[Iterable[int]] = None,
    opening_stock=None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Create a new item.

    Args:
        name: Item name (required)
        item_type: "RAW_MATERIAL" or "ESSENCE"
        base_unit_id: Canonical unit for stock and cost tracking
        sku: Optional SKU, unique across all items
        category: Optional grouping
        location: Optional storage location
        notes: Optional notes
        base_quantity: Pack size in the base unit
        reorder_threshold: Low-stock threshold in the stock unit
        unit_ids: Alternate units allowed for entry (base unit always allowed)
        opening_stock: Optional initial on-hand quantity in the base unit
        session: Optional database session

    Returns:
        Created item as dictionary (with base_unit, stock and unit_ids)

    Raises:
        ValidationError: If required fields are missing or invalid
        SkuAlreadyExists: If the SKU is taken
    """
    reorder_threshold = to_decimal(reorder_threshold, "Reorder threshold")
    base_quantity = to_decimal(base_quantity, "Base quantity")
    sku = _normalize_sku(sku)

    errors = _validate_item_fields(name, item_type, sku, reorder_threshold)
    if base_quantity <= 0:
        errors.append("Base quantity must be greater than zero")
    if opening_stock is not None and to_decimal(opening_stock, "Opening stock") < 0:
        errors.append("Opening stock cannot be negative")
    if errors:
        raise ValidationError(errors)

    def _impl(sess: Session) -> Dict[str, Any]:
        allowed_units = {base_unit_id, *(unit_ids or [])}
        for unit_id in allowed_units:
            if sess.get(Unit, unit_id) is None:
                raise ValidationError([f"Unit {unit_id} does not exist"])
        _ensure_sku_free(sess, sku)

        item = Item(
            name=name.strip(),
            sku=sku,
            item_type=item_type,
            category=category,
            location=location,
            notes=notes,
            base_unit_id=base_unit_id,
            base_quantity=base_quantity,
            reorder_threshold=reorder_threshold,
            last_purchase_price=Decimal("0"),
            avg_price=Decimal("0"),
        )
        item.item_units = [ItemUnit(unit_id=unit_id) for unit_id in sorted(allowed_units)]
        if opening_stock is not None:
            item.stock = Stock(quantity=to_decimal(opening_stock), unit_id=base_unit_id)
        sess.add(item)
        sess.flush()

        log_operation(logger, operation="create_item", outcome="success", item_id=item.id)
        return _item_to_dict(item)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def get_item(item_id: int, session: Optional[Session] = None) -> Dict[str, Any]:
    """Get an active item by id.

    Raises:
        ItemNotFound: If the item doesn't exist or is soft deleted
    """

    def _impl(sess: Session) -> Dict[str, Any]:
        return _item_to_dict(get_item_or_raise(item_id, sess))

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def list_items(
    item_type: Optional[str] = None, session: Optional[Session] = None
) -> List[Dict[str, Any]]:
    """List active items ordered by name.

    Args:
        item_type: Optional "RAW_MATERIAL" / "ESSENCE" filter
        session: Optional database session
    """

    def _impl(sess: Session) -> List[Dict[str, Any]]:
        query = sess.query(Item)
        if item_type in {t.value for t in ItemType}:
            query = query.filter(Item.item_type == item_type)
        return [_item_to_dict(item) for item in query.order_by(Item.name).all()]

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def update_item(
    item_id: int,
    updates: Dict[str, Any],
    unit_ids: Optional[Iterable[int]] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Update descriptive fields of an item.

    Price fields and the base unit are not editable here: prices move only
    through purchases, and changing the base unit would silently
    re-denominate existing stock.

    Args:
        item_id: Item to update
        updates: Field values; keys outside the editable set are rejected
        unit_ids: Optional replacement set of alternate units
        session: Optional database session

    Raises:
        ItemNotFound: If the item doesn't exist
        ValidationError: If a field is not editable or invalid
        SkuAlreadyExists: If the new SKU is taken
    """
    unknown = set(updates) - _UPDATABLE_FIELDS
    if unknown:
        raise ValidationError([f"Field '{field}' cannot be updated" for field in sorted(unknown)])

    def _impl(sess: Session) -> Dict[str, Any]:
        item = get_item_or_raise(item_id, sess)
        data = dict(updates)
        if "sku" in data:
            data["sku"] = _normalize_sku(data["sku"])
            _ensure_sku_free(sess, data["sku"], exclude_id=item.id)
        if "reorder_threshold" in data:
            data["reorder_threshold"] = to_decimal(data["reorder_threshold"], "Reorder threshold")
        if "base_quantity" in data:
            data["base_quantity"] = to_decimal(data["base_quantity"], "Base quantity")
            if data["base_quantity"] <= 0:
                raise ValidationError(["Base quantity must be greater than zero"])

        errors = _validate_item_fields(
            data.get("name", item.name),
            item.item_type,
            data.get("sku", item.sku),
            data.get("reorder_threshold", Decimal(item.reorder_threshold)),
        )
        if errors:
            raise ValidationError(errors)
        if "name" in data:
            data["name"] = data["name"].strip()

        item.update_from_dict(data)

        if unit_ids is not None:
            allowed_units = {item.base_unit_id, *unit_ids}
            for unit_id in allowed_units:
                if sess.get(Unit, unit_id) is None:
                    raise ValidationError([f"Unit {unit_id} does not exist"])
            item.item_units.clear()
            sess.flush()
            item.item_units.extend(ItemUnit(unit_id=unit_id) for unit_id in sorted(allowed_units))

        sess.flush()
        log_operation(logger, operation="update_item", outcome="success", item_id=item.id)
        return _item_to_dict(item)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def soft_delete_item(item_id: int, session: Optional[Session] = None) -> None:
    """Move an item to the trash.

    Historical purchases, recipes and productions keep their reference.

    Raises:
        ItemNotFound: If the item doesn't exist or is already deleted
    """

    def _impl(sess: Session) -> None:
        item = get_item_or_raise(item_id, sess)
        item.soft_delete()
        sess.flush()
        log_operation(logger, operation="soft_delete_item", outcome="success", item_id=item_id)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def check_item_dependencies(item_id: int, session: Session) -> Dict[str, int]:
    """Count the records that reference an item, soft-deleted parents included."""
    return {
        "recipes": session.query(RecipeIngredient)
        .filter(RecipeIngredient.item_id == item_id)
        .count(),
        "purchases": session.query(PurchaseItem).filter(PurchaseItem.item_id == item_id).count(),
        "productions": session.query(ProductionItem)
        .filter(ProductionItem.item_id == item_id)
        .count(),
    }


def delete_item_permanently(item_id: int, session: Optional[Session] = None) -> None:
    """Hard delete an item (and its stock row and alternate units).

    Raises:
        ItemNotFound: If the item doesn't exist
        EntityInUse: If purchases, recipes or productions reference it
    """

    def _impl(sess: Session) -> None:
        item = get_item_or_raise(item_id, sess, include_deleted=True)
        deps = check_item_dependencies(item_id, sess)
        if any(deps.values()):
            log_operation(
                logger,
                operation="delete_item_permanently",
                outcome="in_use",
                level=logging.WARNING,
                item_id=item_id,
            )
            raise EntityInUse("item", item_id, deps)

        sess.delete(item)
        sess.flush()
        log_operation(
            logger, operation="delete_item_permanently", outcome="success", item_id=item_id
        )

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)
