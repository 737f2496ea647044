"""Supplier Service - Operations for the vendors items are bought from.

Suppliers are soft deleted so that historical purchases keep resolving
them; hard deletion goes through the trash service and is refused while
purchases reference the supplier.

Example Usage:
    >>> from src.services.supplier_service import create_supplier, list_suppliers
    >>>
    >>> supplier = create_supplier(name="Metro Cash & Carry", contact="0300-1234567")
    >>> [s["name"] for s in list_suppliers()]
    ['Metro Cash & Carry']
"""

from typing import Optional, List, Dict, Any
from sqlalchemy import func
from sqlalchemy.orm import Session

from src.models import Purchase, Supplier
from src.services.database import session_scope
from src.services.exceptions import SupplierNotFound, ValidationError
from src.services.logging_utils import get_service_logger, log_operation
from src.utils.constants import MAX_NAME_LENGTH

logger = get_service_logger(__name__)


def create_supplier(
    name: str,
    contact: Optional[str] = None,
    email: Optional[str] = None,
    address: Optional[str] = None,
    notes: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Create a new supplier.

    Args:
        name: Supplier name (required)
        contact: Contact person or phone (optional)
        email: Email address (optional)
        address: Postal address (optional)
        notes: Additional notes (optional)
        session: Optional database session for transactional atomicity

    Returns:
        Dict[str, Any]: Created supplier as dictionary

    Raises:
        ValidationError: If the name is missing or too long
    """
    if session is not None:
        return _create_supplier_impl(name, contact, email, address, notes, session)
    with session_scope() as session:
        return _create_supplier_impl(name, contact, email, address, notes, session)


def _create_supplier_impl(
    name: str,
    contact: Optional[str],
    email: Optional[str],
    address: Optional[str],
    notes: Optional[str],
    session: Session,
) -> Dict[str, Any]:
    """Implementation of create_supplier."""
    if name is None or not name.strip():
        raise ValidationError(["Supplier name is required"])
    if len(name.strip()) > MAX_NAME_LENGTH:
        raise ValidationError([f"Supplier name must be {MAX_NAME_LENGTH} characters or less"])
    if email is not None and email.strip() and "@" not in email:
        raise ValidationError(["Supplier email is not valid"])

    supplier = Supplier(
        name=name.strip(),
        contact=contact,
        email=email.strip() if email else None,
        address=address,
        notes=notes,
    )
    session.add(supplier)
    session.flush()
    log_operation(logger, operation="create_supplier", outcome="success", supplier_id=supplier.id)
    return supplier.to_dict()


def get_supplier(supplier_id: int, session: Optional[Session] = None) -> Dict[str, Any]:
    """Get an active supplier by ID.

    Raises:
        SupplierNotFound: If the supplier doesn't exist or is soft deleted
    """
    if session is not None:
        return _get_supplier_impl(supplier_id, session)
    with session_scope() as session:
        return _get_supplier_impl(supplier_id, session)


def _get_supplier_impl(supplier_id: int, session: Session) -> Dict[str, Any]:
    """Implementation of get_supplier."""
    supplier = session.query(Supplier).filter(Supplier.id == supplier_id).first()
    if supplier is None:
        raise SupplierNotFound(supplier_id)
    return supplier.to_dict()


def list_suppliers(session: Optional[Session] = None) -> List[Dict[str, Any]]:
    """List active suppliers ordered by name."""
    if session is not None:
        return _list_suppliers_impl(session)
    with session_scope() as session:
        return _list_suppliers_impl(session)


def _list_suppliers_impl(session: Session) -> List[Dict[str, Any]]:
    suppliers = session.query(Supplier).order_by(Supplier.name).all()
    return [s.to_dict() for s in suppliers]


def soft_delete_supplier(supplier_id: int, session: Optional[Session] = None) -> None:
    """Move a supplier to the trash.

    Raises:
        SupplierNotFound: If the supplier doesn't exist or is already deleted
    """
    if session is not None:
        return _soft_delete_supplier_impl(supplier_id, session)
    with session_scope() as session:
        return _soft_delete_supplier_impl(supplier_id, session)


def _soft_delete_supplier_impl(supplier_id: int, session: Session) -> None:
    supplier = session.query(Supplier).filter(Supplier.id == supplier_id).first()
    if supplier is None:
        raise SupplierNotFound(supplier_id)
    supplier.soft_delete()
    session.flush()
    log_operation(logger, operation="soft_delete_supplier", outcome="success", supplier_id=supplier_id)


def check_supplier_dependencies(supplier_id: int, session: Session) -> Dict[str, int]:
    """Count purchases (including trashed ones) made from a supplier."""
    count = (
        session.query(func.count(Purchase.id))
        .execution_options(include_deleted=True)
        .filter(Purchase.supplier_id == supplier_id)
        .scalar()
    )
    return {"purchases": count}
