"""Trash Service - Listing, restoring and purging soft-deleted records.

Soft-deletable entities: items, recipes, purchases, productions and
suppliers. Every query here opts out of the default soft-delete filter with
``execution_options(include_deleted=True)``.

Purging is a hard delete. It is refused with ``EntityInUse`` while other
records reference the row (an item used by a recipe, a supplier with
purchases, a recipe with productions). Purging a purchase or a production
removes its lines but does not touch stock or prices.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from src.models import Item, Production, Purchase, Recipe, Supplier
from src.services.database import session_scope
from src.services.exceptions import EntityInUse, ValidationError
from src.services.item_service import check_item_dependencies
from src.services.logging_utils import get_service_logger, log_operation
from src.services.recipe_service import check_recipe_dependencies
from src.services.supplier_service import check_supplier_dependencies

logger = get_service_logger(__name__)

ENTITY_MODELS = {
    "items": Item,
    "recipes": Recipe,
    "purchases": Purchase,
    "productions": Production,
    "suppliers": Supplier,
}

_DEPENDENCY_CHECKS: Dict[str, Callable[[int, Session], Dict[str, int]]] = {
    "items": check_item_dependencies,
    "recipes": check_recipe_dependencies,
    "suppliers": check_supplier_dependencies,
}


def _model_for(entity_type: str):
    model = ENTITY_MODELS.get(entity_type)
    if model is None:
        raise ValidationError(
            [f"Unknown entity type '{entity_type}'; expected one of: {', '.join(ENTITY_MODELS)}"]
        )
    return model


def _label(entity_type: str, row) -> str:
    if entity_type == "purchases":
        return f"Purchase #{row.id}"
    if entity_type == "productions":
        return f"Production #{row.id}"
    return row.name


def _deleted_rows(sess: Session, model, ids: Iterable[int]) -> List[Any]:
    return (
        sess.query(model)
        .execution_options(include_deleted=True)
        .filter(model.id.in_(list(ids)), model.deleted_at.isnot(None))
        .all()
    )


def list_deleted(session: Optional[Session] = None) -> Dict[str, List[Dict[str, Any]]]:
    """
    List everything in the trash, most recently deleted first.

    Returns:
        Dict keyed by entity type, each a list of ``{id, name, deleted_at}``
    """

    def _impl(sess: Session) -> Dict[str, List[Dict[str, Any]]]:
        result = {}
        for entity_type, model in ENTITY_MODELS.items():
            rows = (
                sess.query(model)
                .execution_options(include_deleted=True)
                .filter(model.deleted_at.isnot(None))
                .order_by(model.deleted_at.desc())
                .all()
            )
            result[entity_type] = [
                {
                    "id": row.id,
                    "name": _label(entity_type, row),
                    "deleted_at": row.deleted_at.isoformat(),
                }
                for row in rows
            ]
        return result

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def restore(entity_type: str, ids: Iterable[int], session: Optional[Session] = None) -> int:
    """
    Bring soft-deleted rows back.

    Ids that are not in the trash are ignored.

    Args:
        entity_type: One of items, recipes, purchases, productions, suppliers
        ids: Row ids to restore
        session: Optional database session

    Returns:
        Number of rows restored

    Raises:
        ValidationError: If entity_type is unknown
    """
    model = _model_for(entity_type)

    def _impl(sess: Session) -> int:
        rows = _deleted_rows(sess, model, ids)
        for row in rows:
            row.restore()
        sess.flush()
        log_operation(
            logger, operation="restore", outcome="success", entity_type=entity_type, count=len(rows)
        )
        return len(rows)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def purge(entity_type: str, ids: Iterable[int], session: Optional[Session] = None) -> int:
    """
    Permanently delete soft-deleted rows.

    Either every requested row is purged or none is.

    Args:
        entity_type: One of items, recipes, purchases, productions, suppliers
        ids: Row ids to purge (only rows already in the trash are touched)
        session: Optional database session

    Returns:
        Number of rows deleted

    Raises:
        ValidationError: If entity_type is unknown
        EntityInUse: If any row is still referenced
    """
    model = _model_for(entity_type)
    check = _DEPENDENCY_CHECKS.get(entity_type)

    def _impl(sess: Session) -> int:
        rows = _deleted_rows(sess, model, ids)
        if check is not None:
            for row in rows:
                deps = check(row.id, sess)
                if any(deps.values()):
                    log_operation(
                        logger,
                        operation="purge",
                        outcome="in_use",
                        level=logging.WARNING,
                        entity_type=entity_type,
                        entity_id=row.id,
                    )
                    raise EntityInUse(entity_type.rstrip("s"), row.id, deps)

        for row in rows:
            sess.delete(row)
        sess.flush()
        log_operation(
            logger, operation="purge", outcome="success", entity_type=entity_type, count=len(rows)
        )
        return len(rows)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)
