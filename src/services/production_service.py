"""Production Service - Availability check, costing and recording of production runs.

This module provides:
- ``plan_production``: check stock for a set of scaled ingredients and cost
  the run. Shortages are returned as data; nothing is written.
- ``commit_production``: plan, persist the Production with its frozen
  consumption snapshot and decrement stock, all in one transaction
- Lookups (``get_production``, ``list_productions``) and soft delete

Costing rules:
- unit cost = item ``avg_price`` if nonzero, else ``last_purchase_price``,
  else 0
- line total = scaled quantity * unit cost
- total cost = ingredient cost + labor + overhead
- cost per unit = total cost / produced quantity

Stock decrements use :func:`stock_service.decrement_stock_if_available`, so
a stock row drained between the plan and the write raises
``InsufficientStock`` and rolls the whole production back.

Example Usage:
    >>> from src.services.recipe_service import scale_recipe
    >>> from src.services.production_service import plan_production
    >>>
    >>> scaled = scale_recipe(sponge.id, Decimal("2"), kg.id)["scaled_ingredients"]
    >>> plan = plan_production(scaled, labor_cost=Decimal("100"),
    ...                        overhead_cost=Decimal("50"), produced_quantity=Decimal("2"))
    >>> plan["can_produce"]
    True
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from src.models import Item, Production, ProductionItem, Stock, Unit
from src.services import stock_service
from src.services.database import session_scope
from src.services.exceptions import (
    ItemNotFound,
    ProductionNotFound,
    ProductionShortageError,
    ValidationError,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.services.recipe_service import get_recipe_or_raise
from src.services.unit_converter import convert_quantity, strict_stock_conversions, to_decimal
from src.utils.datetime_utils import parse_date

logger = get_service_logger(__name__)


def _ingredient_quantity(ingredient: Dict[str, Any]) -> Decimal:
    """Scaled quantity of an ingredient dict (as produced by scale_recipe)."""
    if ingredient.get("scaled_quantity") is not None:
        return to_decimal(ingredient["scaled_quantity"], "Ingredient quantity")
    return to_decimal(ingredient.get("quantity"), "Ingredient quantity")


def _non_negative(value, field_name: str) -> Decimal:
    value = to_decimal(value if value is not None else 0, field_name)
    if value < 0:
        raise ValidationError([f"{field_name} cannot be negative"])
    return value


def _check_availability(
    sess: Session, ingredients: Sequence[Dict[str, Any]], strict: bool
) -> List[Dict[str, Any]]:
    shortages = []
    for ingredient in ingredients:
        item_id = ingredient["item_id"]
        required = _ingredient_quantity(ingredient)
        stock = sess.query(Stock).filter(Stock.item_id == item_id).first()

        if stock is None:
            unit = sess.get(Unit, ingredient["unit_id"])
            symbol = ingredient.get("unit_symbol") or (unit.symbol if unit else None)
            shortages.append(
                {
                    "item_id": item_id,
                    "item_name": ingredient.get("item_name"),
                    "required": required,
                    "required_unit": symbol,
                    "available": Decimal("0"),
                    "available_unit": symbol,
                }
            )
            continue

        required_in_stock_unit = convert_quantity(
            required, ingredient["unit_id"], stock.unit_id, session=sess, strict=strict
        )
        available = Decimal(stock.quantity)
        if required_in_stock_unit > available:
            shortages.append(
                {
                    "item_id": item_id,
                    "item_name": ingredient.get("item_name"),
                    "required": required_in_stock_unit,
                    "required_unit": stock.unit.symbol,
                    "available": available,
                    "available_unit": stock.unit.symbol,
                }
            )
    return shortages


def _cost_ingredients(
    sess: Session, ingredients: Sequence[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    lines = []
    for ingredient in ingredients:
        item = (
            sess.query(Item)
            .execution_options(include_deleted=True)
            .filter(Item.id == ingredient["item_id"])
            .first()
        )
        if item is None:
            raise ItemNotFound(ingredient["item_id"])
        quantity = _ingredient_quantity(ingredient)
        unit_cost = item.effective_unit_cost
        lines.append(
            {
                "item_id": item.id,
                "item_name": item.name,
                "quantity": quantity,
                "unit_id": ingredient["unit_id"],
                "unit_cost": unit_cost,
                "line_total": quantity * unit_cost,
            }
        )
    return lines


def _plan(
    sess: Session,
    ingredients: Sequence[Dict[str, Any]],
    labor_cost: Decimal,
    overhead_cost: Decimal,
    produced_quantity: Decimal,
    strict: bool,
) -> Dict[str, Any]:
    shortages = _check_availability(sess, ingredients, strict)
    if shortages:
        return {"can_produce": False, "shortages": shortages}

    lines = _cost_ingredients(sess, ingredients)
    ingredient_cost = sum((line["line_total"] for line in lines), Decimal("0"))
    total_cost = ingredient_cost + labor_cost + overhead_cost
    return {
        "can_produce": True,
        "shortages": [],
        "items": lines,
        "ingredient_cost": ingredient_cost,
        "labor_cost": labor_cost,
        "overhead_cost": overhead_cost,
        "total_cost": total_cost,
        "cost_per_unit": total_cost / produced_quantity,
    }


def _validate_plan_inputs(ingredients, labor_cost, overhead_cost, produced_quantity) -> tuple:
    produced_quantity = to_decimal(produced_quantity, "Produced quantity")
    if produced_quantity <= 0:
        raise ValidationError(["Produced quantity must be greater than zero"])
    labor_cost = _non_negative(labor_cost, "Labor cost")
    overhead_cost = _non_negative(overhead_cost, "Overhead cost")

    errors = []
    for index, ingredient in enumerate(ingredients, start=1):
        if not ingredient.get("item_id"):
            errors.append(f"Ingredient {index}: item is required")
        if not ingredient.get("unit_id"):
            errors.append(f"Ingredient {index}: unit is required")
        elif _ingredient_quantity(ingredient) <= 0:
            errors.append(f"Ingredient {index}: quantity must be greater than zero")
    if errors:
        raise ValidationError(errors)
    return labor_cost, overhead_cost, produced_quantity


def plan_production(
    scaled_ingredients: Sequence[Dict[str, Any]],
    labor_cost=Decimal("0"),
    overhead_cost=Decimal("0"),
    produced_quantity=Decimal("1"),
    session: Optional[Session] = None,
    strict: Optional[bool] = None,
) -> Dict[str, Any]:
    """
    Check availability and cost a production run without writing anything.

    Args:
        scaled_ingredients: Dicts with item_id, unit_id and scaled_quantity
            (or quantity), e.g. ``scale_recipe(...)["scaled_ingredients"]``
        labor_cost: Labor cost, >= 0
        overhead_cost: Overhead cost, >= 0
        produced_quantity: Output quantity, > 0
        session: Optional database session
        strict: Override ``Config.strict_stock_conversions``

    Returns:
        ``{"can_produce": False, "shortages": [...]}`` when any ingredient is
        short (each shortage has item_id, item_name, required, required_unit,
        available, available_unit), otherwise ``can_produce`` True with
        items, ingredient_cost, labor_cost, overhead_cost, total_cost and
        cost_per_unit

    Raises:
        ValidationError: If produced_quantity <= 0 or costs are negative
        ConversionPathNotFound: If strict and an ingredient unit can't reach
            its stock unit
    """
    labor_cost, overhead_cost, produced_quantity = _validate_plan_inputs(
        scaled_ingredients, labor_cost, overhead_cost, produced_quantity
    )
    strict = strict_stock_conversions() if strict is None else strict

    def _impl(sess: Session) -> Dict[str, Any]:
        plan = _plan(sess, scaled_ingredients, labor_cost, overhead_cost, produced_quantity, strict)
        if not plan["can_produce"]:
            log_operation(
                logger,
                operation="plan_production",
                outcome="shortage",
                shortage_count=len(plan["shortages"]),
            )
        return plan

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def commit_production(
    recipe_id: int,
    produced_quantity,
    produced_unit_id: int,
    scaled_ingredients: Sequence[Dict[str, Any]],
    labor_cost=Decimal("0"),
    overhead_cost=Decimal("0"),
    production_date=None,
    notes: Optional[str] = None,
    session: Optional[Session] = None,
    strict: Optional[bool] = None,
) -> Dict[str, Any]:
    """
    Record a production run and consume its ingredients.

    Planning, the Production insert and every stock decrement share one
    transaction: either all of it is written or none of it.

    Args:
        recipe_id: Recipe produced
        produced_quantity: Output quantity, > 0
        produced_unit_id: Output unit
        scaled_ingredients: Ingredients actually consumed (see plan_production)
        labor_cost: Labor cost, >= 0
        overhead_cost: Overhead cost, >= 0
        production_date: ``date`` or ``YYYY-MM-DD``; defaults to today
        notes: Optional notes
        session: Optional database session
        strict: Override ``Config.strict_stock_conversions``

    Returns:
        Production dict with its consumption snapshot

    Raises:
        ProductionShortageError: If any ingredient is short (nothing written)
        InsufficientStock: If stock was drained concurrently (rolled back)
        RecipeNotFound: If the recipe doesn't exist or is soft deleted
        ValidationError: If inputs are invalid
    """
    labor_cost, overhead_cost, produced_quantity = _validate_plan_inputs(
        scaled_ingredients, labor_cost, overhead_cost, produced_quantity
    )
    if not scaled_ingredients:
        raise ValidationError(["At least one ingredient is required"])
    try:
        run_date = parse_date(production_date) if production_date else None
    except ValueError:
        raise ValidationError(["Invalid date format"])
    strict = strict_stock_conversions() if strict is None else strict

    def _impl(sess: Session) -> Dict[str, Any]:
        recipe = get_recipe_or_raise(recipe_id, sess)
        if sess.get(Unit, produced_unit_id) is None:
            raise ValidationError([f"Unit {produced_unit_id} does not exist"])

        plan = _plan(sess, scaled_ingredients, labor_cost, overhead_cost, produced_quantity, strict)
        if not plan["can_produce"]:
            log_operation(
                logger,
                operation="commit_production",
                outcome="shortage",
                recipe_id=recipe_id,
                shortage_count=len(plan["shortages"]),
            )
            raise ProductionShortageError(plan["shortages"])

        production = Production(
            production_date=run_date or date.today(),
            recipe_id=recipe.id,
            produced_quantity=produced_quantity,
            produced_unit_id=produced_unit_id,
            labor_cost=labor_cost,
            overhead_cost=overhead_cost,
            total_cost=plan["total_cost"],
            cost_per_unit=plan["cost_per_unit"],
            notes=notes,
            items=[
                ProductionItem(
                    item_id=line["item_id"],
                    quantity=line["quantity"],
                    unit_id=line["unit_id"],
                    unit_cost=line["unit_cost"],
                    line_total=line["line_total"],
                )
                for line in plan["items"]
            ],
        )
        sess.add(production)
        sess.flush()

        for ingredient in scaled_ingredients:
            stock_service.decrement_stock_if_available(
                ingredient["item_id"],
                _ingredient_quantity(ingredient),
                ingredient["unit_id"],
                session=sess,
                strict=strict,
            )

        log_operation(
            logger,
            operation="commit_production",
            outcome="success",
            production_id=production.id,
            recipe_id=recipe.id,
            total_cost=str(plan["total_cost"]),
        )
        return _production_to_dict(production)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def _production_to_dict(production: Production) -> Dict[str, Any]:
    result = production.to_dict()
    result["recipe_name"] = production.recipe.name if production.recipe else None
    result["produced_unit_symbol"] = (
        production.produced_unit.symbol if production.produced_unit else None
    )
    result["items"] = [
        {
            "item_id": line.item_id,
            "item_name": line.item.name if line.item else None,
            "quantity": Decimal(line.quantity),
            "unit_id": line.unit_id,
            "unit_symbol": line.unit.symbol if line.unit else None,
            "unit_cost": Decimal(line.unit_cost),
            "line_total": Decimal(line.line_total),
        }
        for line in production.items
    ]
    return result


def get_production(production_id: int, session: Optional[Session] = None) -> Dict[str, Any]:
    """Get an active production with its consumption snapshot.

    Raises:
        ProductionNotFound: If the production doesn't exist or is soft deleted
    """

    def _impl(sess: Session) -> Dict[str, Any]:
        production = sess.query(Production).filter(Production.id == production_id).first()
        if production is None:
            raise ProductionNotFound(production_id)
        return _production_to_dict(production)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def list_productions(
    production_date=None, session: Optional[Session] = None
) -> List[Dict[str, Any]]:
    """List active productions, newest first, optionally for a single day."""
    try:
        day = parse_date(production_date) if production_date else None
    except ValueError:
        raise ValidationError(["Invalid date format"])

    def _impl(sess: Session) -> List[Dict[str, Any]]:
        query = sess.query(Production)
        if day is not None:
            query = query.filter(Production.production_date == day)
        productions = query.order_by(Production.production_date.desc(), Production.id.desc()).all()
        return [_production_to_dict(p) for p in productions]

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def soft_delete_production(production_id: int, session: Optional[Session] = None) -> None:
    """Move a production to the trash. Consumed stock is not given back."""

    def _impl(sess: Session) -> None:
        production = sess.query(Production).filter(Production.id == production_id).first()
        if production is None:
            raise ProductionNotFound(production_id)
        production.soft_delete()
        sess.flush()
        log_operation(
            logger,
            operation="soft_delete_production",
            outcome="success",
            production_id=production_id,
        )

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)
