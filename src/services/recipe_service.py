"""
Recipe Service - Recipe management and yield scaling.

This module provides:
- Recipe CRUD with ingredient validation
- Soft delete (recipes referenced by productions stay resolvable)
- ``scale_recipe``: multiply every ingredient by
  ``desired_yield / yield_quantity`` after converting the desired yield into
  the recipe's own yield unit

Scaled quantities keep the ingredient's unit; converting them to stock
units is the production calculator's job.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from src.models import Item, Production, Recipe, RecipeIngredient, Unit
from src.services.database import session_scope
from src.services.exceptions import RecipeNotFound, ValidationError
from src.services.logging_utils import get_service_logger, log_operation
from src.services.unit_converter import convert_quantity, to_decimal
from src.utils.constants import MAX_NAME_LENGTH

logger = get_service_logger(__name__)


def get_recipe_or_raise(recipe_id: int, session: Session, include_deleted: bool = False) -> Recipe:
    """Load a Recipe ORM object inside an existing session.

    Raises:
        RecipeNotFound: If the recipe doesn't exist (or is soft deleted)
    """
    query = session.query(Recipe).filter(Recipe.id == recipe_id)
    if include_deleted:
        query = query.execution_options(include_deleted=True)
    recipe = query.first()
    if recipe is None:
        raise RecipeNotFound(recipe_id)
    return recipe


def _recipe_to_dict(recipe: Recipe) -> Dict[str, Any]:
    result = recipe.to_dict()
    result["yield_unit_symbol"] = recipe.yield_unit.symbol if recipe.yield_unit else None
    result["ingredients"] = [
        {
            "item_id": ri.item_id,
            "item_name": ri.item.name if ri.item else None,
            "quantity": Decimal(ri.quantity),
            "unit_id": ri.unit_id,
            "unit_symbol": ri.unit.symbol if ri.unit else None,
            "sort_order": ri.sort_order,
        }
        for ri in recipe.recipe_ingredients
    ]
    return result


def _validate_recipe(
    name: Optional[str], yield_quantity: Any, ingredients: Sequence[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Validate recipe input and return ingredients with Decimal quantities."""
    errors = []
    if name is None or not name.strip():
        errors.append("Recipe name is required")
    elif len(name.strip()) > MAX_NAME_LENGTH:
        errors.append(f"Recipe name must be {MAX_NAME_LENGTH} characters or less")

    if to_decimal(yield_quantity, "Yield quantity") <= 0:
        errors.append("Yield quantity must be greater than zero")

    cleaned = []
    for index, ingredient in enumerate(ingredients, start=1):
        if not ingredient.get("item_id"):
            errors.append(f"Ingredient {index}: item is required")
        if not ingredient.get("unit_id"):
            errors.append(f"Ingredient {index}: unit is required")
        quantity = to_decimal(ingredient.get("quantity"), f"Ingredient {index} quantity")
        if quantity <= 0:
            errors.append(f"Ingredient {index}: quantity must be greater than zero")
        cleaned.append({**ingredient, "quantity": quantity})

    if errors:
        raise ValidationError(errors)
    return cleaned


def _build_ingredients(
    session: Session, ingredients: List[Dict[str, Any]]
) -> List[RecipeIngredient]:
    rows = []
    for sort_order, ingredient in enumerate(ingredients):
        if session.get(Item, ingredient["item_id"]) is None:
            raise ValidationError([f"Item {ingredient['item_id']} does not exist"])
        if session.get(Unit, ingredient["unit_id"]) is None:
            raise ValidationError([f"Unit {ingredient['unit_id']} does not exist"])
        rows.append(
            RecipeIngredient(
                item_id=ingredient["item_id"],
                quantity=ingredient["quantity"],
                unit_id=ingredient["unit_id"],
                sort_order=sort_order,
            )
        )
    return rows


def create_recipe(
    name: str,
    yield_quantity,
    yield_unit_id: int,
    ingredients: Sequence[Dict[str, Any]],
    description: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Create a recipe with its ingredient lines.

    Args:
        name: Recipe name
        yield_quantity: Native yield, > 0
        yield_unit_id: Unit of the native yield
        ingredients: Dicts with item_id, quantity (> 0) and unit_id, in order
        description: Optional description
        session: Optional database session

    Returns:
        Recipe dict with an ``ingredients`` list

    Raises:
        ValidationError: If any field or ingredient is invalid
    """
    cleaned = _validate_recipe(name, yield_quantity, ingredients)

    def _impl(sess: Session) -> Dict[str, Any]:
        if sess.get(Unit, yield_unit_id) is None:
            raise ValidationError([f"Unit {yield_unit_id} does not exist"])
        recipe = Recipe(
            name=name.strip(),
            description=description,
            yield_quantity=to_decimal(yield_quantity),
            yield_unit_id=yield_unit_id,
        )
        recipe.recipe_ingredients = _build_ingredients(sess, cleaned)
        sess.add(recipe)
        sess.flush()
        log_operation(
            logger,
            operation="create_recipe",
            outcome="success",
            recipe_id=recipe.id,
            ingredient_count=len(cleaned),
        )
        return _recipe_to_dict(recipe)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def get_recipe(recipe_id: int, session: Optional[Session] = None) -> Dict[str, Any]:
    """Get an active recipe with its ingredients.

    Raises:
        RecipeNotFound: If the recipe doesn't exist or is soft deleted
    """

    def _impl(sess: Session) -> Dict[str, Any]:
        return _recipe_to_dict(get_recipe_or_raise(recipe_id, sess))

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def list_recipes(session: Optional[Session] = None) -> List[Dict[str, Any]]:
    """List active recipes ordered by name."""

    def _impl(sess: Session) -> List[Dict[str, Any]]:
        return [_recipe_to_dict(r) for r in sess.query(Recipe).order_by(Recipe.name).all()]

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def update_recipe(
    recipe_id: int,
    name: str,
    yield_quantity,
    yield_unit_id: int,
    ingredients: Sequence[Dict[str, Any]],
    description: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Replace a recipe's fields and its whole ingredient list.

    Past productions are unaffected: they hold their own consumption
    snapshot.

    Raises:
        RecipeNotFound: If the recipe doesn't exist
        ValidationError: If any field or ingredient is invalid
    """
    cleaned = _validate_recipe(name, yield_quantity, ingredients)

    def _impl(sess: Session) -> Dict[str, Any]:
        recipe = get_recipe_or_raise(recipe_id, sess)
        if sess.get(Unit, yield_unit_id) is None:
            raise ValidationError([f"Unit {yield_unit_id} does not exist"])
        new_rows = _build_ingredients(sess, cleaned)

        recipe.name = name.strip()
        recipe.description = description
        recipe.yield_quantity = to_decimal(yield_quantity)
        recipe.yield_unit_id = yield_unit_id
        recipe.recipe_ingredients.clear()
        sess.flush()
        recipe.recipe_ingredients.extend(new_rows)
        sess.flush()
        sess.refresh(recipe)

        log_operation(logger, operation="update_recipe", outcome="success", recipe_id=recipe_id)
        return _recipe_to_dict(recipe)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def soft_delete_recipe(recipe_id: int, session: Optional[Session] = None) -> None:
    """Move a recipe to the trash.

    Raises:
        RecipeNotFound: If the recipe doesn't exist or is already deleted
    """

    def _impl(sess: Session) -> None:
        recipe = get_recipe_or_raise(recipe_id, sess)
        recipe.soft_delete()
        sess.flush()
        log_operation(logger, operation="soft_delete_recipe", outcome="success", recipe_id=recipe_id)

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def check_recipe_dependencies(recipe_id: int, session: Session) -> Dict[str, int]:
    """Count productions (including trashed ones) that used a recipe."""
    count = (
        session.query(func.count(Production.id))
        .execution_options(include_deleted=True)
        .filter(Production.recipe_id == recipe_id)
        .scalar()
    )
    return {"productions": count}


def scale_recipe(
    recipe_id: int,
    desired_yield,
    desired_unit_id: int,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Scale a recipe's ingredients to a desired yield.

    The desired yield is converted into the recipe's yield unit first
    (fail-open: with no conversion path the number is used as is and a
    warning is logged). Every ingredient quantity is then multiplied by
    ``converted_yield / yield_quantity``; units are left unchanged.

    Args:
        recipe_id: Recipe to scale
        desired_yield: Target yield, > 0
        desired_unit_id: Unit of desired_yield
        session: Optional database session

    Returns:
        Dict with original_yield, original_unit, desired_yield,
        desired_unit_id, scaling_factor and scaled_ingredients (each with
        item_id, item_name, unit_id, unit_symbol, quantity, scaled_quantity)

    Raises:
        RecipeNotFound: If the recipe doesn't exist or is soft deleted
        ValidationError: If desired_yield is not positive

    Example:
        >>> result = scale_recipe(sponge.id, Decimal("2"), kg.id)  # native 1 kg
        >>> result["scaling_factor"]
        Decimal('2')
    """
    desired_yield = to_decimal(desired_yield, "Desired yield")
    if desired_yield <= 0:
        raise ValidationError(["Desired yield must be greater than zero"])

    def _impl(sess: Session) -> Dict[str, Any]:
        recipe = get_recipe_or_raise(recipe_id, sess)
        original_yield = Decimal(recipe.yield_quantity)

        converted_yield = convert_quantity(
            desired_yield, desired_unit_id, recipe.yield_unit_id, session=sess
        )
        scaling_factor = converted_yield / original_yield

        scaled_ingredients = []
        for ri in recipe.recipe_ingredients:
            quantity = Decimal(ri.quantity)
            scaled_ingredients.append(
                {
                    "item_id": ri.item_id,
                    "item_name": ri.item.name if ri.item else None,
                    "unit_id": ri.unit_id,
                    "unit_symbol": ri.unit.symbol if ri.unit else None,
                    "quantity": quantity,
                    "scaled_quantity": quantity * scaling_factor,
                }
            )

        logger.debug(
            f"Scaled recipe {recipe_id} by {scaling_factor} "
            f"({len(scaled_ingredients)} ingredients)"
        )
        return {
            "recipe_id": recipe.id,
            "recipe_name": recipe.name,
            "original_yield": original_yield,
            "original_unit": recipe.yield_unit.symbol if recipe.yield_unit else None,
            "original_unit_id": recipe.yield_unit_id,
            "desired_yield": desired_yield,
            "desired_unit_id": desired_unit_id,
            "scaling_factor": scaling_factor,
            "scaled_ingredients": scaled_ingredients,
        }

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)
