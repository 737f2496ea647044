"""
Recipe and RecipeIngredient models.

A recipe has a native yield (quantity + unit) and an ordered list of
ingredients, each an (item, quantity, unit) triple expressed for that
native yield. Scaling multiplies every ingredient quantity by
``desired_yield / yield_quantity``.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from src.utils.constants import QUANTITY_PRECISION

from .base import BaseModel, SoftDeleteMixin


class Recipe(SoftDeleteMixin, BaseModel):
    """
    Recipe model with its native production size.

    Attributes:
        name: Recipe name (e.g., "Vanilla Sponge")
        description: Optional description or method notes
        yield_quantity: Native yield, must be > 0
        yield_unit_id: Unit of the native yield

    Relationships:
        yield_unit: The yield Unit
        recipe_ingredients: Ordered ingredient lines
    """

    __tablename__ = "recipes"

    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    yield_quantity = Column(Numeric(*QUANTITY_PRECISION), nullable=False)
    yield_unit_id = Column(
        Integer, ForeignKey("units.id", ondelete="RESTRICT"), nullable=False
    )

    yield_unit = relationship("Unit", lazy="joined")
    recipe_ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="RecipeIngredient.sort_order",
    )

    __table_args__ = (
        CheckConstraint("yield_quantity > 0", name="ck_recipe_yield_positive"),
    )

    def __repr__(self) -> str:
        """String representation of recipe."""
        return f"Recipe(id={self.id}, name='{self.name}')"


class RecipeIngredient(BaseModel):
    """
    Junction table linking recipes to items with quantities.

    Attributes:
        recipe_id: Foreign key to Recipe
        item_id: Foreign key to Item
        quantity: Amount needed for the recipe's native yield
        unit_id: Unit the quantity is expressed in
        sort_order: Position in the ingredient list
    """

    __tablename__ = "recipe_ingredients"

    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Numeric(*QUANTITY_PRECISION), nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id", ondelete="RESTRICT"), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)

    recipe = relationship("Recipe", back_populates="recipe_ingredients")
    item = relationship("Item", lazy="joined")
    unit = relationship("Unit", lazy="joined")

    __table_args__ = (
        Index("idx_recipe_ingredient_recipe", "recipe_id"),
        Index("idx_recipe_ingredient_item", "item_id"),
        CheckConstraint("quantity > 0", name="ck_recipe_ingredient_quantity_positive"),
    )

    def __repr__(self) -> str:
        """String representation of recipe ingredient."""
        return (
            f"RecipeIngredient(recipe_id={self.recipe_id}, "
            f"item_id={self.item_id}, "
            f"quantity={self.quantity}, unit_id={self.unit_id})"
        )
