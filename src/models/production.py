"""
Production and ProductionItem models.

A production records one run of a recipe: what was produced, what it cost,
and a frozen snapshot of the stock actually consumed. The snapshot stays
valid when the recipe or item prices change later.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
)
from sqlalchemy.orm import relationship

from src.utils.constants import MONEY_PRECISION, QUANTITY_PRECISION

from .base import BaseModel, SoftDeleteMixin


class Production(SoftDeleteMixin, BaseModel):
    """
    Production run of a recipe.

    Attributes:
        production_date: Day of the run
        recipe_id: Recipe used (RESTRICT delete)
        produced_quantity: Output quantity
        produced_unit_id: Output unit
        labor_cost: Labor added on top of ingredients
        overhead_cost: Overhead added on top of ingredients
        total_cost: Ingredient cost + labor + overhead
        cost_per_unit: total_cost / produced_quantity
        notes: Optional notes

    Relationships:
        recipe: The Recipe
        produced_unit: Output Unit
        items: ProductionItem consumption snapshot
    """

    __tablename__ = "productions"

    production_date = Column(Date, nullable=False, index=True)
    recipe_id = Column(
        Integer, ForeignKey("recipes.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    produced_quantity = Column(Numeric(*QUANTITY_PRECISION), nullable=False)
    produced_unit_id = Column(
        Integer, ForeignKey("units.id", ondelete="RESTRICT"), nullable=False
    )
    labor_cost = Column(Numeric(*MONEY_PRECISION), nullable=False, default=0)
    overhead_cost = Column(Numeric(*MONEY_PRECISION), nullable=False, default=0)
    total_cost = Column(Numeric(*MONEY_PRECISION), nullable=False)
    cost_per_unit = Column(Numeric(*MONEY_PRECISION), nullable=False)
    notes = Column(Text, nullable=True)

    recipe = relationship("Recipe")
    produced_unit = relationship("Unit", lazy="joined")
    items = relationship(
        "ProductionItem",
        back_populates="production",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("produced_quantity > 0", name="ck_production_quantity_positive"),
        CheckConstraint("labor_cost >= 0", name="ck_production_labor_non_negative"),
        CheckConstraint("overhead_cost >= 0", name="ck_production_overhead_non_negative"),
    )

    def __repr__(self) -> str:
        """String representation of production."""
        return (
            f"Production(id={self.id}, recipe_id={self.recipe_id}, "
            f"produced={self.produced_quantity}, total_cost={self.total_cost})"
        )


class ProductionItem(BaseModel):
    """
    Consumption snapshot line of a production.

    Attributes:
        production_id: Parent production
        item_id: Item consumed (RESTRICT delete)
        quantity: Scaled quantity consumed, in unit_id
        unit_id: Unit of the scaled recipe line
        unit_cost: Item cost per unit at commit time
        line_total: quantity * unit_cost
    """

    __tablename__ = "production_items"

    production_id = Column(
        Integer, ForeignKey("productions.id", ondelete="CASCADE"), nullable=False
    )
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Numeric(*QUANTITY_PRECISION), nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id", ondelete="RESTRICT"), nullable=False)
    unit_cost = Column(Numeric(*MONEY_PRECISION), nullable=False)
    line_total = Column(Numeric(*MONEY_PRECISION), nullable=False)

    production = relationship("Production", back_populates="items")
    item = relationship("Item", lazy="joined")
    unit = relationship("Unit", lazy="joined")

    __table_args__ = (
        Index("idx_production_item_production", "production_id"),
        Index("idx_production_item_item", "item_id"),
        CheckConstraint("quantity > 0", name="ck_production_item_quantity_positive"),
        CheckConstraint("unit_cost >= 0", name="ck_production_item_cost_non_negative"),
    )

    def __repr__(self) -> str:
        """String representation of production item."""
        return (
            f"ProductionItem(production_id={self.production_id}, item_id={self.item_id}, "
            f"quantity={self.quantity}, line_total={self.line_total})"
        )
