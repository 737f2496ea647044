"""
Item model for stocked raw materials and essences.

An item carries its canonical (base) unit, its reorder threshold and two
price fields maintained by the purchase flow:

- last_purchase_price: unit price of the most recent purchase line
- avg_price: running mean, ``new`` on the first purchase and
  ``(avg_price + new) / 2`` afterwards (not quantity-weighted)
"""

from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from src.utils.constants import MONEY_PRECISION, QUANTITY_PRECISION

from .base import BaseModel, SoftDeleteMixin, decimal_or_zero


class Item(SoftDeleteMixin, BaseModel):
    """
    Stocked item (raw material or essence).

    Attributes:
        name: Item name (e.g., "All Purpose Flour")
        sku: Optional stock keeping unit, globally unique when present
        item_type: "RAW_MATERIAL" or "ESSENCE"
        category: Free-form grouping (e.g., "Flour")
        location: Storage location (e.g., "Store A")
        base_unit_id: Canonical unit for stock and cost tracking
        base_quantity: Pack size in the base unit (informational)
        reorder_threshold: Stock level at or below which the item is low
        last_purchase_price: Price per unit of the latest purchase
        avg_price: Running average price per unit

    Relationships:
        base_unit: The Unit the item is tracked in
        stock: The single Stock row (None before the first purchase)
        item_units: Alternate units a user may enter quantities in
    """

    __tablename__ = "items"

    name = Column(String(200), nullable=False, index=True)
    sku = Column(String(50), nullable=True)
    item_type = Column(String(20), nullable=False, index=True)
    category = Column(String(100), nullable=True)
    location = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    base_unit_id = Column(
        Integer, ForeignKey("units.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    base_quantity = Column(Numeric(*QUANTITY_PRECISION), nullable=False, default=Decimal("1"))
    reorder_threshold = Column(Numeric(*QUANTITY_PRECISION), nullable=False, default=Decimal("0"))

    last_purchase_price = Column(Numeric(*MONEY_PRECISION), nullable=False, default=Decimal("0"))
    avg_price = Column(Numeric(*MONEY_PRECISION), nullable=False, default=Decimal("0"))

    base_unit = relationship("Unit", lazy="joined")
    stock = relationship(
        "Stock",
        back_populates="item",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    item_units = relationship(
        "ItemUnit",
        back_populates="item",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("sku", name="uq_item_sku"),
        CheckConstraint(
            "item_type IN ('RAW_MATERIAL', 'ESSENCE')", name="ck_item_type_valid"
        ),
        CheckConstraint("reorder_threshold >= 0", name="ck_item_reorder_non_negative"),
        CheckConstraint("avg_price >= 0", name="ck_item_avg_price_non_negative"),
        CheckConstraint(
            "last_purchase_price >= 0", name="ck_item_last_price_non_negative"
        ),
    )

    def __repr__(self) -> str:
        """String representation of item."""
        return f"Item(id={self.id}, name='{self.name}', type='{self.item_type}')"

    @property
    def effective_unit_cost(self) -> Decimal:
        """
        Unit cost used for production costing.

        Returns avg_price when nonzero, else last_purchase_price, else 0.
        """
        avg = decimal_or_zero(self.avg_price)
        if avg != 0:
            return avg
        return decimal_or_zero(self.last_purchase_price)

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert item to dictionary.

        Args:
            include_relationships: If True, include base unit, stock and
                alternate unit ids

        Returns:
            Dictionary representation
        """
        result = super().to_dict(include_relationships=False)
        if include_relationships:
            result["base_unit"] = self.base_unit.to_dict() if self.base_unit else None
            result["stock"] = self.stock.to_dict() if self.stock else None
            result["unit_ids"] = [iu.unit_id for iu in self.item_units]
        return result


class ItemUnit(BaseModel):
    """
    Alternate unit a quantity for an item may be entered in.

    Attributes:
        item_id: Owning item
        unit_id: Allowed unit
    """

    __tablename__ = "item_units"

    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id", ondelete="RESTRICT"), nullable=False)

    item = relationship("Item", back_populates="item_units")
    unit = relationship("Unit")

    __table_args__ = (
        UniqueConstraint("item_id", "unit_id", name="uq_item_unit"),
        Index("idx_item_unit_item", "item_id"),
    )

    def __repr__(self) -> str:
        """String representation of item unit."""
        return f"ItemUnit(item_id={self.item_id}, unit_id={self.unit_id})"
