"""
Stock model: the on-hand quantity of an item.

There is exactly one row per item. The quantity is always denominated in
``unit_id`` (normally, but not necessarily, the item's base unit); every
increment and decrement converts into that unit first.
"""

from decimal import Decimal

from sqlalchemy import Column, ForeignKey, Integer, Numeric
from sqlalchemy.orm import relationship

from src.utils.constants import QUANTITY_PRECISION

from .base import BaseModel


class Stock(BaseModel):
    """
    Current stock of one item.

    Attributes:
        item_id: Item this row belongs to (unique)
        quantity: Quantity on hand in unit_id
        unit_id: Stock unit
    """

    __tablename__ = "stock"

    item_id = Column(
        Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    quantity = Column(Numeric(*QUANTITY_PRECISION), nullable=False, default=Decimal("0"))
    unit_id = Column(Integer, ForeignKey("units.id", ondelete="RESTRICT"), nullable=False)

    item = relationship("Item", back_populates="stock")
    unit = relationship("Unit", lazy="joined")

    def __repr__(self) -> str:
        """String representation of stock."""
        return f"Stock(item_id={self.item_id}, quantity={self.quantity}, unit_id={self.unit_id})"
