"""
Purchase and PurchaseItem models.

Committing a purchase is the only path that increases stock and updates
an item's price fields. Line totals and the purchase total are computed
once at creation and stored.
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


class Purchase(SoftDeleteMixin, BaseModel):
    """
    Purchase transaction from one supplier.

    Attributes:
        purchase_date: When the purchase was made (never in the future)
        supplier_id: Supplier (RESTRICT delete)
        total_amount: Sum of line totals
        notes: Optional notes

    Relationships:
        supplier: The Supplier
        items: PurchaseItem lines
    """

    __tablename__ = "purchases"

    purchase_date = Column(Date, nullable=False, index=True)
    supplier_id = Column(
        Integer, ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    total_amount = Column(Numeric(*MONEY_PRECISION), nullable=False)
    notes = Column(Text, nullable=True)

    supplier = relationship("Supplier", back_populates="purchases")
    items = relationship(
        "PurchaseItem",
        back_populates="purchase",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_purchase_total_non_negative"),
    )

    def __repr__(self) -> str:
        """String representation of purchase."""
        return (
            f"Purchase(id={self.id}, supplier_id={self.supplier_id}, "
            f"date={self.purchase_date}, total={self.total_amount})"
        )


class PurchaseItem(BaseModel):
    """
    One purchased line.

    Attributes:
        purchase_id: Parent purchase
        item_id: Item bought (RESTRICT delete)
        quantity: Quantity bought, in unit_id
        unit_id: Unit the quantity was entered in
        unit_price: Price per unit_id
        line_total: quantity * unit_price
    """

    __tablename__ = "purchase_items"

    purchase_id = Column(
        Integer, ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False
    )
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Numeric(*QUANTITY_PRECISION), nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id", ondelete="RESTRICT"), nullable=False)
    unit_price = Column(Numeric(*MONEY_PRECISION), nullable=False)
    line_total = Column(Numeric(*MONEY_PRECISION), nullable=False)

    purchase = relationship("Purchase", back_populates="items")
    item = relationship("Item", lazy="joined")
    unit = relationship("Unit", lazy="joined")

    __table_args__ = (
        Index("idx_purchase_item_purchase", "purchase_id"),
        Index("idx_purchase_item_item", "item_id"),
        CheckConstraint("quantity > 0", name="ck_purchase_item_quantity_positive"),
        CheckConstraint("unit_price > 0", name="ck_purchase_item_price_positive"),
    )

    def __repr__(self) -> str:
        """String representation of purchase item."""
        return (
            f"PurchaseItem(purchase_id={self.purchase_id}, item_id={self.item_id}, "
            f"quantity={self.quantity}, unit_price={self.unit_price})"
        )
