"""
ConversionFactor model for pairwise unit conversions.

Each row says ``quantity_in_to_unit = quantity_in_from_unit * factor``.
Only one direction needs to be stored for a pair; the reverse direction is
derived as ``1 / factor`` by the conversion engine.

Example:
    from_unit: g
    to_unit: kg
    factor: 0.001
    Meaning: 1 g = 0.001 kg
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import relationship

from src.utils.constants import FACTOR_PRECISION

from .base import BaseModel


class ConversionFactor(BaseModel):
    """
    Directed conversion factor between two units.

    Attributes:
        from_unit_id: Source unit
        to_unit_id: Target unit
        factor: Positive multiplier from source to target
    """

    __tablename__ = "conversion_factors"

    from_unit_id = Column(
        Integer, ForeignKey("units.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    to_unit_id = Column(
        Integer, ForeignKey("units.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    factor = Column(Numeric(*FACTOR_PRECISION), nullable=False)

    from_unit = relationship(
        "Unit", foreign_keys=[from_unit_id], back_populates="outgoing_factors"
    )
    to_unit = relationship("Unit", foreign_keys=[to_unit_id], back_populates="incoming_factors")

    __table_args__ = (
        UniqueConstraint("from_unit_id", "to_unit_id", name="uq_conversion_factor_pair"),
        CheckConstraint("factor > 0", name="ck_conversion_factor_positive"),
    )

    def __repr__(self) -> str:
        """String representation of conversion factor."""
        return (
            f"ConversionFactor(id={self.id}, "
            f"{self.from_unit_id} -> {self.to_unit_id} x {self.factor})"
        )

    def convert(self, quantity: Decimal) -> Decimal:
        """Convert quantity from from_unit to to_unit."""
        return quantity * self.factor

    def reverse_convert(self, quantity: Decimal) -> Decimal:
        """Convert quantity from to_unit back to from_unit."""
        return quantity / self.factor
