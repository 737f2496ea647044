"""
Unit reference model for the Bakery Ledger.

This model stores valid measurement units. Units are seeded on database
initialization and are never deleted while anything references them.
"""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class Unit(BaseModel):
    """
    Reference table for valid measurement units.

    Attributes:
        code: Unique lowercase unit code (e.g., "kg", "l")
        display_name: Human-readable name (e.g., "Kilogram")
        symbol: Display symbol (e.g., "kg", "L")
        category: Unit category: "weight", "volume" or "count"
        sort_order: Display order within category
    """

    __tablename__ = "units"

    code = Column(String(20), unique=True, nullable=False, index=True)
    display_name = Column(String(50), nullable=False)
    symbol = Column(String(20), unique=True, nullable=False)
    category = Column(String(20), nullable=False, index=True)
    sort_order = Column(Integer, nullable=False, default=0)

    outgoing_factors = relationship(
        "ConversionFactor",
        foreign_keys="ConversionFactor.from_unit_id",
        back_populates="from_unit",
    )
    incoming_factors = relationship(
        "ConversionFactor",
        foreign_keys="ConversionFactor.to_unit_id",
        back_populates="to_unit",
    )

    def __repr__(self) -> str:
        """Return string representation of Unit."""
        return f"Unit(code='{self.code}', category='{self.category}')"
