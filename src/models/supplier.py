"""
Supplier model for vendors that items are purchased from.

Suppliers are soft deleted so historical purchases keep their reference.
"""

from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel, SoftDeleteMixin


class Supplier(SoftDeleteMixin, BaseModel):
    """
    Supplier model representing vendors where items are purchased.

    Attributes:
        name: Supplier name
        contact: Contact person or phone number
        email: Contact email
        address: Postal address
        notes: Optional notes

    Relationships:
        purchases: Purchases made from this supplier
    """

    __tablename__ = "suppliers"

    name = Column(String(200), nullable=False, index=True)
    contact = Column(String(100), nullable=True)
    email = Column(String(200), nullable=True)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    purchases = relationship("Purchase", back_populates="supplier")

    def __repr__(self) -> str:
        """String representation of supplier."""
        return f"Supplier(id={self.id}, name='{self.name}')"
