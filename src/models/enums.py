"""
Enumerations shared across models and services.

- ItemType: Kind of stocked item
- UnitCategory: Physical dimension of a measurement unit
"""

from enum import Enum


class ItemType(str, Enum):
    """
    Kind of stocked item.

    Values:
        RAW_MATERIAL: Flour, sugar, butter and other bulk ingredients
        ESSENCE: Flavorings and extracts, usually bought in small volumes
    """

    RAW_MATERIAL = "RAW_MATERIAL"
    ESSENCE = "ESSENCE"


class UnitCategory(str, Enum):
    """
    Physical dimension of a measurement unit.

    Conversion factors are normally stored only between units of the same
    category, but nothing prevents an item-agnostic cross-category factor.
    """

    WEIGHT = "weight"
    VOLUME = "volume"
    COUNT = "count"
