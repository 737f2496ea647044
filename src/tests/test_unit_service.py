"""
Tests for Unit Service functions.

Tests cover:
- get_all_units() returns the seeded units in order
- get_units_by_category() filters correctly
- get_unit() / get_unit_by_code() / is_valid_unit()
- create_unit() validation
- add_conversion_factor() insert, replace and validation
"""

from decimal import Decimal

import pytest

from src.services import unit_service
from src.services.exceptions import UnitNotFound, ValidationError


class TestUnitQueries:
    """Lookups against the seeded reference table."""

    def test_get_all_units(self, test_db):
        codes = [u.code for u in unit_service.get_all_units()]
        assert len(codes) == 6
        assert set(codes) == {"g", "kg", "ml", "l", "piece", "tray"}

    def test_get_units_by_category(self, test_db):
        weight = unit_service.get_units_by_category("weight")
        assert [u.code for u in weight] == ["g", "kg"]

    def test_get_unit_by_code_is_case_insensitive(self, test_db):
        assert unit_service.get_unit_by_code(" KG ").symbol == "kg"

    def test_get_unit_by_code_missing(self, test_db):
        assert unit_service.get_unit_by_code("cup") is None

    def test_get_unit(self, units):
        assert unit_service.get_unit(units["l"]).symbol == "L"

    def test_get_unit_missing(self, test_db):
        with pytest.raises(UnitNotFound):
            unit_service.get_unit(9999)

    def test_is_valid_unit(self, units):
        assert unit_service.is_valid_unit(units["ml"])
        assert not unit_service.is_valid_unit(9999)


class TestCreateUnit:
    """Tests for create_unit()."""

    def test_create_unit(self, test_db):
        unit = unit_service.create_unit("Box", "Box", "box", "count", sort_order=3)
        assert unit["code"] == "box"
        assert unit_service.get_unit_by_code("box").display_name == "Box"

    def test_unknown_category(self, test_db):
        with pytest.raises(ValidationError):
            unit_service.create_unit("cup", "Cup", "cup", "length")

    def test_duplicate_code(self, test_db):
        with pytest.raises(ValidationError):
            unit_service.create_unit("kg", "Kilo", "kilo", "weight")


class TestConversionFactors:
    """Tests for add_conversion_factor() and get_conversion_factors()."""

    def test_seeded_factors_listed(self, test_db):
        pairs = {(f["from_symbol"], f["to_symbol"]) for f in unit_service.get_conversion_factors()}
        assert pairs == {("g", "kg"), ("kg", "g"), ("ml", "L"), ("L", "ml")}

    def test_add_factor(self, units):
        row = unit_service.add_conversion_factor(units["tray"], units["piece"], "24")
        assert row["factor"] == Decimal("24")
        assert len(unit_service.get_conversion_factors()) == 5

    def test_add_factor_replaces_existing(self, units):
        unit_service.add_conversion_factor(units["tray"], units["piece"], 24)
        unit_service.add_conversion_factor(units["tray"], units["piece"], 12)

        factors = [
            f for f in unit_service.get_conversion_factors() if f["from_unit_id"] == units["tray"]
        ]
        assert len(factors) == 1
        assert factors[0]["factor"] == Decimal("12")

    @pytest.mark.parametrize("factor", [0, -1])
    def test_factor_must_be_positive(self, units, factor):
        with pytest.raises(ValidationError):
            unit_service.add_conversion_factor(units["tray"], units["piece"], factor)

    def test_same_unit_rejected(self, units):
        with pytest.raises(ValidationError):
            unit_service.add_conversion_factor(units["kg"], units["kg"], 1)

    def test_unknown_unit(self, units):
        with pytest.raises(UnitNotFound):
            unit_service.add_conversion_factor(units["kg"], 9999, 1)
