"""Tests for the unit conversion engine.

Tests cover:
- Identity conversion short-circuit
- Direct and inverse factor lookup
- Round trips through stored factors
- Fail-open fallback with a warning
- Strict mode raising ConversionPathNotFound
- Decimal coercion of user input
"""

import logging
from decimal import Decimal

import pytest

from src.services import unit_service
from src.services.exceptions import ConversionPathNotFound, ValidationError
from src.services.unit_converter import (
    ConversionResult,
    convert_quantity,
    find_conversion_factor,
    to_decimal,
    try_convert,
)


class TestIdentity:
    """Converting a unit to itself."""

    def test_same_unit_returns_quantity_unchanged(self, units):
        """convert(q, u, u) == q, exactly."""
        assert convert_quantity(Decimal("12.345"), units["kg"], units["kg"]) == Decimal("12.345")

    def test_same_unit_needs_no_factor(self, units):
        """Count units have no stored factor to themselves but still convert."""
        result = try_convert(Decimal("7"), units["piece"], units["piece"])
        assert result == ConversionResult(Decimal("7"), True, units["piece"], units["piece"])

    def test_identity_factor_is_one(self, units):
        assert find_conversion_factor(units["g"], units["g"]) == Decimal("1")


class TestStoredFactors:
    """Direct and inverse lookups against the seeded table."""

    def test_grams_to_kilograms(self, units):
        """2000 g is 2 kg."""
        assert convert_quantity(Decimal("2000"), units["g"], units["kg"]) == Decimal("2")

    def test_liters_to_milliliters(self, units):
        assert convert_quantity(Decimal("1.5"), units["l"], units["ml"]) == Decimal("1500")

    def test_round_trip(self, units):
        """2000 g -> kg -> g returns 2000 g."""
        kg = convert_quantity(Decimal("2000"), units["g"], units["kg"])
        back = convert_quantity(kg, units["kg"], units["g"])
        assert back == Decimal("2000")

    def test_inverse_factor_used_when_only_one_direction_stored(self, units):
        """With only tray->piece stored, piece->tray divides by the factor."""
        unit_service.add_conversion_factor(units["tray"], units["piece"], Decimal("24"))

        assert convert_quantity(Decimal("2"), units["tray"], units["piece"]) == Decimal("48")
        assert convert_quantity(Decimal("48"), units["piece"], units["tray"]) == Decimal("2")

    def test_find_factor_inverse(self, units):
        unit_service.add_conversion_factor(units["tray"], units["piece"], Decimal("24"))
        factor = find_conversion_factor(units["piece"], units["tray"])
        assert factor == pytest.approx(Decimal("1") / Decimal("24"))

    def test_no_multi_hop_chaining(self, units):
        """g -> kg and kg -> tray exist, but g -> tray is not derived."""
        unit_service.add_conversion_factor(units["kg"], units["tray"], Decimal("2"))
        result = try_convert(Decimal("1000"), units["g"], units["tray"])
        assert result.converted is False


class TestMissingPath:
    """Behavior when no direct or inverse factor exists."""

    def test_fail_open_returns_input(self, units):
        """Weight to count without a factor returns the original number."""
        assert convert_quantity(Decimal("5"), units["kg"], units["piece"]) == Decimal("5")

    def test_fail_open_logs_warning(self, units, caplog):
        with caplog.at_level(logging.WARNING):
            convert_quantity(Decimal("5"), units["kg"], units["piece"])
        assert (
            f"No conversion found from unit {units['kg']} to unit {units['piece']}" in caplog.text
        )

    def test_try_convert_reports_fallback(self, units):
        result = try_convert(Decimal("5"), units["kg"], units["piece"])
        assert result.converted is False
        assert result.value == Decimal("5")
        assert result.to_unit_id == units["piece"]

    def test_strict_raises(self, units):
        with pytest.raises(ConversionPathNotFound) as exc_info:
            convert_quantity(Decimal("5"), units["kg"], units["piece"], strict=True)
        assert exc_info.value.from_unit_id == units["kg"]
        assert exc_info.value.to_unit_id == units["piece"]
        assert exc_info.value.http_status_code == 422

    def test_find_factor_returns_none(self, units):
        assert find_conversion_factor(units["ml"], units["kg"]) is None


class TestToDecimal:
    """Coercion of user-entered numbers."""

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_int_and_string(self):
        assert to_decimal(3) == Decimal("3")
        assert to_decimal("2.50") == Decimal("2.50")

    @pytest.mark.parametrize("value", [None, True, "abc", "NaN", "Infinity"])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValidationError):
            to_decimal(value)
