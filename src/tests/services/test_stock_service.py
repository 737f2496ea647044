"""Tests for the stock ledger.

Tests cover:
- Reading stock (present and absent)
- Increment with unit conversion and first-receipt row creation
- Unconditional decrement
- Atomic conditional decrement and InsufficientStock, including fractional
  quantities drained to exactly zero
- Strict conversion on stock paths
- Low-stock listing
"""

from decimal import Decimal

import pytest

from src.services import item_service, stock_service
from src.services.exceptions import (
    ConversionPathNotFound,
    InsufficientStock,
    ItemNotFound,
    ValidationError,
)


class TestGetStock:
    """Tests for get_stock()."""

    def test_existing_stock(self, sugar, units):
        stock = stock_service.get_stock(sugar["id"])
        assert stock["quantity"] == Decimal("10")
        assert stock["unit_id"] == units["kg"]
        assert stock["unit_symbol"] == "kg"

    def test_never_stocked_item_returns_none(self, vanilla):
        assert stock_service.get_stock(vanilla["id"]) is None


class TestIncrementStock:
    """Tests for increment_stock()."""

    def test_converts_into_stock_unit(self, sugar, units):
        """500 g added to a kg stock adds 0.5 kg."""
        stock = stock_service.increment_stock(sugar["id"], Decimal("500"), units["g"])
        assert stock["quantity"] == Decimal("10.5")
        assert stock["unit_id"] == units["kg"]

    def test_creates_row_in_base_unit(self, vanilla, units):
        """First receipt of 1 L vanilla creates a stock of 1000 ml."""
        stock = stock_service.increment_stock(vanilla["id"], Decimal("1"), units["l"])
        assert stock["unit_id"] == units["ml"]
        assert stock["quantity"] == Decimal("1000")
        assert stock_service.get_stock(vanilla["id"])["quantity"] == Decimal("1000")

    def test_unknown_item(self, units):
        with pytest.raises(ItemNotFound):
            stock_service.increment_stock(9999, Decimal("1"), units["kg"])

    @pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-1")])
    def test_rejects_non_positive(self, sugar, units, quantity):
        with pytest.raises(ValidationError):
            stock_service.increment_stock(sugar["id"], quantity, units["kg"])

    def test_strict_conversion_rejects_missing_path(self, sugar, units):
        """Pieces can't be added to a kg stock; the stock is untouched."""
        with pytest.raises(ConversionPathNotFound):
            stock_service.increment_stock(sugar["id"], Decimal("3"), units["piece"])
        assert stock_service.get_stock(sugar["id"])["quantity"] == Decimal("10")

    def test_non_strict_falls_back_to_raw_quantity(self, sugar, units, monkeypatch):
        """With strict conversions disabled the number is booked unconverted."""
        monkeypatch.setenv("BAKERY_LEDGER_STRICT_CONVERSIONS", "false")
        stock = stock_service.increment_stock(sugar["id"], Decimal("3"), units["piece"])
        assert stock["quantity"] == Decimal("13")


class TestDecrementStock:
    """Tests for decrement_stock() and decrement_stock_if_available()."""

    def test_unconditional_decrement(self, sugar, units):
        stock = stock_service.decrement_stock(sugar["id"], Decimal("2500"), units["g"])
        assert stock["quantity"] == Decimal("7.5")

    def test_unconditional_decrement_may_go_negative(self, sugar, units):
        stock = stock_service.decrement_stock(sugar["id"], Decimal("12"), units["kg"])
        assert stock["quantity"] == Decimal("-2")

    def test_unconditional_decrement_without_stock_row(self, vanilla, units):
        with pytest.raises(ItemNotFound):
            stock_service.decrement_stock(vanilla["id"], Decimal("1"), units["ml"])

    def test_conditional_decrement_success(self, sugar, units):
        stock = stock_service.decrement_stock_if_available(sugar["id"], Decimal("4"), units["kg"])
        assert stock["quantity"] == Decimal("6")

    def test_conditional_decrement_to_exactly_zero(self, sugar, units):
        stock = stock_service.decrement_stock_if_available(
            sugar["id"], Decimal("10000"), units["g"]
        )
        assert stock["quantity"] == Decimal("0")

    def test_conditional_decrement_refuses_overdraw(self, sugar, units):
        """Asking for 11 kg of 10 kg raises and leaves stock alone."""
        with pytest.raises(InsufficientStock) as exc_info:
            stock_service.decrement_stock_if_available(sugar["id"], Decimal("11"), units["kg"])

        assert exc_info.value.required == Decimal("11")
        assert exc_info.value.available == Decimal("10")
        assert "Sugar" in str(exc_info.value)
        assert stock_service.get_stock(sugar["id"])["quantity"] == Decimal("10")

    def test_conditional_decrement_without_stock_row(self, vanilla, units):
        with pytest.raises(InsufficientStock) as exc_info:
            stock_service.decrement_stock_if_available(vanilla["id"], Decimal("5"), units["ml"])
        assert exc_info.value.available == Decimal("0")

    def test_second_drain_sees_first(self, sugar, units):
        """Two 6 kg consumers against 10 kg: only the first succeeds."""
        stock_service.decrement_stock_if_available(sugar["id"], Decimal("6"), units["kg"])
        with pytest.raises(InsufficientStock):
            stock_service.decrement_stock_if_available(sugar["id"], Decimal("6"), units["kg"])
        assert stock_service.get_stock(sugar["id"])["quantity"] == Decimal("4")

    def test_fractional_drain_to_exactly_zero(self, units):
        """0.7 kg taken as 0.1 kg, 200 g and 0.4 kg leaves nothing behind."""
        salt = item_service.create_item(
            name="Salt",
            item_type="RAW_MATERIAL",
            base_unit_id=units["kg"],
            opening_stock=Decimal("0.7"),
        )

        stock_service.decrement_stock_if_available(salt["id"], Decimal("0.1"), units["kg"])
        stock = stock_service.decrement_stock_if_available(salt["id"], Decimal("200"), units["g"])
        assert stock["quantity"] == Decimal("0.4")

        stock = stock_service.decrement_stock_if_available(salt["id"], Decimal("0.4"), units["kg"])
        assert stock["quantity"] == Decimal("0")
        assert not stock["quantity"].is_signed()

    def test_fractional_overdraw_by_one_gram_refused(self, units):
        salt = item_service.create_item(
            name="Salt",
            item_type="RAW_MATERIAL",
            base_unit_id=units["kg"],
            opening_stock=Decimal("0.3"),
        )
        stock_service.decrement_stock_if_available(salt["id"], Decimal("0.1"), units["kg"])

        with pytest.raises(InsufficientStock):
            stock_service.decrement_stock_if_available(salt["id"], Decimal("201"), units["g"])
        assert stock_service.get_stock(salt["id"])["quantity"] == Decimal("0.2")


class TestLowStock:
    """Tests for get_low_stock_items()."""

    def test_lists_items_at_or_below_threshold(self, sugar, flour, units):
        # sugar 10 kg vs threshold 5; flour 3 kg vs threshold 2
        stock_service.decrement_stock(sugar["id"], Decimal("5"), units["kg"])

        low = stock_service.get_low_stock_items()

        assert [item["name"] for item in low] == ["Sugar"]
        assert low[0]["quantity"] == Decimal("5")
        assert low[0]["reorder_threshold"] == Decimal("5")

    def test_unstocked_items_not_listed(self, vanilla):
        assert stock_service.get_low_stock_items() == []

    def test_deleted_items_not_listed(self, sugar, units):
        stock_service.decrement_stock(sugar["id"], Decimal("9"), units["kg"])
        item_service.soft_delete_item(sugar["id"])
        assert stock_service.get_low_stock_items() == []
