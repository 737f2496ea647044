"""Tests for Item Service.

Tests cover:
- Create item with validation (name, type, unit, SKU uniqueness)
- Alternate units and opening stock
- Get / list with type filter
- Update of editable fields only
- Soft delete and guarded hard delete
"""

from decimal import Decimal

import pytest

from src.services import item_service, recipe_service
from src.services.exceptions import (
    EntityInUse,
    ItemNotFound,
    SkuAlreadyExists,
    ValidationError,
)


class TestCreateItem:
    """Tests for create_item()."""

    def test_create_minimal(self, units):
        item = item_service.create_item(
            name="Butter", item_type="RAW_MATERIAL", base_unit_id=units["kg"]
        )
        assert item["id"] is not None
        assert item["name"] == "Butter"
        assert item["avg_price"] == Decimal("0")
        assert item["last_purchase_price"] == Decimal("0")
        assert item["stock"] is None
        assert item["unit_ids"] == [units["kg"]]
        assert item["base_unit"]["code"] == "kg"

    def test_name_is_trimmed(self, units):
        item = item_service.create_item(
            name="  Cocoa  ", item_type="RAW_MATERIAL", base_unit_id=units["kg"]
        )
        assert item["name"] == "Cocoa"

    def test_opening_stock_in_base_unit(self, sugar, units):
        assert sugar["stock"]["quantity"] == Decimal("10")
        assert sugar["stock"]["unit_id"] == units["kg"]

    def test_alternate_units_include_base_unit(self, sugar, units):
        assert sorted(sugar["unit_ids"]) == sorted([units["kg"], units["g"]])

    def test_missing_name(self, units):
        with pytest.raises(ValidationError) as exc_info:
            item_service.create_item(name="  ", item_type="ESSENCE", base_unit_id=units["ml"])
        assert "Item name is required" in exc_info.value.errors

    def test_invalid_type(self, units):
        with pytest.raises(ValidationError) as exc_info:
            item_service.create_item(name="Box", item_type="PACKAGING", base_unit_id=units["piece"])
        assert "Item type must be RAW_MATERIAL or ESSENCE" in exc_info.value.errors

    def test_collects_all_errors(self, units):
        with pytest.raises(ValidationError) as exc_info:
            item_service.create_item(
                name="",
                item_type="OTHER",
                base_unit_id=units["kg"],
                reorder_threshold=Decimal("-1"),
            )
        assert len(exc_info.value.errors) == 3

    def test_unknown_unit(self, test_db):
        with pytest.raises(ValidationError):
            item_service.create_item(name="Salt", item_type="RAW_MATERIAL", base_unit_id=9999)

    def test_duplicate_sku(self, sugar, units):
        with pytest.raises(SkuAlreadyExists):
            item_service.create_item(
                name="Brown Sugar",
                item_type="RAW_MATERIAL",
                base_unit_id=units["kg"],
                sku="RM-SUGAR",
            )

    def test_sku_reserved_while_in_trash(self, sugar, units):
        item_service.soft_delete_item(sugar["id"])
        with pytest.raises(SkuAlreadyExists):
            item_service.create_item(
                name="Sugar 2", item_type="RAW_MATERIAL", base_unit_id=units["kg"], sku="RM-SUGAR"
            )

    def test_blank_sku_stored_as_none(self, units):
        first = item_service.create_item(
            name="A", item_type="RAW_MATERIAL", base_unit_id=units["kg"], sku=" "
        )
        second = item_service.create_item(
            name="B", item_type="RAW_MATERIAL", base_unit_id=units["kg"], sku=""
        )
        assert first["sku"] is None
        assert second["sku"] is None


class TestQueries:
    """Tests for get_item() and list_items()."""

    def test_get_item(self, sugar):
        item = item_service.get_item(sugar["id"])
        assert item["name"] == "Sugar"
        assert item["stock"]["quantity"] == Decimal("10")

    def test_get_missing_item(self, test_db):
        with pytest.raises(ItemNotFound):
            item_service.get_item(9999)

    def test_list_sorted_by_name(self, sugar, flour, vanilla):
        names = [item["name"] for item in item_service.list_items()]
        assert names == ["Flour", "Sugar", "Vanilla Essence"]

    def test_list_filtered_by_type(self, sugar, vanilla):
        essences = item_service.list_items(item_type="ESSENCE")
        assert [item["name"] for item in essences] == ["Vanilla Essence"]


class TestUpdateItem:
    """Tests for update_item()."""

    def test_update_fields(self, sugar):
        updated = item_service.update_item(
            sugar["id"], {"location": "Store B", "reorder_threshold": "8"}
        )
        assert updated["location"] == "Store B"
        assert updated["reorder_threshold"] == Decimal("8")

    def test_prices_not_editable(self, sugar):
        with pytest.raises(ValidationError):
            item_service.update_item(sugar["id"], {"avg_price": Decimal("1")})

    def test_sku_clash(self, sugar, flour):
        with pytest.raises(SkuAlreadyExists):
            item_service.update_item(flour["id"], {"sku": "RM-SUGAR"})

    def test_keep_own_sku(self, sugar):
        updated = item_service.update_item(sugar["id"], {"sku": "RM-SUGAR", "name": "Sugar"})
        assert updated["sku"] == "RM-SUGAR"

    def test_replace_alternate_units(self, sugar, units):
        updated = item_service.update_item(sugar["id"], {}, unit_ids=[units["tray"]])
        assert sorted(updated["unit_ids"]) == sorted([units["kg"], units["tray"]])


class TestDeleteItem:
    """Tests for soft_delete_item() and delete_item_permanently()."""

    def test_soft_delete_hides_item(self, sugar):
        item_service.soft_delete_item(sugar["id"])
        with pytest.raises(ItemNotFound):
            item_service.get_item(sugar["id"])
        assert item_service.list_items() == []

    def test_soft_delete_twice(self, sugar):
        item_service.soft_delete_item(sugar["id"])
        with pytest.raises(ItemNotFound):
            item_service.soft_delete_item(sugar["id"])

    def test_hard_delete_unreferenced(self, sugar):
        item_service.delete_item_permanently(sugar["id"])
        with pytest.raises(ItemNotFound):
            item_service.get_item(sugar["id"])

    def test_hard_delete_blocked_by_recipe(self, sponge_recipe, sugar):
        with pytest.raises(EntityInUse) as exc_info:
            item_service.delete_item_permanently(sugar["id"])
        assert exc_info.value.dependencies["recipes"] == 1
        assert exc_info.value.http_status_code == 409
        assert item_service.get_item(sugar["id"])["name"] == "Sugar"

    def test_hard_delete_allowed_after_recipe_purged(self, sponge_recipe, sugar):
        from src.services import trash_service

        recipe_service.soft_delete_recipe(sponge_recipe["id"])
        trash_service.purge("recipes", [sponge_recipe["id"]])
        item_service.delete_item_permanently(sugar["id"])
