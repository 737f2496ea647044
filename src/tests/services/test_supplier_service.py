"""Tests for Supplier Service.

Tests cover:
- Create supplier with validation
- Get / list active suppliers
- Soft delete and the purchase dependency count
- Error handling for not found cases
"""

from decimal import Decimal

import pytest

from src.services import purchase_service, supplier_service
from src.services.database import session_scope
from src.services.exceptions import SupplierNotFound, ValidationError


class TestCreateSupplier:
    """Tests for create_supplier()."""

    def test_create_supplier_success(self, test_db):
        supplier = supplier_service.create_supplier(
            name="  Metro Cash & Carry ",
            contact="0300-1234567",
            email="orders@metro.example",
            address="Main Boulevard",
        )
        assert supplier["id"] is not None
        assert supplier["name"] == "Metro Cash & Carry"
        assert supplier["email"] == "orders@metro.example"
        assert supplier["uuid"]

    def test_name_required(self, test_db):
        with pytest.raises(ValidationError) as exc_info:
            supplier_service.create_supplier(name="   ")
        assert "Supplier name is required" in exc_info.value.errors

    def test_name_too_long(self, test_db):
        with pytest.raises(ValidationError):
            supplier_service.create_supplier(name="x" * 500)

    def test_invalid_email(self, test_db):
        with pytest.raises(ValidationError):
            supplier_service.create_supplier(name="Metro", email="not-an-email")


class TestSupplierQueries:
    """Tests for get_supplier() and list_suppliers()."""

    def test_get_supplier(self, sample_supplier):
        supplier = supplier_service.get_supplier(sample_supplier["id"])
        assert supplier["contact"] == "0300-0000000"

    def test_get_missing(self, test_db):
        with pytest.raises(SupplierNotFound):
            supplier_service.get_supplier(9999)

    def test_list_ordered_by_name(self, test_db):
        supplier_service.create_supplier(name="Zeta Foods")
        supplier_service.create_supplier(name="Alpha Mills")
        assert [s["name"] for s in supplier_service.list_suppliers()] == [
            "Alpha Mills",
            "Zeta Foods",
        ]


class TestSoftDeleteSupplier:
    """Tests for soft_delete_supplier() and check_supplier_dependencies()."""

    def test_soft_delete_hides_supplier(self, sample_supplier):
        supplier_service.soft_delete_supplier(sample_supplier["id"])
        assert supplier_service.list_suppliers() == []
        with pytest.raises(SupplierNotFound):
            supplier_service.get_supplier(sample_supplier["id"])

    def test_soft_delete_missing(self, test_db):
        with pytest.raises(SupplierNotFound):
            supplier_service.soft_delete_supplier(9999)

    def test_dependencies_count_trashed_purchases(self, sample_supplier, sugar, units):
        purchase = purchase_service.record_purchase(
            "2025-01-10",
            sample_supplier["id"],
            [{"item_id": sugar["id"], "unit_id": units["kg"], "quantity": 1, "unit_price": Decimal("40")}],
        )
        purchase_service.soft_delete_purchase(purchase["id"])

        with session_scope() as session:
            deps = supplier_service.check_supplier_dependencies(sample_supplier["id"], session)
        assert deps == {"purchases": 1}
