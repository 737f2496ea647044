"""Pytest configuration and fixtures for service layer tests."""

from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session

from src.models.base import Base
from src.utils.config import reset_config


@pytest.fixture(autouse=True)
def fresh_config():
    """Drop the cached Config so env overrides apply per test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables and seeds the default units
    3. Provides the database to the test
    4. Drops all tables after the test completes
    """
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)

    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    import src.services.database as db_module

    original_get_session = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    db_module.seed_units()

    yield Session

    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    db_module.get_session_factory = original_get_session


@pytest.fixture
def units(test_db):
    """Map of seeded unit code -> unit id."""
    from src.services import unit_service

    return {unit.code: unit.id for unit in unit_service.get_all_units()}


@pytest.fixture
def sample_supplier(test_db):
    """Provide a sample supplier for tests."""
    from src.services import supplier_service

    return supplier_service.create_supplier(name="Test Supplier", contact="0300-0000000")


@pytest.fixture
def sugar(units):
    """Sugar tracked in kg with 10 kg on hand and no purchase history."""
    from src.services import item_service

    return item_service.create_item(
        name="Sugar",
        item_type="RAW_MATERIAL",
        base_unit_id=units["kg"],
        sku="RM-SUGAR",
        reorder_threshold=Decimal("5"),
        unit_ids=[units["g"]],
        opening_stock=Decimal("10"),
    )


@pytest.fixture
def flour(test_db, units):
    """Flour tracked in kg with 3 kg on hand, priced at 80 per kg."""
    from src.services import item_service
    from src.models import Item

    item = item_service.create_item(
        name="Flour",
        item_type="RAW_MATERIAL",
        base_unit_id=units["kg"],
        reorder_threshold=Decimal("2"),
        opening_stock=Decimal("3"),
    )
    session = test_db()
    session.query(Item).filter(Item.id == item["id"]).update(
        {"avg_price": Decimal("80"), "last_purchase_price": Decimal("80")}
    )
    session.commit()
    return item


@pytest.fixture
def vanilla(test_db, units):
    """Vanilla essence tracked in ml, never stocked, last bought at 2 per ml."""
    from src.services import item_service
    from src.models import Item

    item = item_service.create_item(
        name="Vanilla Essence",
        item_type="ESSENCE",
        base_unit_id=units["ml"],
    )
    session = test_db()
    session.query(Item).filter(Item.id == item["id"]).update(
        {"last_purchase_price": Decimal("2")}
    )
    session.commit()
    return item


@pytest.fixture
def sponge_recipe(units, flour, sugar):
    """Sponge: 1 kg yield from 500 g flour and 250 g sugar."""
    from src.services import recipe_service

    return recipe_service.create_recipe(
        name="Vanilla Sponge",
        yield_quantity=Decimal("1"),
        yield_unit_id=units["kg"],
        ingredients=[
            {"item_id": flour["id"], "quantity": Decimal("500"), "unit_id": units["g"]},
            {"item_id": sugar["id"], "quantity": Decimal("250"), "unit_id": units["g"]},
        ],
    )
