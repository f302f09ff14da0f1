"""Pytest configuration and fixtures for service layer tests."""

from decimal import Decimal

import pytest
from sqlalchemy.orm import scoped_session, sessionmaker

from src.models.base import Base
from src.services.database import create_database_engine


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Provides the database to the test
    4. Drops all tables after the test completes
    """
    import src.models  # noqa: F401

    # Same engine setup as the app (pragmas, explicit BEGIN for savepoints)
    engine = create_database_engine("sqlite:///:memory:")

    # Create all tables
    Base.metadata.create_all(engine)

    # Create session factory
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    import src.services.database as db_module

    original_get_session = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    # Provide database to test
    yield Session

    # Cleanup
    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    # Restore original session factory
    db_module.get_session_factory = original_get_session


@pytest.fixture(scope="function")
def sample_vendor(test_db):
    """Provide a sample vendor for tests."""
    from src.services import catalog_service

    return catalog_service.create_vendor(name="Acme Chemicals", contact_person="R. Ortiz")


@pytest.fixture(scope="function")
def second_vendor(test_db):
    """Provide a second vendor for tests."""
    from src.services import catalog_service

    return catalog_service.create_vendor(name="Bulk Supply Co")


@pytest.fixture(scope="function")
def sample_material(test_db):
    """Provide an unpriced material for tests."""
    from src.services import catalog_service

    return catalog_service.create_material(name="Refined Sugar", unit_name="kg")


@pytest.fixture(scope="function")
def priced_material(test_db, sample_material, sample_vendor):
    """Provide a material with one quote at 10.00 from sample_vendor."""
    from src.services import pricing_ledger_service

    pricing_ledger_service.record_quote(
        material_id=sample_material["id"],
        vendor_id=sample_vendor["id"],
        vendor_name=None,
        quantity=25,
        unit_name="kg",
        price=Decimal("10.00"),
        recorded_by="alice",
    )
    return sample_material


@pytest.fixture(scope="function")
def costed_recipe(test_db, priced_material):
    """Provide a recipe using priced_material twice (quantities 2 and 3, batch 10).

    Line totals are 20 and 30, so total cost is 50.00 and price per unit 5.00.
    """
    from src.services import catalog_service

    recipe = catalog_service.create_recipe(code="RC-001", name="Syrup Base", batch_size=10)
    catalog_service.add_recipe_item(recipe["id"], priced_material["id"], quantity=2)
    catalog_service.add_recipe_item(recipe["id"], priced_material["id"], quantity=3)
    return catalog_service.get_recipe(recipe["id"])
