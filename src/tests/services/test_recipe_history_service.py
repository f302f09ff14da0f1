"""Tests for Recipe History Service.

Snapshots are append-only: they are created, read and bulk-cleared, never
updated.
"""

import pytest
from datetime import datetime
from decimal import Decimal

from src.models import RecipeHistorySnapshot
from src.services import audit_log_service, pricing_ledger_service, recipe_history_service
from src.services.exceptions import RecipeNotFound, SnapshotImmutableError, ValidationError
from src.utils.constants import SNAPSHOT_REASON_MANUAL, SNAPSHOT_REASON_PRICE_CHANGE
from src.utils.datetime_utils import as_utc


def _quote(material, vendor, price):
    return pricing_ledger_service.record_quote(
        material_id=material["id"],
        vendor_id=vendor["id"],
        vendor_name=None,
        quantity=25,
        unit_name="kg",
        price=price,
        recorded_by="alice",
    )


def _ts(value: str) -> datetime:
    return as_utc(datetime.fromisoformat(value))


class TestArchiveRecipe:
    """Tests for archive_recipe()."""

    def test_manual_snapshot(self, test_db, costed_recipe):
        snapshot = recipe_history_service.archive_recipe(
            costed_recipe["id"], SNAPSHOT_REASON_MANUAL, "carol"
        )

        assert snapshot["id"] is not None
        assert snapshot["recipe_id"] == costed_recipe["id"]
        assert snapshot["recipe_code"] == "RC-001"
        assert snapshot["recipe_name"] == "Syrup Base"
        assert snapshot["reason"] == SNAPSHOT_REASON_MANUAL
        assert snapshot["changed_by"] == "carol"
        assert snapshot["total_raw_material_cost"] == Decimal("50")
        assert snapshot["price_per_unit"] == Decimal("5.00")

    def test_snapshot_captures_every_item(self, test_db, costed_recipe, priced_material):
        snapshot = recipe_history_service.archive_recipe(
            costed_recipe["id"], SNAPSHOT_REASON_MANUAL, "carol"
        )

        items = snapshot["items"]
        assert [i["id"] for i in items] == [i["id"] for i in costed_recipe["items"]]
        assert [Decimal(i["quantity"]) for i in items] == [Decimal("2"), Decimal("3")]
        assert items[0]["material_id"] == priced_material["id"]
        assert items[0]["material_code"] == priced_material["code"]
        assert items[0]["material_name"] == "Refined Sugar"
        assert items[0]["price_per_kg"] is None

    def test_unknown_reason(self, test_db, costed_recipe):
        with pytest.raises(ValidationError):
            recipe_history_service.archive_recipe(costed_recipe["id"], "whim", "carol")

        assert recipe_history_service.get_recipe_history(costed_recipe["id"]) == []

    def test_unknown_recipe(self, test_db):
        with pytest.raises(RecipeNotFound):
            recipe_history_service.archive_recipe(9999, SNAPSHOT_REASON_MANUAL, "carol")


class TestImmutability:
    """Snapshots cannot be modified once written."""

    def test_update_rejected_on_flush(self, test_db, costed_recipe):
        created = recipe_history_service.archive_recipe(
            costed_recipe["id"], SNAPSHOT_REASON_MANUAL, "carol"
        )

        session = test_db()
        snapshot = session.get(RecipeHistorySnapshot, created["id"])
        snapshot.total_raw_material_cost = Decimal("1")

        with pytest.raises(SnapshotImmutableError) as exc_info:
            session.flush()
        session.rollback()

        assert exc_info.value.snapshot_id == created["id"]
        stored = recipe_history_service.get_snapshot(created["id"])
        assert stored["total_raw_material_cost"] == Decimal("50")

    def test_later_propagation_leaves_snapshot_alone(
        self, test_db, costed_recipe, priced_material, sample_vendor
    ):
        _quote(priced_material, sample_vendor, "12")
        first = recipe_history_service.get_recipe_history(costed_recipe["id"])[0]

        _quote(priced_material, sample_vendor, "15")

        history = recipe_history_service.get_recipe_history(costed_recipe["id"])
        assert len(history) == 2
        # Newest first
        assert history[0]["total_raw_material_cost"] == Decimal("75")
        assert history[1]["id"] == first["id"]
        assert history[1]["total_raw_material_cost"] == Decimal("60")
        assert history[1]["items"] == first["items"]
        assert [Decimal(i["price"]) for i in history[1]["items"]] == [Decimal("12"), Decimal("12")]

    def test_change_logs_precede_snapshot(
        self, test_db, costed_recipe, priced_material, sample_vendor
    ):
        _quote(priced_material, sample_vendor, "12")

        snapshot = recipe_history_service.get_recipe_history(costed_recipe["id"])[0]
        assert snapshot["reason"] == SNAPSHOT_REASON_PRICE_CHANGE
        for log in audit_log_service.get_recipe_change_logs(costed_recipe["id"]):
            assert _ts(log["changed_at"]) <= _ts(snapshot["snapshot_at"])


class TestQueriesAndClear:
    """Tests for get_snapshot() and clear_recipe_history()."""

    def test_get_snapshot_missing(self, test_db):
        assert recipe_history_service.get_snapshot(9999) is None

    def test_clear_one_recipe(self, test_db, costed_recipe, priced_material, sample_vendor):
        from src.services import catalog_service

        other = catalog_service.create_recipe(code="RC-009", name="Other", batch_size=1)
        catalog_service.add_recipe_item(other["id"], priced_material["id"], quantity=1)
        _quote(priced_material, sample_vendor, "12")

        deleted = recipe_history_service.clear_recipe_history(costed_recipe["id"])

        assert deleted == 1
        assert recipe_history_service.get_recipe_history(costed_recipe["id"]) == []
        assert len(recipe_history_service.get_recipe_history(other["id"])) == 1

    def test_clear_all(self, test_db, costed_recipe, priced_material, sample_vendor):
        _quote(priced_material, sample_vendor, "12")
        recipe_history_service.archive_recipe(costed_recipe["id"], SNAPSHOT_REASON_MANUAL, "carol")

        assert recipe_history_service.clear_recipe_history() == 2
        assert test_db().query(RecipeHistorySnapshot).count() == 0
