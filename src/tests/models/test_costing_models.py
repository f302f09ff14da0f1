"""Tests for costing models and their pure calculation helpers."""

import pytest
from decimal import Decimal

from src.models import (
    Material,
    Recipe,
    RecipeHistorySnapshot,
    RecipeLineItem,
    VendorQuote,
)
from src.models.recipe import calculate_line_totals, calculate_price_per_unit


class TestCalculateLineTotals:
    """Tests for calculate_line_totals()."""

    def test_without_yield(self):
        total, per_kg = calculate_line_totals(Decimal("2"), Decimal("12"))
        assert total == Decimal("24")
        assert per_kg is None

    def test_with_yield(self):
        total, per_kg = calculate_line_totals(Decimal("2"), Decimal("12"), Decimal("4"))
        assert total == Decimal("24")
        assert per_kg == Decimal("6")

    def test_zero_yield_has_no_per_kg(self):
        _, per_kg = calculate_line_totals(Decimal("2"), Decimal("12"), Decimal("0"))
        assert per_kg is None

    def test_missing_price_counts_as_zero(self):
        total, _ = calculate_line_totals(Decimal("2"), None)
        assert total == Decimal("0")

    def test_result_scale(self):
        total, per_kg = calculate_line_totals(Decimal("1"), Decimal("10"), Decimal("3"))
        assert total == Decimal("10.0000")
        assert per_kg == Decimal("3.3333")

    def test_total_is_exact_product(self):
        total, _ = calculate_line_totals(Decimal("0.333"), Decimal("0.1234"))
        assert total == Decimal("0.0410922")


class TestCalculatePricePerUnit:
    """Tests for calculate_price_per_unit()."""

    @pytest.mark.parametrize(
        "total,batch,expected",
        [
            ("60", "10", "6.00"),
            ("10.02", "8", "1.25"),
            ("10.04", "8", "1.26"),
            ("5", "3", "1.67"),
            ("60", "0", "0.00"),
            ("60", None, "0.00"),
        ],
    )
    def test_values(self, total, batch, expected):
        batch_size = Decimal(batch) if batch is not None else None
        assert calculate_price_per_unit(Decimal(total), batch_size) == Decimal(expected)

    def test_two_decimal_places(self):
        assert calculate_price_per_unit(Decimal("60"), Decimal("10")).as_tuple().exponent == -2


class TestRecipeAggregates:
    """Recipe.recalculate_aggregates() sums every item it is given."""

    def test_sum_of_items(self):
        recipe = Recipe(code="R1", name="Test", batch_size=Decimal("10"))
        items = [
            RecipeLineItem(quantity=Decimal("2"), price=Decimal("12")),
            RecipeLineItem(quantity=Decimal("3"), price=Decimal("12")),
        ]
        for item in items:
            item.recalculate_totals()

        recipe.recalculate_aggregates(items)

        assert recipe.total_raw_material_cost == Decimal("60")
        assert recipe.price_per_unit == Decimal("6.00")

    def test_empty_recipe(self):
        recipe = Recipe(code="R2", name="Empty", batch_size=Decimal("10"))
        recipe.recalculate_aggregates([])

        assert recipe.total_raw_material_cost == Decimal("0")
        assert recipe.price_per_unit == Decimal("0.00")

    def test_apply_price_rederives_totals(self):
        item = RecipeLineItem(quantity=Decimal("3"), yield_quantity=Decimal("2"))
        item.apply_price(Decimal("10"))

        assert item.price == Decimal("10")
        assert item.total_price == Decimal("30")
        assert item.price_per_kg == Decimal("15")


class TestModelShape:
    """Append-only models carry no updated_at column."""

    @pytest.mark.parametrize("model", [VendorQuote, RecipeHistorySnapshot])
    def test_append_only_models(self, model):
        assert "updated_at" not in model.__table__.columns

    def test_mutable_models_have_updated_at(self):
        assert "updated_at" in Material.__table__.columns
        assert "updated_at" in Recipe.__table__.columns

    def test_recipe_is_versioned(self):
        assert Recipe.__mapper__.version_id_col is Recipe.__table__.c.version


class TestPersistence:
    """Round trips through the database."""

    def test_material_to_dict(self, test_db, sample_material):
        assert sample_material["code"] == "RM00001"
        assert sample_material["current_price"] is None
        assert sample_material["is_deleted"] is False
        assert isinstance(sample_material["created_at"], str)

    def test_snapshot_items_parse(self, test_db):
        snapshot = RecipeHistorySnapshot(items_data='[{"id": 1, "price": "12.0000"}]')
        assert snapshot.get_items_data() == [{"id": 1, "price": "12.0000"}]

    def test_exact_line_total_survives_round_trip(self, test_db, sample_material, sample_vendor):
        from src.services import catalog_service, pricing_ledger_service

        pricing_ledger_service.record_quote(
            material_id=sample_material["id"],
            vendor_id=sample_vendor["id"],
            vendor_name=None,
            quantity=1,
            unit_name="kg",
            price="0.1234",
            recorded_by="alice",
        )
        recipe = catalog_service.create_recipe(code="RC-X", name="Fine", batch_size=1)
        catalog_service.add_recipe_item(recipe["id"], sample_material["id"], quantity=Decimal("0.333"))

        stored = catalog_service.get_recipe(recipe["id"])
        assert stored["items"][0]["total_price"] == Decimal("0.0410922")
        assert stored["total_raw_material_cost"] == Decimal("0.0410922")

    def test_snapshot_invalid_json(self):
        snapshot = RecipeHistorySnapshot(items_data="not json")
        assert snapshot.get_items_data() == []
