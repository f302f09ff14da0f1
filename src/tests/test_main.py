"""
Tests for the rm-cost-tracker command-line interface.

Tests cover:
- Each subcommand's output
- Exit codes, including service errors
"""

from decimal import Decimal

import pytest

import src.main as cli
from src.services import catalog_service, recipe_history_service


@pytest.fixture
def cli_db(test_db, monkeypatch):
    """Run CLI commands against the test database."""
    monkeypatch.setattr(cli, "initialize_app_database", lambda: None)
    return test_db


class TestMainCLI:
    """Tests for main()."""

    def test_no_command_shows_help(self, cli_db, capsys):
        assert cli.main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_init_db(self, cli_db, capsys):
        assert cli.main(["init-db"]) == 0
        assert "Database ready" in capsys.readouterr().out

    def test_record_quote_propagates(self, cli_db, costed_recipe, priced_material, sample_vendor, capsys):
        result = cli.main(
            [
                "record-quote",
                str(priced_material["id"]),
                str(sample_vendor["id"]),
                "12",
                "--quantity",
                "25",
                "--unit",
                "kg",
                "--by",
                "alice",
            ]
        )

        out = capsys.readouterr().out
        assert result == 0
        assert "Recorded quote" in out
        assert "Recipes updated: 1" in out
        recipe = catalog_service.get_recipe(costed_recipe["id"])
        assert recipe["total_raw_material_cost"] == Decimal("60")

    def test_record_quote_validation_error(self, cli_db, sample_material, sample_vendor, capsys):
        result = cli.main(
            ["record-quote", str(sample_material["id"]), str(sample_vendor["id"]), "-3", "--by", "alice"]
        )

        assert result == 1
        assert "ERROR: Validation failed" in capsys.readouterr().out

    def test_record_quote_unknown_material(self, cli_db, sample_vendor, capsys):
        result = cli.main(["record-quote", "999", str(sample_vendor["id"]), "5", "--by", "alice"])

        assert result == 1
        assert "Material with ID 999 not found" in capsys.readouterr().out

    def test_sync_price_noop(self, cli_db, priced_material, capsys):
        assert cli.main(["sync-price", str(priced_material["id"])]) == 0
        assert "Already at latest price" in capsys.readouterr().out

    def test_sync_price_without_quotes(self, cli_db, sample_material, capsys):
        assert cli.main(["sync-price", str(sample_material["id"])]) == 0
        assert "No quotes recorded" in capsys.readouterr().out

    def test_list_quotes_and_history(self, cli_db, priced_material, sample_vendor, capsys):
        cli.main(["record-quote", str(priced_material["id"]), str(sample_vendor["id"]), "12", "--by", "bob"])
        capsys.readouterr()

        assert cli.main(["list-quotes", str(priced_material["id"])]) == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 2
        assert "Acme Chemicals" in lines[0]

        assert cli.main(["price-history", str(priced_material["id"])]) == 0
        out = capsys.readouterr().out
        assert "(was 10.0000)" in out

    def test_recipe_history(self, cli_db, costed_recipe, priced_material, sample_vendor, capsys):
        cli.main(["record-quote", str(priced_material["id"]), str(sample_vendor["id"]), "12", "--by", "bob"])
        capsys.readouterr()

        assert cli.main(["recipe-history", str(costed_recipe["id"])]) == 0
        out = capsys.readouterr().out
        assert "price_change" in out
        assert "per_unit=6.00" in out

    def test_clear_history_requires_confirmation(self, cli_db, costed_recipe, capsys):
        recipe_history_service.archive_recipe(costed_recipe["id"], "manual", "carol")

        assert cli.main(["clear-history"]) == 1
        assert len(recipe_history_service.get_recipe_history(costed_recipe["id"])) == 1

        assert cli.main(["clear-history", "--recipe", str(costed_recipe["id"]), "--yes"]) == 0
        assert "Deleted 1 snapshot(s)" in capsys.readouterr().out
        assert recipe_history_service.get_recipe_history(costed_recipe["id"]) == []
