"""Tests for service layer structured logging.

These tests verify that ledger and propagation operations emit structured
log entries with appropriate context information.
"""

import logging
from decimal import Decimal

from src.services import pricing_ledger_service, propagation_service, recipe_history_service
from src.services.logging_utils import get_service_logger, log_operation


class TestLoggingUtilities:
    """Tests for logging utility functions."""

    def test_get_service_logger_returns_logger(self):
        """get_service_logger returns a configured Logger instance."""
        logger = get_service_logger("test_module")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "rm_cost_tracker.services.test_module"

    def test_get_service_logger_extracts_module_name(self):
        """get_service_logger extracts module name from full path."""
        logger = get_service_logger("src.services.propagation_service")
        assert logger.name == "rm_cost_tracker.services.propagation_service"

    def test_log_operation_logs_at_info_level(self, caplog):
        """log_operation logs at INFO level by default."""
        logger = get_service_logger("test")

        with caplog.at_level(logging.INFO):
            log_operation(logger, operation="test_op", outcome="success", material_id=123)

        assert "test_op: success" in caplog.text
        assert caplog.records[0].levelno == logging.INFO

    def test_log_operation_logs_at_custom_level(self, caplog):
        """log_operation respects custom log level."""
        logger = get_service_logger("test")

        with caplog.at_level(logging.DEBUG):
            log_operation(logger, operation="debug_op", outcome="skipped", level=logging.DEBUG)

        assert "debug_op: skipped" in caplog.text
        assert caplog.records[0].levelno == logging.DEBUG

    def test_log_operation_includes_extra_context(self, caplog):
        """log_operation includes extra context in log records."""
        logger = get_service_logger("test")

        with caplog.at_level(logging.INFO):
            log_operation(
                logger,
                operation="context_test",
                outcome="success",
                recipe_id=42,
                new_price="12.0000",
            )

        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert record.operation == "context_test"
        assert record.outcome == "success"
        assert record.recipe_id == 42
        assert record.new_price == "12.0000"


class TestServiceLogging:
    """Service operations log through the rm_cost_tracker.services hierarchy."""

    def test_record_quote_logs_success(self, test_db, sample_material, sample_vendor, caplog):
        with caplog.at_level(logging.INFO, logger="rm_cost_tracker.services"):
            pricing_ledger_service.record_quote(
                material_id=sample_material["id"],
                vendor_id=sample_vendor["id"],
                vendor_name=None,
                quantity=1,
                unit_name="kg",
                price="10",
                recorded_by="alice",
            )

        records = [r for r in caplog.records if r.getMessage() == "record_quote: success"]
        assert len(records) == 1
        assert records[0].name == "rm_cost_tracker.services.pricing_ledger_service"
        assert records[0].material_id == sample_material["id"]
        assert records[0].propagated is True

    def test_propagate_logs_each_updated_recipe(self, test_db, costed_recipe, priced_material, caplog):
        with caplog.at_level(logging.INFO, logger="rm_cost_tracker.services"):
            propagation_service.propagate(priced_material["id"], Decimal("12"), actor="bob")

        updated = [r for r in caplog.records if r.getMessage() == "propagate: recipe_updated"]
        assert [r.recipe_id for r in updated] == [costed_recipe["id"]]
        assert updated[0].changed_items == 2

        summary = [r for r in caplog.records if r.getMessage() == "propagate: success"]
        assert len(summary) == 1
        assert summary[0].recipes_updated == 1
        assert summary[0].recipes_failed == 0

        assert "archive_recipe: success" in caplog.text

    def test_sync_no_change_logged(self, test_db, priced_material, caplog):
        with caplog.at_level(logging.INFO, logger="rm_cost_tracker.services"):
            pricing_ledger_service.sync_latest_price(priced_material["id"])

        assert "sync_latest_price: no_change" in caplog.text

    def test_clear_history_logged(self, test_db, caplog):
        with caplog.at_level(logging.INFO, logger="rm_cost_tracker.services"):
            recipe_history_service.clear_recipe_history()

        records = [r for r in caplog.records if r.getMessage() == "clear_recipe_history: success"]
        assert len(records) == 1
        assert records[0].deleted == 0
