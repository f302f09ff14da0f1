"""
Command-line entry point for the Raw Material Cost Tracker.

No UI required - designed for scripted and operational use.

Usage Examples:
    # Create the database tables
    rm-cost-tracker init-db

    # Record a vendor quote (propagates into recipes when the price changes)
    rm-cost-tracker record-quote 7 3 12.50 --quantity 25 --unit kg --by alice

    # Re-apply the newest quote to a material and its recipes
    rm-cost-tracker sync-price 7

    # Show quotes and price history
    rm-cost-tracker list-quotes 7
    rm-cost-tracker price-history 7

    # Show or clear recipe cost history
    rm-cost-tracker recipe-history 45
    rm-cost-tracker clear-history --recipe 45 --yes
"""

import argparse
import logging
import sys
from typing import List, Optional

from src.services import pricing_ledger_service, recipe_history_service
from src.services.database import initialize_app_database
from src.services.exceptions import ServiceError
from src.utils.constants import APP_NAME, APP_VERSION, SYSTEM_ACTOR


def _format_price(value) -> str:
    return "-" if value is None else str(value)


def init_db_cmd() -> int:
    """Database is initialized before every command; nothing else to do."""
    print("Database ready.")
    return 0


def record_quote_cmd(args) -> int:
    """Record a vendor quote."""
    result = pricing_ledger_service.record_quote(
        material_id=args.material_id,
        vendor_id=args.vendor_id,
        vendor_name=args.vendor_name,
        quantity=args.quantity,
        unit_name=args.unit,
        price=args.price,
        recorded_by=args.by,
        brand_name=args.brand,
    )
    print(f"Recorded quote {result['id']} at {_format_price(result['price'])}")
    if result["price_changed"]:
        print("  Vendor price changed; change log written")

    propagation = result["propagation"]
    if propagation is None:
        print("  Current price unchanged; no recipes updated")
    else:
        print(f"  Recipes updated: {len(propagation['updated_recipe_ids'])}")
        if propagation["failed_recipe_ids"]:
            print(f"  Recipes FAILED: {propagation['failed_recipe_ids']}")
            return 1
    return 0


def sync_price_cmd(args) -> int:
    """Re-apply the newest quote to a material."""
    result = pricing_ledger_service.sync_latest_price(args.material_id, actor=args.by)
    if result["price"] is None:
        print("No quotes recorded for this material.")
    elif not result["changed"]:
        print(f"Already at latest price {_format_price(result['price'])}")
    else:
        print(f"Synced to {_format_price(result['price'])}")
        print(f"  Recipes updated: {len(result['updated_recipe_ids'])}")
        if result["failed_recipe_ids"]:
            print(f"  Recipes FAILED: {result['failed_recipe_ids']}")
            return 1
    return 0


def list_quotes_cmd(args) -> int:
    """List quotes newest first."""
    quotes = pricing_ledger_service.list_quotes(args.material_id, vendor_id=args.vendor)
    if not quotes:
        print("No quotes.")
        return 0
    for quote in quotes:
        print(
            f"{quote['effective_date']}  {quote['vendor_name']:<30} "
            f"{quote['quantity']} {quote['unit_name'] or ''} @ {_format_price(quote['price'])}"
        )
    return 0


def price_history_cmd(args) -> int:
    """Show every quote with the change from the previous one."""
    history = pricing_ledger_service.get_price_history(args.material_id)
    if not history:
        print("No price history.")
        return 0
    for entry in history:
        marker = ""
        if entry["is_price_change"]:
            marker = f"  (was {_format_price(entry['previous_price'])})"
        print(
            f"{entry['effective_date']}  {entry['vendor_name']:<30} "
            f"{_format_price(entry['price'])}{marker}"
        )
    return 0


def recipe_history_cmd(args) -> int:
    """Show a recipe's cost snapshots newest first."""
    snapshots = recipe_history_service.get_recipe_history(args.recipe_id)
    if not snapshots:
        print("No history.")
        return 0
    for snapshot in snapshots:
        print(
            f"{snapshot['snapshot_at']}  {snapshot['reason']:<14} "
            f"total={_format_price(snapshot['total_raw_material_cost'])} "
            f"per_unit={_format_price(snapshot['price_per_unit'])} "
            f"by={snapshot['changed_by']}"
        )
    return 0


def clear_history_cmd(args) -> int:
    """Bulk delete recipe history."""
    if not args.yes:
        print("Refusing to clear history without --yes")
        return 1
    deleted = recipe_history_service.clear_recipe_history(recipe_id=args.recipe)
    print(f"Deleted {deleted} snapshot(s)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="rm-cost-tracker",
        description=f"{APP_NAME} {APP_VERSION}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  rm-cost-tracker record-quote 7 3 12.50 --quantity 25 --unit kg --by alice
  rm-cost-tracker sync-price 7
  rm-cost-tracker recipe-history 45
""",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("init-db", help="Create database tables")

    record_parser = subparsers.add_parser("record-quote", help="Record a vendor price quote")
    record_parser.add_argument("material_id", type=int, help="Material ID")
    record_parser.add_argument("vendor_id", type=int, help="Vendor ID")
    record_parser.add_argument("price", help="Quoted price")
    record_parser.add_argument("--quantity", default="1", help="Quoted quantity (default: 1)")
    record_parser.add_argument("--unit", help="Unit of the quoted quantity")
    record_parser.add_argument("--vendor-name", dest="vendor_name", help="Vendor name override")
    record_parser.add_argument("--brand", help="Brand quoted")
    record_parser.add_argument("--by", required=True, help="User recording the quote")

    sync_parser = subparsers.add_parser("sync-price", help="Apply the newest quote to a material")
    sync_parser.add_argument("material_id", type=int, help="Material ID")
    sync_parser.add_argument("--by", default=SYSTEM_ACTOR, help="Actor name (default: system)")

    list_parser = subparsers.add_parser("list-quotes", help="List quotes newest first")
    list_parser.add_argument("material_id", type=int, help="Material ID")
    list_parser.add_argument("--vendor", type=int, help="Only quotes from this vendor ID")

    history_parser = subparsers.add_parser("price-history", help="Show material price history")
    history_parser.add_argument("material_id", type=int, help="Material ID")

    recipe_parser = subparsers.add_parser("recipe-history", help="Show recipe cost snapshots")
    recipe_parser.add_argument("recipe_id", type=int, help="Recipe ID")

    clear_parser = subparsers.add_parser("clear-history", help="Delete recipe cost snapshots")
    clear_parser.add_argument("--recipe", type=int, help="Only this recipe ID (default: all)")
    clear_parser.add_argument("--yes", action="store_true", help="Confirm deletion")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    # Initialize database (required for all operations)
    initialize_app_database()

    commands = {
        "init-db": lambda: init_db_cmd(),
        "record-quote": lambda: record_quote_cmd(args),
        "sync-price": lambda: sync_price_cmd(args),
        "list-quotes": lambda: list_quotes_cmd(args),
        "price-history": lambda: price_history_cmd(args),
        "recipe-history": lambda: recipe_history_cmd(args),
        "clear-history": lambda: clear_history_cmd(args),
    }

    try:
        return commands[args.command]()
    except ServiceError as e:
        print(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
