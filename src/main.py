"""
Command-line entry point for the Bakery Ledger.

Usage:
    bakery-ledger init-db [--reset]
    bakery-ledger convert 2000 g kg
    bakery-ledger scale 3 2 kg
    bakery-ledger plan 3 2 kg --labor 100 --overhead 50 [--commit]
    bakery-ledger low-stock
    bakery-ledger stats
"""

import argparse
import logging
import sys
from decimal import Decimal
from typing import List, Optional

from src.services import (
    dashboard_service,
    production_service,
    recipe_service,
    stock_service,
    unit_service,
)
from src.services.database import close_connections, initialize_app_database, reset_database
from src.services.exceptions import ServiceError, UnitNotFound
from src.services.unit_converter import try_convert
from src.utils.config import configure_logging
from src.utils.constants import APP_NAME, APP_VERSION

logger = logging.getLogger(__name__)


def _fmt(value: Decimal) -> str:
    """Plain notation without trailing zeros (1000, 2.5)."""
    return f"{value.normalize():f}"


def _unit_id(code: str) -> int:
    unit = unit_service.get_unit_by_code(code)
    if unit is None:
        raise UnitNotFound(code)
    return unit.id


def cmd_init_db(args) -> int:
    """Create tables and seed the default units."""
    if args.reset:
        reset_database(confirm=True)
        print("Database reset")
        return 0
    initialize_app_database()
    print("Database initialized")
    return 0


def cmd_convert(args) -> int:
    """Convert a quantity between two unit codes."""
    result = try_convert(args.quantity, _unit_id(args.from_unit), _unit_id(args.to_unit))
    if not result.converted:
        print(f"No conversion found from {args.from_unit} to {args.to_unit}")
        return 1
    print(f"{args.quantity} {args.from_unit} = {_fmt(result.value)} {args.to_unit}")
    return 0


def _print_scaled(scaled: dict) -> None:
    print(
        f"{scaled['recipe_name']}: {_fmt(scaled['original_yield'])} "
        f"{scaled['original_unit']} x {_fmt(scaled['scaling_factor'])}"
    )
    for ingredient in scaled["scaled_ingredients"]:
        print(
            f"  {ingredient['item_name']}: {_fmt(ingredient['scaled_quantity'])} "
            f"{ingredient['unit_symbol']}"
        )


def cmd_scale(args) -> int:
    """Print a recipe's ingredients scaled to a desired yield."""
    scaled = recipe_service.scale_recipe(args.recipe_id, args.yield_quantity, _unit_id(args.unit))
    _print_scaled(scaled)
    return 0


def cmd_plan(args) -> int:
    """Check stock for a scaled recipe and cost it; optionally commit."""
    unit_id = _unit_id(args.unit)
    scaled = recipe_service.scale_recipe(args.recipe_id, args.yield_quantity, unit_id)
    _print_scaled(scaled)

    plan = production_service.plan_production(
        scaled["scaled_ingredients"],
        labor_cost=args.labor,
        overhead_cost=args.overhead,
        produced_quantity=args.yield_quantity,
    )
    if not plan["can_produce"]:
        print("Insufficient stock:")
        for shortage in plan["shortages"]:
            print(
                f"  {shortage['item_name']}: required {_fmt(shortage['required'])} "
                f"{shortage['required_unit']}, available {_fmt(shortage['available'])} "
                f"{shortage['available_unit']}"
            )
        return 1

    print(f"Ingredient cost: {plan['ingredient_cost']:.2f}")
    print(f"Total cost:      {plan['total_cost']:.2f}")
    print(f"Cost per unit:   {plan['cost_per_unit']:.2f}")

    if args.commit:
        production = production_service.commit_production(
            recipe_id=args.recipe_id,
            produced_quantity=args.yield_quantity,
            produced_unit_id=unit_id,
            scaled_ingredients=scaled["scaled_ingredients"],
            labor_cost=args.labor,
            overhead_cost=args.overhead,
        )
        print(f"Recorded production #{production['id']}")
    return 0


def cmd_low_stock(args) -> int:
    """List items at or below their reorder threshold."""
    items = stock_service.get_low_stock_items()
    if not items:
        print("No items are low on stock")
        return 0
    for item in items:
        print(
            f"{item['name']}: {_fmt(item['quantity'])} {item['unit_symbol']} "
            f"(reorder at {_fmt(item['reorder_threshold'])})"
        )
    return 0


def cmd_stats(args) -> int:
    """Print the dashboard figures."""
    stats = dashboard_service.get_dashboard_stats()
    print(f"Items:            {stats['total_items']}")
    print(f"Low stock:        {stats['low_stock_items']}")
    print(f"Productions today:{stats['productions_today']:>2}")
    print(f"Stock value:      {stats['total_value']:.2f}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="bakery-ledger",
        description=f"{APP_NAME} {APP_VERSION} - inventory, recipe scaling and production costing",
    )
    parser.add_argument("--log-level", help="Override BAKERY_LEDGER_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    init_parser = subparsers.add_parser("init-db", help="Create tables and seed units")
    init_parser.add_argument(
        "--reset", action="store_true", help="Drop all tables first (deletes all data)"
    )
    init_parser.set_defaults(handler=cmd_init_db)

    convert_parser = subparsers.add_parser("convert", help="Convert a quantity between units")
    convert_parser.add_argument("quantity", type=Decimal)
    convert_parser.add_argument("from_unit", help="Unit code, e.g. g")
    convert_parser.add_argument("to_unit", help="Unit code, e.g. kg")
    convert_parser.set_defaults(handler=cmd_convert)

    for name, handler, help_text in (
        ("scale", cmd_scale, "Scale a recipe to a desired yield"),
        ("plan", cmd_plan, "Check stock and cost a scaled recipe"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("recipe_id", type=int)
        sub.add_argument("yield_quantity", type=Decimal)
        sub.add_argument("unit", help="Unit code of the desired yield")
        sub.set_defaults(handler=handler)
        if name == "plan":
            sub.add_argument("--labor", type=Decimal, default=Decimal("0"))
            sub.add_argument("--overhead", type=Decimal, default=Decimal("0"))
            sub.add_argument(
                "--commit", action="store_true", help="Record the production and consume stock"
            )

    low_parser = subparsers.add_parser("low-stock", help="List items below reorder threshold")
    low_parser.set_defaults(handler=cmd_low_stock)

    stats_parser = subparsers.add_parser("stats", help="Show dashboard statistics")
    stats_parser.set_defaults(handler=cmd_stats)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    configure_logging(args.log_level.upper() if args.log_level else None)

    try:
        if args.command != "init-db":
            initialize_app_database()
        return args.handler(args)
    except ServiceError as e:
        logger.debug(f"{args.command} failed: {e.to_dict()}")
        print(f"ERROR: {e}")
        return 1
    finally:
        close_connections()


if __name__ == "__main__":
    sys.exit(main())
