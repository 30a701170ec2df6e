"""Command line interface for building grocery lists from meal plans."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .aggregation import AggregationEngine
from .groceries import build_grocery_markdown, build_grocery_table
from .io import DocumentError, dump_grocery_list, load_config, load_grocery_list, load_meal_plan, load_recipes
from .models import GroceryConfig
from .store import GroceryListStore

logger = logging.getLogger(__name__)


def _create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grocerylist",
        description="Build and maintain grocery lists from scheduled meals.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument("--config", type=Path, help="Optional JSON configuration file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Recompute a grocery list from recipes and a meal plan.",
    )
    build_parser.add_argument("--recipes", required=True, type=Path)
    build_parser.add_argument("--meal-plan", required=True, type=Path)
    build_parser.add_argument(
        "--list",
        type=Path,
        help="Existing list whose checked, pinned and manual items are preserved.",
    )
    build_parser.add_argument("--out-json", required=True, type=Path)
    build_parser.add_argument("--out-md", type=Path)
    build_parser.add_argument("--out-csv", type=Path)

    add_parser = subparsers.add_parser("add-item", help="Add a manual item to a list file.")
    add_parser.add_argument("--list", required=True, type=Path)
    add_parser.add_argument("--name", required=True)
    add_parser.add_argument("--amount")
    add_parser.add_argument("--unit", default="")
    add_parser.add_argument("--category")

    render_parser = subparsers.add_parser("render", help="Render a list file as Markdown or CSV.")
    render_parser.add_argument("--list", required=True, type=Path)
    render_parser.add_argument("--out-md", type=Path)
    render_parser.add_argument("--out-csv", type=Path)

    return parser


def _write_text_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _write_outputs(store: GroceryListStore, out_md: Optional[Path], out_csv: Optional[Path]) -> None:
    if out_md is not None:
        _write_text_file(out_md, build_grocery_markdown(store.items))
    if out_csv is not None:
        _write_text_file(out_csv, build_grocery_table(store.items))


def _handle_build(
    config: GroceryConfig,
    recipes_path: Path,
    meal_plan_path: Path,
    list_path: Optional[Path],
    out_json: Path,
    out_md: Optional[Path],
    out_csv: Optional[Path],
) -> int:
    recipes = {recipe.id: recipe for recipe in load_recipes(recipes_path)}
    entries = load_meal_plan(meal_plan_path)
    existing = load_grocery_list(list_path) if list_path is not None else []

    store = GroceryListStore(existing, config=config)
    engine = AggregationEngine(store, recipes)
    mutation = engine.rebuild(entries)
    logger.info(
        "Built %d items (%d created, %d updated, %d removed)",
        len(store.items),
        len(mutation.created),
        len(mutation.updated),
        len(mutation.deleted),
    )

    dump_grocery_list(out_json, store.items)
    _write_outputs(store, out_md, out_csv)
    return 0


def _handle_add_item(
    config: GroceryConfig,
    list_path: Path,
    name: str,
    amount: Optional[str],
    unit: str,
    category: Optional[str],
) -> int:
    store = GroceryListStore(load_grocery_list(list_path), config=config)
    engine = AggregationEngine(store, {})
    engine.add_manual_item(name, amount, unit, category)
    dump_grocery_list(list_path, store.items)
    logger.info("Added %s to %s", name, list_path)
    return 0


def _handle_render(
    config: GroceryConfig,
    list_path: Path,
    out_md: Optional[Path],
    out_csv: Optional[Path],
) -> int:
    store = GroceryListStore(load_grocery_list(list_path), config=config)
    if out_md is None and out_csv is None:
        sys.stdout.write(build_grocery_markdown(store.items))
        return 0
    _write_outputs(store, out_md, out_csv)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = _create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        config = load_config(args.config) if args.config is not None else GroceryConfig()

        if args.command == "build":
            return _handle_build(
                config=config,
                recipes_path=args.recipes,
                meal_plan_path=args.meal_plan,
                list_path=args.list,
                out_json=args.out_json,
                out_md=args.out_md,
                out_csv=args.out_csv,
            )

        if args.command == "add-item":
            return _handle_add_item(
                config=config,
                list_path=args.list,
                name=args.name,
                amount=args.amount,
                unit=args.unit,
                category=args.category,
            )

        if args.command == "render":
            return _handle_render(
                config=config,
                list_path=args.list,
                out_md=args.out_md,
                out_csv=args.out_csv,
            )
    except DocumentError as exc:
        logger.error("%s", exc)
        return 1

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":  # pragma: no cover - exercised via tests
    sys.exit(main())
