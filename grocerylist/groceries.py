"""Render a grocery list as CSV or Markdown."""

from __future__ import annotations

import csv
import io
from collections import defaultdict
from typing import Dict, Iterable, List

from .models import GroceryItem, GrocerySource
from .quantity import format_quantity


def sort_items(items: Iterable[GroceryItem]) -> List[GroceryItem]:
    return sorted(items, key=lambda item: (item.category, item.name.lower()))


def _describe_source(source: GrocerySource) -> str:
    title = source.recipe_title or source.recipe_id
    return f"{title} ({format_quantity(source.amount)})"


def build_grocery_table(items: Iterable[GroceryItem]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["name", "amount", "unit", "category", "checked", "pinned", "sources"])
    for item in sort_items(items):
        writer.writerow(
            [
                item.name,
                format_quantity(item.amount),
                item.unit,
                item.category,
                "yes" if item.checked else "no",
                "yes" if item.pinned else "no",
                "; ".join(_describe_source(source) for source in item.sources),
            ]
        )
    return buffer.getvalue()


def build_grocery_markdown(items: Iterable[GroceryItem]) -> str:
    by_category: Dict[str, List[GroceryItem]] = defaultdict(list)
    for item in items:
        by_category[item.category].append(item)

    lines = ["# Grocery List", ""]
    for category in sorted(by_category):
        lines.append(f"## {category.title()}")
        for item in sorted(by_category[category], key=lambda entry: entry.name.lower()):
            mark = "x" if item.checked else " "
            unit = f" {item.unit}" if item.unit else ""
            line = f"- [{mark}] {item.name}: {format_quantity(item.amount)}{unit}"
            if item.sources:
                titles = sorted({source.recipe_title or source.recipe_id for source in item.sources})
                line += f" ({', '.join(titles)})"
            if item.notes:
                line += f" _{item.notes}_"
            lines.append(line)
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"
