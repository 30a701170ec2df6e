from __future__ import annotations

import csv
import io

from grocerylist.groceries import build_grocery_markdown, build_grocery_table, sort_items
from grocerylist.models import GroceryItem, GrocerySource
from grocerylist.quantity import parse_quantity


def make_items() -> list:
    pasta = GrocerySource("pasta", "Pasta", "meal-1", parse_quantity("2"), ("pasta-1",))
    bread = GrocerySource("bread", "Garlic Bread", "meal-2", parse_quantity("1/2"), ("bread-1",))
    return [
        GroceryItem("item-1", "Garlic", parse_quantity("2 1/2"), sources=(pasta, bread)),
        GroceryItem(
            "item-2",
            "butter",
            parse_quantity("2"),
            unit="tbsp",
            checked=True,
            category="DAIRY, EGGS & FRIDGE",
            sources=(GrocerySource("bread", "Garlic Bread", "meal-2", parse_quantity("2"), ("bread-2",)),),
        ),
        GroceryItem("item-3", "Napkins", parse_quantity("1"), pinned=True, notes="recycled"),
    ]


def test_sort_items_groups_by_category_then_name():
    names = [item.name for item in sort_items(make_items())]
    assert names == ["butter", "Garlic", "Napkins"]


def test_build_grocery_table_lists_sources():
    rows = list(csv.reader(io.StringIO(build_grocery_table(make_items()))))

    assert rows[0] == ["name", "amount", "unit", "category", "checked", "pinned", "sources"]
    assert rows[1] == ["butter", "2", "tbsp", "DAIRY, EGGS & FRIDGE", "yes", "no", "Garlic Bread (2)"]
    assert rows[2] == ["Garlic", "2 1/2", "", "FRESH PRODUCE", "no", "no", "Pasta (2); Garlic Bread (1/2)"]
    assert rows[3][5:] == ["yes", ""]


def test_build_grocery_markdown_by_category():
    markdown = build_grocery_markdown(make_items())

    assert markdown.startswith("# Grocery List\n")
    assert "## Dairy, Eggs & Fridge\n- [x] butter: 2 tbsp (Garlic Bread)" in markdown
    assert "- [ ] Garlic: 2 1/2 (Garlic Bread, Pasta)" in markdown
    assert "- [ ] Napkins: 1 _recycled_" in markdown
    assert markdown.index("## Dairy") < markdown.index("## Fresh Produce")


def test_empty_list_renders_heading_only():
    assert build_grocery_markdown([]) == "# Grocery List\n"
