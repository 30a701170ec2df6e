from __future__ import annotations

import json
from datetime import date

import pytest

from grocerylist.io import (
    DocumentError,
    dump_grocery_list,
    load_config,
    load_grocery_list,
    load_meal_plan,
    load_recipes,
)
from grocerylist.models import GroceryItem, GrocerySource
from grocerylist.quantity import parse_quantity


def _recipe_dict(recipe_id: str) -> dict:
    return {
        "id": recipe_id,
        "title": f"Recipe {recipe_id}",
        "servings": 4,
        "ingredients": [
            {"id": f"{recipe_id}-1", "name": "Onion", "amount": "1 1/2"},
            {"id": f"{recipe_id}-2", "name": "Stock", "amount": 500, "unit": "ml"},
        ],
    }


def test_load_recipes_from_directory(tmp_path):
    recipes_dir = tmp_path / "recipes"
    recipes_dir.mkdir()
    (recipes_dir / "single.json").write_text(json.dumps(_recipe_dict("one")))
    (recipes_dir / "multi.json").write_text(json.dumps([_recipe_dict("two"), _recipe_dict("three")]))
    nested_dir = recipes_dir / "nested"
    nested_dir.mkdir()
    (nested_dir / "nested.json").write_text(json.dumps(_recipe_dict("four")))
    (recipes_dir / "notes.txt").write_text("not a recipe")

    recipes = load_recipes(recipes_dir)

    assert {recipe.id for recipe in recipes} == {"one", "two", "three", "four"}


def test_load_recipes_from_single_recipe_file(tmp_path):
    recipe_path = tmp_path / "recipe.json"
    recipe_path.write_text(json.dumps(_recipe_dict("solo")))

    [recipe] = load_recipes(recipe_path)

    assert recipe.id == "solo"
    assert recipe.servings == 4
    assert [line.amount.format() for line in recipe.ingredients] == ["1 1/2", "500"]
    assert recipe.ingredients[1].unit == "ml"


def test_recipe_failing_schema_raises(tmp_path):
    recipe_path = tmp_path / "broken.json"
    recipe_path.write_text(json.dumps({"id": "broken", "title": "No ingredients"}))

    with pytest.raises(DocumentError, match="Schema validation failed"):
        load_recipes(recipe_path)


def test_invalid_json_raises(tmp_path):
    recipe_path = tmp_path / "broken.json"
    recipe_path.write_text("{not json")

    with pytest.raises(DocumentError, match="Failed to parse JSON"):
        load_recipes(recipe_path)


def test_load_meal_plan_with_shelf_entries(tmp_path):
    plan_path = tmp_path / "plan.json"
    plan_path.write_text(
        json.dumps(
            {
                "entries": [
                    {"id": "meal-1", "recipe_id": "soup", "date": "2025-01-13", "meal_type": "dinner"},
                    {
                        "id": "meal-2",
                        "recipe_id": "pasta",
                        "date": "shelf",
                        "meal_type": "lunch",
                        "servings_override": 6,
                        "include_in_grocery": False,
                        "excluded_ingredient_ids": ["pasta-2"],
                    },
                ]
            }
        )
    )

    first, second = load_meal_plan(plan_path)

    assert first.date == date(2025, 1, 13)
    assert first.include_in_grocery
    assert second.date is None
    assert not second.is_scheduled
    assert second.servings_override == 6
    assert not second.include_in_grocery
    assert second.excluded_ingredient_ids == frozenset({"pasta-2"})


def test_meal_plan_with_bad_values_raises(tmp_path):
    plan_path = tmp_path / "plan.json"
    plan_path.write_text(json.dumps([{"id": "meal-1", "recipe_id": "soup", "meal_type": "brunch"}]))
    with pytest.raises(DocumentError):
        load_meal_plan(plan_path)

    plan_path.write_text(json.dumps([{"id": "meal-1", "recipe_id": "soup", "date": "13/01/2025"}]))
    with pytest.raises(DocumentError, match="Invalid meal plan entry"):
        load_meal_plan(plan_path)

    plan_path.write_text(json.dumps({"meals": []}))
    with pytest.raises(DocumentError, match="Unsupported document format"):
        load_meal_plan(plan_path)


def test_grocery_list_survives_dump_and_load(tmp_path):
    list_path = tmp_path / "lists" / "groceries.json"
    source = GrocerySource("soup", "Soup", "meal-1", parse_quantity("1/3"), ("soup-1",))
    items = [
        GroceryItem("item-1", "Onion", parse_quantity("1/3"), checked=True, sources=(source,)),
        GroceryItem("item-2", "Napkins", parse_quantity("2"), unit="packs", pinned=True, notes="recycled"),
    ]

    dump_grocery_list(list_path, items)
    loaded = load_grocery_list(list_path)

    assert loaded == items
    assert json.loads(list_path.read_text())["items"][0]["amount"] == "1/3"


def test_missing_grocery_list_is_empty(tmp_path):
    assert load_grocery_list(tmp_path / "missing.json") == []


def test_load_config(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps(
            {
                "key_by_unit": False,
                "default_category": "OTHER",
                "category_keywords": {"BAKERY": ["Bread", "bagel"]},
                "manual_default_amount": 2,
            }
        )
    )

    config = load_config(config_path)

    assert config.key_by_unit is False
    assert config.default_category == "OTHER"
    assert config.category_keywords == {"BAKERY": ["bread", "bagel"]}
    assert config.manual_default_amount == "2"


def test_config_rejects_unknown_settings(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"fuzzy_matching": True}))

    with pytest.raises(DocumentError):
        load_config(config_path)
