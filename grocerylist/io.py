"""Utility functions for reading and writing structured data on disk."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, List

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError
from jsonschema.protocols import Validator

from .models import GroceryConfig, GroceryItem, MealPlanEntry, Recipe
from .schemas import CONFIG_SCHEMA, GROCERY_ITEM_SCHEMA, MEAL_PLAN_ENTRY_SCHEMA, RECIPE_SCHEMA

logger = logging.getLogger(__name__)

_RECIPE_VALIDATOR: Validator = Draft202012Validator(RECIPE_SCHEMA)
_ENTRY_VALIDATOR: Validator = Draft202012Validator(MEAL_PLAN_ENTRY_SCHEMA)
_ITEM_VALIDATOR: Validator = Draft202012Validator(GROCERY_ITEM_SCHEMA)
_CONFIG_VALIDATOR: Validator = Draft202012Validator(CONFIG_SCHEMA)


class DocumentError(ValueError):
    """Raised when a document on disk does not have the expected shape."""


def _read_json(path: Path):
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as exc:
        raise DocumentError(f"Failed to parse JSON in {path}: {exc}") from exc


def _write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def _validated(entry, validator: Validator, source: Path) -> dict:
    try:
        validator.validate(entry)
    except ValidationError as exc:
        raise DocumentError(f"Schema validation failed for {source}: {exc.message}") from exc
    return entry


def _as_list(raw_data, source: Path, wrapper_key: str) -> list:
    if isinstance(raw_data, list):
        return raw_data
    if isinstance(raw_data, dict) and isinstance(raw_data.get(wrapper_key), list):
        return raw_data[wrapper_key]
    raise DocumentError(f"Unsupported document format in {source}")


def _recipes_from_raw(raw_data, source: Path) -> List[Recipe]:
    if isinstance(raw_data, dict):
        raw_data = [raw_data]
    if not isinstance(raw_data, list):
        raise DocumentError(f"Unsupported recipe format in {source}")
    return [Recipe.from_dict(_validated(item, _RECIPE_VALIDATOR, source)) for item in raw_data]


def _iter_recipe_files(directory: Path) -> list[Path]:
    recipe_files = [
        path
        for path in directory.rglob("*")
        if path.is_file() and path.suffix.lower() in {".json"}
    ]
    recipe_files.sort()
    return recipe_files


def load_recipes(path: Path) -> List[Recipe]:
    if path.is_dir():
        recipes: List[Recipe] = []
        for recipe_path in _iter_recipe_files(path):
            raw = _read_json(recipe_path)
            recipes.extend(_recipes_from_raw(raw, recipe_path))
        logger.debug("Loaded %d recipes from %s", len(recipes), path)
        return recipes

    raw = _read_json(path)
    return _recipes_from_raw(raw, path)


def load_meal_plan(path: Path) -> List[MealPlanEntry]:
    raw = _as_list(_read_json(path), path, "entries")
    entries: List[MealPlanEntry] = []
    for item in raw:
        try:
            entries.append(MealPlanEntry.from_dict(_validated(item, _ENTRY_VALIDATOR, path)))
        except DocumentError:
            raise
        except ValueError as exc:
            raise DocumentError(f"Invalid meal plan entry in {path}: {exc}") from exc
    return entries


def load_grocery_list(path: Path) -> List[GroceryItem]:
    if not path.exists():
        return []
    raw = _as_list(_read_json(path), path, "items")
    return [GroceryItem.from_dict(_validated(item, _ITEM_VALIDATOR, path)) for item in raw]


def dump_grocery_list(path: Path, items: Iterable[GroceryItem]) -> None:
    _write_json(path, {"items": [item.to_dict() for item in items]})


def load_config(path: Path) -> GroceryConfig:
    data = _validated(_read_json(path), _CONFIG_VALIDATOR, path)
    return GroceryConfig.from_dict(data)
