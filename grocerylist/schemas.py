"""JSON schemas for the documents read from disk."""

from __future__ import annotations

_AMOUNT = {"type": ["string", "number", "null"]}
_OPTIONAL_STRING = {"type": ["string", "null"]}

INGREDIENT_LINE_SCHEMA = {
    "type": "object",
    "required": ["id", "name"],
    "properties": {
        "id": {"type": ["string", "integer"]},
        "name": {"type": "string", "minLength": 1},
        "amount": _AMOUNT,
        "unit": _OPTIONAL_STRING,
    },
}

RECIPE_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["id", "ingredients"],
    "properties": {
        "id": {"type": ["string", "integer"]},
        "title": {"type": "string"},
        "servings": {"type": ["number", "null"], "minimum": 0},
        "ingredients": {"type": "array", "items": INGREDIENT_LINE_SCHEMA},
    },
}

MEAL_PLAN_ENTRY_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["id", "recipe_id"],
    "properties": {
        "id": {"type": ["string", "integer"]},
        "recipe_id": {"type": ["string", "integer"]},
        "date": _OPTIONAL_STRING,
        "meal_type": {"enum": ["breakfast", "lunch", "dinner", "snack"]},
        "servings_override": {"type": ["number", "null"]},
        "include_in_grocery": {"type": "boolean"},
        "excluded_ingredient_ids": {"type": "array", "items": {"type": ["string", "integer"]}},
    },
}

GROCERY_SOURCE_SCHEMA = {
    "type": "object",
    "required": ["recipe_id"],
    "properties": {
        "recipe_id": {"type": ["string", "integer"]},
        "recipe_title": {"type": "string"},
        "meal_plan_entry_id": {"type": ["string", "integer", "null"]},
        "amount": _AMOUNT,
        "ingredient_line_ids": {"type": "array", "items": {"type": ["string", "integer"]}},
        "line_amounts": {"type": "array", "items": _AMOUNT},
    },
}

GROCERY_ITEM_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["id", "name"],
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string"},
        "amount": _AMOUNT,
        "unit": _OPTIONAL_STRING,
        "checked": {"type": "boolean"},
        "pinned": {"type": "boolean"},
        "category": _OPTIONAL_STRING,
        "notes": _OPTIONAL_STRING,
        "sources": {"type": ["array", "null"], "items": GROCERY_SOURCE_SCHEMA},
        "created_at": _OPTIONAL_STRING,
    },
}

CONFIG_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "key_by_unit": {"type": "boolean"},
        "default_category": {"type": "string"},
        "category_keywords": {
            "type": "object",
            "additionalProperties": {"type": "array", "items": {"type": "string"}},
        },
        "manual_default_amount": {"type": ["string", "number"]},
    },
    "additionalProperties": False,
}
