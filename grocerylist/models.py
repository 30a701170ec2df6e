"""Core domain models for the grocery aggregation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, FrozenSet, List, Optional, Tuple

from .quantity import Quantity, parse_quantity, format_quantity


MEAL_TYPES = ["breakfast", "lunch", "dinner", "snack"]
SHELF = "shelf"

ItemKey = Tuple[str, str]

DEFAULT_CATEGORY = "FRESH PRODUCE"
DEFAULT_CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    "HERBS & SPICES": ["parsley", "basil", "herb", "cilantro", "rosemary", "thyme", "oregano", "sage", "mint"],
    "DAIRY, EGGS & FRIDGE": ["milk", "cream", "cheese", "butter", "yogurt", "egg"],
    "PASTA, GRAINS & LEGUMES": ["pasta", "spaghetti", "rice", "quinoa", "bread", "flour"],
    "OILS & VINEGARS": ["oil", "vinegar", "sauce"],
}


def normalize_name(name: str) -> str:
    return name.strip().lower()


def item_key(name: str, unit: Optional[str], key_by_unit: bool = True) -> ItemKey:
    """Merge key for a grocery item: trimmed, case-insensitive name (and unit)."""

    if not key_by_unit:
        return (normalize_name(name), "")
    return (normalize_name(name), (unit or "").strip().lower())


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class IngredientLine:
    """A single ingredient of a recipe, as authored for the base servings."""

    id: str
    name: str
    amount: Quantity
    unit: str = ""

    @staticmethod
    def from_dict(data: dict) -> "IngredientLine":
        return IngredientLine(
            id=str(data["id"]),
            name=data["name"],
            amount=parse_quantity(data.get("amount")),
            unit=data.get("unit") or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "amount": format_quantity(self.amount),
            "unit": self.unit,
        }


@dataclass(frozen=True)
class Recipe:
    id: str
    title: str
    servings: Optional[float]
    ingredients: List[IngredientLine]

    @property
    def base_servings(self) -> float:
        return max(self.servings or 0, 1)

    @staticmethod
    def from_dict(data: dict) -> "Recipe":
        servings = data.get("servings")
        return Recipe(
            id=str(data["id"]),
            title=data.get("title", ""),
            servings=float(servings) if servings is not None else None,
            ingredients=[IngredientLine.from_dict(item) for item in data.get("ingredients", [])],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "servings": self.servings,
            "ingredients": [line.to_dict() for line in self.ingredients],
        }


@dataclass(frozen=True)
class MealPlanEntry:
    """One scheduled cooking occasion. ``date`` of None means the shelf."""

    id: str
    recipe_id: str
    date: Optional[date]
    meal_type: str
    servings_override: Optional[float] = None
    include_in_grocery: bool = True
    excluded_ingredient_ids: FrozenSet[str] = frozenset()

    @property
    def is_scheduled(self) -> bool:
        return self.date is not None

    @staticmethod
    def from_dict(data: dict) -> "MealPlanEntry":
        raw_date = data.get("date")
        if raw_date in (None, "", SHELF):
            entry_date = None
        else:
            entry_date = datetime.fromisoformat(raw_date).date()
        servings = data.get("servings_override")
        return MealPlanEntry(
            id=str(data["id"]),
            recipe_id=str(data["recipe_id"]),
            date=entry_date,
            meal_type=ensure_meal_type(data.get("meal_type", "dinner")),
            servings_override=float(servings) if servings is not None else None,
            include_in_grocery=bool(data.get("include_in_grocery", True)),
            excluded_ingredient_ids=frozenset(str(item) for item in data.get("excluded_ingredient_ids", [])),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "recipe_id": self.recipe_id,
            "date": self.date.isoformat() if self.date else SHELF,
            "meal_type": self.meal_type,
            "servings_override": self.servings_override,
            "include_in_grocery": self.include_in_grocery,
            "excluded_ingredient_ids": sorted(self.excluded_ingredient_ids),
        }


@dataclass(frozen=True)
class GrocerySource:
    """Provenance of part of a grocery item's amount.

    ``line_amounts`` runs parallel to ``ingredient_line_ids`` and records each
    folded line's share of ``amount``.
    """

    recipe_id: str
    recipe_title: str
    meal_plan_entry_id: Optional[str]
    amount: Quantity
    ingredient_line_ids: Tuple[str, ...] = ()
    line_amounts: Tuple[Quantity, ...] = ()

    @property
    def key(self) -> Tuple[str, Optional[str]]:
        return (self.recipe_id, self.meal_plan_entry_id)

    def amounts_by_line(self) -> Optional[Tuple[Quantity, ...]]:
        """Per-line shares, or None when they cannot be recovered."""

        if len(self.line_amounts) == len(self.ingredient_line_ids):
            return self.line_amounts
        if len(self.ingredient_line_ids) == 1:
            return (self.amount,)
        return None

    @staticmethod
    def from_dict(data: dict) -> "GrocerySource":
        entry_id = data.get("meal_plan_entry_id")
        return GrocerySource(
            recipe_id=str(data["recipe_id"]),
            recipe_title=data.get("recipe_title", ""),
            meal_plan_entry_id=str(entry_id) if entry_id is not None else None,
            amount=parse_quantity(data.get("amount")),
            ingredient_line_ids=tuple(str(item) for item in data.get("ingredient_line_ids", [])),
            line_amounts=tuple(parse_quantity(item) for item in data.get("line_amounts", [])),
        )

    def to_dict(self) -> dict:
        return {
            "recipe_id": self.recipe_id,
            "recipe_title": self.recipe_title,
            "meal_plan_entry_id": self.meal_plan_entry_id,
            "amount": format_quantity(self.amount),
            "ingredient_line_ids": list(self.ingredient_line_ids),
            "line_amounts": [format_quantity(amount) for amount in self.line_amounts],
        }


@dataclass(frozen=True)
class GroceryItem:
    id: str
    name: str
    amount: Quantity
    unit: str = ""
    checked: bool = False
    pinned: bool = False
    category: str = DEFAULT_CATEGORY
    notes: Optional[str] = None
    sources: Tuple[GrocerySource, ...] = ()
    created_at: str = field(default_factory=_utc_now)

    @property
    def is_manual(self) -> bool:
        return self.pinned and not self.sources

    def key(self, key_by_unit: bool = True) -> ItemKey:
        return item_key(self.name, self.unit, key_by_unit)

    def sources_for_entry(self, meal_plan_entry_id: str) -> List[GrocerySource]:
        return [source for source in self.sources if source.meal_plan_entry_id == meal_plan_entry_id]

    @staticmethod
    def from_dict(data: dict) -> "GroceryItem":
        return GroceryItem(
            id=str(data["id"]),
            name=data["name"],
            amount=parse_quantity(data.get("amount")),
            unit=data.get("unit") or "",
            checked=bool(data.get("checked", False)),
            pinned=bool(data.get("pinned", False)),
            category=data.get("category") or DEFAULT_CATEGORY,
            notes=data.get("notes"),
            sources=tuple(GrocerySource.from_dict(item) for item in data.get("sources") or []),
            created_at=data.get("created_at") or _utc_now(),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "amount": format_quantity(self.amount),
            "unit": self.unit,
            "checked": self.checked,
            "pinned": self.pinned,
            "category": self.category,
            "notes": self.notes,
            "sources": [source.to_dict() for source in self.sources],
            "created_at": self.created_at,
        }


@dataclass
class GroceryConfig:
    """Settings that shape how items are keyed and labelled."""

    key_by_unit: bool = True
    default_category: str = DEFAULT_CATEGORY
    category_keywords: Dict[str, List[str]] = field(
        default_factory=lambda: {name: list(words) for name, words in DEFAULT_CATEGORY_KEYWORDS.items()}
    )
    manual_default_amount: str = "1"

    @staticmethod
    def from_dict(data: dict) -> "GroceryConfig":
        keywords = data.get("category_keywords")
        if keywords is None:
            keywords = DEFAULT_CATEGORY_KEYWORDS
        return GroceryConfig(
            key_by_unit=bool(data.get("key_by_unit", True)),
            default_category=data.get("default_category", DEFAULT_CATEGORY),
            category_keywords={
                str(category): [word.lower() for word in words] for category, words in keywords.items()
            },
            manual_default_amount=str(data.get("manual_default_amount", "1")),
        )

    def to_dict(self) -> dict:
        return {
            "key_by_unit": self.key_by_unit,
            "default_category": self.default_category,
            "category_keywords": {category: list(words) for category, words in self.category_keywords.items()},
            "manual_default_amount": self.manual_default_amount,
        }


def ensure_meal_type(meal_type: str) -> str:
    normalized = meal_type.lower()
    if normalized not in MEAL_TYPES:
        raise ValueError(f"Unknown meal type: {meal_type}")
    return normalized
