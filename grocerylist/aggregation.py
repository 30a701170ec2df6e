"""Turn scheduled meals into a deduplicated grocery list and keep it in sync."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .ledger import (
    fold_sources,
    remove_ingredient_source,
    remove_meal_plan_sources,
    remove_source,
    upsert_source,
)
from .models import (
    GroceryConfig,
    GroceryItem,
    GrocerySource,
    IngredientLine,
    ItemKey,
    MealPlanEntry,
    Recipe,
    item_key,
)
from .quantity import ZERO, QuantityLike, add_quantities, parse_quantity, scale_quantity, servings_ratio

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]


class EntryState(Enum):
    EXCLUDED = "excluded"
    INCLUDED = "included"


def entry_state(entry: Optional[MealPlanEntry]) -> EntryState:
    if entry is None or not entry.include_in_grocery:
        return EntryState.EXCLUDED
    return EntryState.INCLUDED


def new_item_id() -> str:
    return uuid.uuid4().hex


@dataclass
class ListMutation:
    """Instructions for the store: items to create, replace and delete."""

    created: List[GroceryItem] = field(default_factory=list)
    updated: List[GroceryItem] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.created or self.updated or self.deleted)


@dataclass(frozen=True)
class Contribution:
    """What one contributor adds to the item with ``key``."""

    key: ItemKey
    name: str
    unit: str
    source: GrocerySource

    def fold(self, line: IngredientLine, amount: QuantityLike) -> "Contribution":
        source = replace(
            self.source,
            amount=add_quantities(self.source.amount, amount),
            ingredient_line_ids=self.source.ingredient_line_ids + (line.id,),
            line_amounts=self.source.line_amounts + (parse_quantity(amount),),
        )
        return replace(self, source=source)


def guess_category(name: str, config: GroceryConfig) -> str:
    lowered = name.lower()
    for category, keywords in config.category_keywords.items():
        if any(keyword in lowered for keyword in keywords):
            return category
    return config.default_category


def entry_contributions(
    entry: MealPlanEntry,
    recipe: Recipe,
    config: GroceryConfig,
) -> Dict[ItemKey, Contribution]:
    """Scale every selected line of ``recipe`` for ``entry``, one source per item key.

    Lines of the same recipe that land on the same item are summed into a
    single source so the entry never holds two sources on one item.
    """

    ratio = servings_ratio(entry.servings_override, recipe.servings)
    contributions: Dict[ItemKey, Contribution] = {}
    for line in recipe.ingredients:
        if line.id in entry.excluded_ingredient_ids:
            continue
        amount = scale_quantity(line.amount, ratio)
        key = item_key(line.name, line.unit, config.key_by_unit)
        existing = contributions.get(key)
        if existing is not None:
            contributions[key] = existing.fold(line, amount)
            continue
        contributions[key] = Contribution(
            key=key,
            name=line.name.strip(),
            unit=line.unit.strip(),
            source=GrocerySource(
                recipe_id=recipe.id,
                recipe_title=recipe.title,
                meal_plan_entry_id=entry.id,
                amount=amount,
                ingredient_line_ids=(line.id,),
                line_amounts=(amount,),
            ),
        )
    return contributions


def build_manual_item(
    name: str,
    amount: QuantityLike,
    unit: str,
    category: Optional[str],
    config: GroceryConfig,
    id_factory: IdFactory = new_item_id,
) -> GroceryItem:
    if amount is None or amount == "":
        amount = config.manual_default_amount
    return GroceryItem(
        id=id_factory(),
        name=name.strip(),
        amount=parse_quantity(amount),
        unit=(unit or "").strip(),
        pinned=True,
        category=category or guess_category(name, config),
    )


class _Batch:
    """Working copy of the list for one event; diffed into a ListMutation."""

    def __init__(self, items: Iterable[GroceryItem], config: GroceryConfig, id_factory: IdFactory) -> None:
        self._config = config
        self._id_factory = id_factory
        self._items: Dict[str, GroceryItem] = {item.id: item for item in items}
        self._original = dict(self._items)

    def items(self) -> List[GroceryItem]:
        return list(self._items.values())

    def key_of(self, item: GroceryItem) -> ItemKey:
        return item.key(self._config.key_by_unit)

    def find(self, key: ItemKey) -> Optional[GroceryItem]:
        for item in self._items.values():
            if self.key_of(item) == key:
                return item
        return None

    def contributed_by(self, meal_plan_entry_id: str) -> List[GroceryItem]:
        return [item for item in self._items.values() if item.sources_for_entry(meal_plan_entry_id)]

    def put(self, item: GroceryItem) -> None:
        self._items[item.id] = item

    def delete(self, item_id: str) -> None:
        self._items.pop(item_id, None)

    def settle(self, item_id: str, item: Optional[GroceryItem]) -> None:
        if item is None:
            self.delete(item_id)
        else:
            self.put(item)

    def upsert(self, contribution: Contribution) -> GroceryItem:
        item = self.find(contribution.key)
        if item is None:
            item = GroceryItem(
                id=self._id_factory(),
                name=contribution.name,
                amount=ZERO,
                unit=contribution.unit,
                category=guess_category(contribution.name, self._config),
            )
        item = upsert_source(item, contribution.source)
        self.put(item)
        return item

    def mutation(self) -> ListMutation:
        return ListMutation(
            created=[item for item_id, item in self._items.items() if item_id not in self._original],
            updated=[
                item
                for item_id, item in self._items.items()
                if item_id in self._original and item != self._original[item_id]
            ],
            deleted=[item_id for item_id in self._original if item_id not in self._items],
        )


def _contribution_changed(previous: MealPlanEntry, current: MealPlanEntry) -> bool:
    return (
        previous.recipe_id != current.recipe_id
        or previous.servings_override != current.servings_override
        or previous.excluded_ingredient_ids != current.excluded_ingredient_ids
    )


def _claimed_keys(
    desired: Mapping[ItemKey, Contribution],
    key: ItemKey,
    sources: Iterable[GrocerySource],
) -> List[ItemKey]:
    """Keys in ``desired`` that belong on an item already holding ``sources``.

    Contributions follow the recipe lines they came from, so an item the user
    renamed or merged keeps them. The item's own key is claimed as well.
    """

    line_ids = {line_id for source in sources for line_id in source.ingredient_line_ids}
    claimed = [
        candidate
        for candidate, contribution in desired.items()
        if line_ids.intersection(contribution.source.ingredient_line_ids)
    ]
    if key in desired and key not in claimed:
        claimed.append(key)
    return claimed


def _rebuild_into(
    batch: _Batch,
    entries: Iterable[MealPlanEntry],
    recipes: Mapping[str, Recipe],
    config: GroceryConfig,
) -> None:
    desired: List[Contribution] = []
    for entry in entries:
        if entry_state(entry) is EntryState.EXCLUDED:
            continue
        recipe = recipes.get(entry.recipe_id)
        if recipe is None:
            logger.debug("Skipping meal plan entry %s: recipe %s not found", entry.id, entry.recipe_id)
            continue
        desired.extend(entry_contributions(entry, recipe, config).values())

    # A contribution goes back to the item holding its recipe lines, then to
    # the first item with its key.
    holders: Dict[Tuple[str, Optional[str], str], str] = {}
    by_key: Dict[ItemKey, str] = {}
    for item in batch.items():
        by_key.setdefault(batch.key_of(item), item.id)
        for source in item.sources:
            if source.meal_plan_entry_id is None:
                continue
            for line_id in source.ingredient_line_ids:
                holders.setdefault((source.recipe_id, source.meal_plan_entry_id, line_id), item.id)

    assigned: Dict[str, List[GrocerySource]] = {}
    unassigned: List[Contribution] = []
    for contribution in desired:
        source = contribution.source
        held_by = [
            holders[(source.recipe_id, source.meal_plan_entry_id, line_id)]
            for line_id in source.ingredient_line_ids
            if (source.recipe_id, source.meal_plan_entry_id, line_id) in holders
        ]
        owner = held_by[0] if held_by else by_key.get(contribution.key)
        if owner is None:
            unassigned.append(contribution)
        else:
            assigned.setdefault(owner, []).append(source)

    for item in batch.items():
        sources = assigned.get(item.id)
        if sources is None:
            batch.settle(item.id, remove_meal_plan_sources(item))
            continue
        rebuilt = replace(item, sources=tuple(source for source in item.sources if source.meal_plan_entry_id is None))
        for source in fold_sources(sources):
            rebuilt = upsert_source(rebuilt, source)
        batch.put(rebuilt)

    for contribution in unassigned:
        batch.upsert(contribution)


def build_grocery_list(
    entries: Iterable[MealPlanEntry],
    recipes: Mapping[str, Recipe],
    config: Optional[GroceryConfig] = None,
    existing: Iterable[GroceryItem] = (),
    id_factory: IdFactory = new_item_id,
) -> List[GroceryItem]:
    """Compute the canonical list for ``entries`` from scratch.

    Items already in ``existing`` keep their id, checked flag, category and
    notes; pinned items keep their amount and manual items are carried over.
    """

    config = config or GroceryConfig()
    batch = _Batch(existing, config, id_factory)
    _rebuild_into(batch, entries, recipes, config)
    return batch.items()


def merge_ingredient_lines(
    items: Iterable[GroceryItem],
    lines: Sequence[IngredientLine],
    recipe_id: Optional[str],
    recipe_title: Optional[str],
    sources: Optional[Sequence[Optional[GrocerySource]]],
    config: GroceryConfig,
    id_factory: IdFactory = new_item_id,
) -> ListMutation:
    """Merge lines that are already at the wanted servings into ``items``.

    ``sources[i]`` names the contributor of ``lines[i]``; without one the
    line is credited to ``recipe_id`` with no meal plan entry, and without a
    recipe either it becomes a manual item.
    """

    batch = _Batch(items, config, id_factory)
    folded: Dict[Tuple[ItemKey, Tuple[str, Optional[str]]], Contribution] = {}
    for index, line in enumerate(lines):
        provided = sources[index] if sources is not None and index < len(sources) else None
        if provided is not None:
            contributor = (provided.recipe_id, provided.recipe_title, provided.meal_plan_entry_id)
        elif recipe_id:
            contributor = (recipe_id, recipe_title or "", None)
        else:
            batch.put(build_manual_item(line.name, line.amount, line.unit, None, config, id_factory))
            continue

        key = item_key(line.name, line.unit, config.key_by_unit)
        fold_key = (key, (contributor[0], contributor[2]))
        existing = folded.get(fold_key)
        if existing is not None:
            folded[fold_key] = existing.fold(line, line.amount)
            continue
        folded[fold_key] = Contribution(
            key=key,
            name=line.name.strip(),
            unit=line.unit.strip(),
            source=GrocerySource(
                recipe_id=contributor[0],
                recipe_title=contributor[1],
                meal_plan_entry_id=contributor[2],
                amount=line.amount,
                ingredient_line_ids=(line.id,),
                line_amounts=(line.amount,),
            ),
        )

    for contribution in folded.values():
        batch.upsert(contribution)
    return batch.mutation()


class AggregationEngine:
    """Applies meal plan contribution events to a grocery list store.

    ``store`` must expose ``items`` and ``apply(mutation)``; ``recipes`` maps
    recipe ids to recipes. Each handler builds one mutation from the current
    snapshot, applies it and returns it. Events for the same entry must be
    applied in the order they were issued.
    """

    def __init__(
        self,
        store,
        recipes: Mapping[str, Recipe],
        config: Optional[GroceryConfig] = None,
        id_factory: Optional[IdFactory] = None,
    ) -> None:
        self.store = store
        self.recipes = recipes
        self.config = config or getattr(store, "config", None) or GroceryConfig()
        self._id_factory = id_factory or getattr(store, "id_factory", None) or new_item_id

    def _batch(self) -> _Batch:
        return _Batch(self.store.items, self.config, self._id_factory)

    def _commit(self, batch: _Batch) -> ListMutation:
        mutation = batch.mutation()
        if not mutation.is_empty():
            self.store.apply(mutation)
        return mutation

    def _recipe_for(self, entry: MealPlanEntry) -> Optional[Recipe]:
        recipe = self.recipes.get(entry.recipe_id)
        if recipe is None:
            logger.debug("Recipe %s for meal plan entry %s not found; skipping", entry.recipe_id, entry.id)
        return recipe

    def handle(self, previous: Optional[MealPlanEntry], current: Optional[MealPlanEntry]) -> ListMutation:
        """Apply the change from ``previous`` to ``current`` (None when absent)."""

        before = entry_state(previous)
        after = entry_state(current)
        if after is EntryState.INCLUDED:
            if before is EntryState.EXCLUDED:
                return self.include_entry(current)
            if _contribution_changed(previous, current):
                return self.rescale_entry(current)
            return ListMutation()
        if before is EntryState.INCLUDED:
            return self.exclude_entry(previous.id)
        return ListMutation()

    def include_entry(self, entry: MealPlanEntry) -> ListMutation:
        recipe = self._recipe_for(entry)
        if recipe is None:
            return ListMutation()
        batch = self._batch()
        self._sync_entry(batch, entry, entry_contributions(entry, recipe, self.config))
        return self._commit(batch)

    def rescale_entry(self, entry: MealPlanEntry) -> ListMutation:
        """Recompute the entry's contributions at its current servings.

        Each source is replaced by a fresh scaling of the recipe line, never
        adjusted by a delta, so repeated rescales do not accumulate error.
        """

        return self.include_entry(entry)

    def _sync_entry(self, batch: _Batch, entry: MealPlanEntry, desired: Dict[ItemKey, Contribution]) -> None:
        remaining = dict(desired)
        for item in batch.contributed_by(entry.id):
            current = [source for source in item.sources_for_entry(entry.id) if source.recipe_id == entry.recipe_id]
            keys = _claimed_keys(remaining, batch.key_of(item), current)
            if not keys:
                batch.settle(item.id, remove_source(item, entry.id))
                continue
            # Drop what this entry contributed under a previous recipe.
            kept = tuple(
                source
                for source in item.sources
                if source.meal_plan_entry_id != entry.id or source.recipe_id == entry.recipe_id
            )
            item = replace(item, sources=kept)
            for source in fold_sources(remaining.pop(key).source for key in keys):
                item = upsert_source(item, source)
            batch.put(item)

        for contribution in remaining.values():
            batch.upsert(contribution)

    def exclude_entry(self, meal_plan_entry_id: str) -> ListMutation:
        batch = self._batch()
        for item in batch.contributed_by(meal_plan_entry_id):
            batch.settle(item.id, remove_source(item, meal_plan_entry_id))
        return self._commit(batch)

    def deselect_ingredient(self, entry: MealPlanEntry, ingredient_line_id: str) -> ListMutation:
        recipe = self._recipe_for(entry)
        remaining: Dict[ItemKey, Contribution] = {}
        if recipe is not None:
            narrowed = replace(
                entry,
                excluded_ingredient_ids=entry.excluded_ingredient_ids | {ingredient_line_id},
            )
            remaining = entry_contributions(narrowed, recipe, self.config)

        batch = self._batch()
        for item in batch.contributed_by(entry.id):
            current = item.sources_for_entry(entry.id)
            if not any(ingredient_line_id in source.ingredient_line_ids for source in current):
                continue
            keys = _claimed_keys(remaining, batch.key_of(item), current)
            if not keys:
                batch.settle(item.id, remove_ingredient_source(item, entry.id, ingredient_line_id))
                continue
            for source in fold_sources(remaining.pop(key).source for key in keys):
                item = upsert_source(item, source)
            batch.put(item)
        return self._commit(batch)

    def add_manual_item(
        self,
        name: str,
        amount: QuantityLike = None,
        unit: str = "",
        category: Optional[str] = None,
    ) -> ListMutation:
        batch = self._batch()
        batch.put(build_manual_item(name, amount, unit, category, self.config, self._id_factory))
        return self._commit(batch)

    def rebuild(self, entries: Iterable[MealPlanEntry]) -> ListMutation:
        batch = self._batch()
        _rebuild_into(batch, entries, self.recipes, self.config)
        return self._commit(batch)
