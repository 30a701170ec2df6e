"""Per-item bookkeeping of which recipes and meals contributed how much.

Items are immutable; every function here returns a new item. Removal helpers
return ``None`` when the item has no contributors left and is not pinned,
which tells the caller to delete it.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .models import GroceryItem, GrocerySource
from .quantity import Quantity, add_quantities

logger = logging.getLogger(__name__)


def source_total(sources: Iterable[GrocerySource]) -> Quantity:
    return add_quantities(*(source.amount for source in sources))


def _with_sources(item: GroceryItem, sources: Iterable[GrocerySource]) -> GroceryItem:
    sources = tuple(sources)
    # Pinned items keep whatever amount the user gave them.
    amount = item.amount if item.pinned else source_total(sources)
    return replace(item, sources=sources, amount=amount)


def combine_sources(first: GrocerySource, second: GrocerySource) -> GrocerySource:
    """Sum two sources of the same contributor into one."""

    first_lines = first.amounts_by_line()
    second_lines = second.amounts_by_line()
    line_amounts: Tuple[Quantity, ...] = ()
    if first_lines is not None and second_lines is not None:
        line_amounts = first_lines + second_lines
    return replace(
        first,
        amount=add_quantities(first.amount, second.amount),
        ingredient_line_ids=first.ingredient_line_ids + second.ingredient_line_ids,
        line_amounts=line_amounts,
    )


def fold_sources(sources: Iterable[GrocerySource]) -> List[GrocerySource]:
    """Collapse sources sharing a ``(recipe_id, meal_plan_entry_id)`` key."""

    folded: Dict[Tuple[str, Optional[str]], GrocerySource] = {}
    for source in sources:
        existing = folded.get(source.key)
        folded[source.key] = source if existing is None else combine_sources(existing, source)
    return list(folded.values())


def upsert_source(item: GroceryItem, source: GrocerySource) -> GroceryItem:
    """Add ``source`` to ``item``, replacing the one from the same contributor.

    The returned item's ``amount`` is the new total.
    """

    sources: List[GrocerySource] = []
    replaced = False
    for existing in item.sources:
        if existing.key == source.key:
            if not replaced:
                sources.append(source)
                replaced = True
            continue
        sources.append(existing)
    if not replaced:
        sources.append(source)
    return _with_sources(item, sources)


def _remove_matching(
    item: GroceryItem,
    predicate: Callable[[GrocerySource], bool],
) -> Optional[GroceryItem]:
    remaining = [source for source in item.sources if not predicate(source)]
    if len(remaining) == len(item.sources):
        logger.debug("No matching source on %s; nothing removed", item.name)
        return item
    if not remaining and not item.pinned:
        return None
    return _with_sources(item, remaining)


def remove_source(item: GroceryItem, meal_plan_entry_id: Optional[str]) -> Optional[GroceryItem]:
    return _remove_matching(item, lambda source: source.meal_plan_entry_id == meal_plan_entry_id)


def _without_line(source: GrocerySource, ingredient_line_id: str) -> Optional[GrocerySource]:
    shares = source.amounts_by_line()
    if shares is None:
        logger.debug("Source %s has no per-line amounts; dropping all of it", source.key)
        return None
    kept = [
        (line_id, share)
        for line_id, share in zip(source.ingredient_line_ids, shares)
        if line_id != ingredient_line_id
    ]
    if not kept:
        return None
    return replace(
        source,
        amount=add_quantities(*(share for _, share in kept)),
        ingredient_line_ids=tuple(line_id for line_id, _ in kept),
        line_amounts=tuple(share for _, share in kept),
    )


def remove_ingredient_source(
    item: GroceryItem,
    meal_plan_entry_id: Optional[str],
    ingredient_line_id: str,
) -> Optional[GroceryItem]:
    """Take one recipe line's share out of the entry's source on ``item``.

    A source folded from several lines keeps the other lines' shares; it only
    goes away once none of its lines are left.
    """

    sources: List[GrocerySource] = []
    matched = False
    for source in item.sources:
        if source.meal_plan_entry_id != meal_plan_entry_id or ingredient_line_id not in source.ingredient_line_ids:
            sources.append(source)
            continue
        matched = True
        narrowed = _without_line(source, ingredient_line_id)
        if narrowed is not None:
            sources.append(narrowed)

    if not matched:
        logger.debug("No source for line %s on %s; nothing removed", ingredient_line_id, item.name)
        return item
    if not sources and not item.pinned:
        return None
    return _with_sources(item, sources)


def remove_recipe_sources(item: GroceryItem, recipe_id: str) -> Optional[GroceryItem]:
    return _remove_matching(item, lambda source: source.recipe_id == recipe_id)


def remove_meal_plan_sources(item: GroceryItem) -> Optional[GroceryItem]:
    return _remove_matching(item, lambda source: source.meal_plan_entry_id is not None)
