"""In-memory grocery list holding the canonical items."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .aggregation import IdFactory, ListMutation, build_manual_item, merge_ingredient_lines, new_item_id
from .ledger import fold_sources, source_total
from .models import GroceryConfig, GroceryItem, GrocerySource, IngredientLine, MealPlanEntry
from .quantity import QuantityLike, add_quantities, parse_quantity

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "amount", "unit", "checked", "pinned", "category", "notes", "sources"})


class GroceryListStore:
    """Holds the current list and applies mutations to it.

    Every mutation replaces the backing list in a single assignment, so readers
    of ``items`` never observe half of an event.
    """

    def __init__(
        self,
        items: Optional[Iterable[GroceryItem]] = None,
        config: Optional[GroceryConfig] = None,
        id_factory: IdFactory = new_item_id,
    ) -> None:
        self.config = config or GroceryConfig()
        self.id_factory = id_factory
        self._items: Tuple[GroceryItem, ...] = tuple(items or ())

    @property
    def items(self) -> List[GroceryItem]:
        return list(self._items)

    def get(self, item_id: str) -> Optional[GroceryItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def apply(self, mutation: ListMutation) -> None:
        deleted = set(mutation.deleted)
        updates = {item.id: item for item in mutation.updated}
        items = [updates.get(item.id, item) for item in self._items if item.id not in deleted]
        items.extend(mutation.created)
        self._items = tuple(items)

    def add_items(
        self,
        ingredient_lines: Sequence[IngredientLine],
        recipe_id: Optional[str] = None,
        recipe_title: Optional[str] = None,
        servings: Optional[float] = None,
        sources: Optional[Sequence[Optional[GrocerySource]]] = None,
    ) -> ListMutation:
        """Merge a recipe's lines, already scaled to ``servings``, into the list."""

        logger.debug(
            "Adding %d ingredient lines from recipe %s (%s servings)",
            len(ingredient_lines),
            recipe_id,
            servings,
        )
        mutation = merge_ingredient_lines(
            self._items,
            ingredient_lines,
            recipe_id,
            recipe_title,
            sources,
            self.config,
            self.id_factory,
        )
        self.apply(mutation)
        return mutation

    def add_manual_item(self, name: str, amount: QuantityLike = None, unit: str = "") -> GroceryItem:
        item = build_manual_item(name, amount, unit, None, self.config, self.id_factory)
        self.apply(ListMutation(created=[item]))
        return item

    def remove_item(self, item_id: str) -> None:
        self.apply(ListMutation(deleted=[item_id]))

    def update_item(self, item_id: str, partial: Mapping[str, object]) -> Optional[GroceryItem]:
        """Apply ``partial`` field changes to an item.

        Setting ``amount`` without ``pinned`` pins the item, because a hand-edited
        amount no longer follows its sources. Items that are not pinned always
        carry the sum of their sources; if such an item is left without sources
        it is removed and ``None`` is returned. A pinned item with no sources
        cannot be unpinned and stays pinned.
        """

        unknown = set(partial) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update grocery item fields: {', '.join(sorted(unknown))}")

        current = self.get(item_id)
        if current is None:
            logger.debug("Ignoring update for unknown grocery item %s", item_id)
            return None

        changes: Dict[str, object] = dict(partial)
        if "amount" in changes:
            changes["amount"] = parse_quantity(changes["amount"])
            changes.setdefault("pinned", True)
        if "sources" in changes:
            changes["sources"] = tuple(fold_sources(changes["sources"]))
        updated = replace(current, **changes)

        if not updated.pinned:
            if not updated.sources:
                if current.pinned and "sources" not in partial:
                    logger.debug("Grocery item %s has no sources; keeping it pinned", item_id)
                    updated = replace(updated, pinned=True)
                else:
                    self.remove_item(item_id)
                    return None
            else:
                updated = replace(updated, amount=source_total(updated.sources))

        self.apply(ListMutation(updated=[updated]))
        return updated

    def toggle_item(self, item_id: str) -> Optional[GroceryItem]:
        item = self.get(item_id)
        if item is None:
            return None
        return self.update_item(item_id, {"checked": not item.checked})

    def toggle_item_pinned(self, item_id: str) -> Optional[GroceryItem]:
        item = self.get(item_id)
        if item is None:
            return None
        return self.update_item(item_id, {"pinned": not item.pinned})

    def update_item_notes(self, item_id: str, notes: Optional[str]) -> Optional[GroceryItem]:
        return self.update_item(item_id, {"notes": notes})

    def update_item_category(self, item_id: str, category: str) -> Optional[GroceryItem]:
        return self.update_item(item_id, {"category": category})

    def merge_items(
        self,
        item_ids: Sequence[str],
        merged_name: str,
        merged_amount: QuantityLike = None,
        merged_unit: str = "",
    ) -> Optional[GroceryItem]:
        """Replace several items with one that carries all of their sources.

        Without ``merged_amount`` the new amount is the sum of the sources (or of
        the items' amounts when any of them is pinned); an explicit amount pins
        the merged item.
        """

        wanted = set(item_ids)
        to_merge = [item for item in self._items if item.id in wanted]
        if not to_merge:
            return None

        sources = tuple(fold_sources(source for item in to_merge for source in item.sources))

        pinned = merged_amount is not None or not sources or any(item.pinned for item in to_merge)
        if merged_amount is not None:
            amount = parse_quantity(merged_amount)
        elif pinned:
            amount = add_quantities(*(item.amount for item in to_merge))
        else:
            amount = source_total(sources)

        notes = [item.notes for item in to_merge if item.notes]
        merged = GroceryItem(
            id=self.id_factory(),
            name=merged_name.strip(),
            amount=amount,
            unit=(merged_unit or "").strip(),
            checked=any(item.checked for item in to_merge),
            pinned=pinned,
            category=to_merge[0].category,
            notes="; ".join(notes) if notes else None,
            sources=sources,
            created_at=to_merge[0].created_at,
        )
        self.apply(ListMutation(created=[merged], deleted=[item.id for item in to_merge]))
        return merged

    def clear_checked_items(self) -> None:
        self.apply(ListMutation(deleted=[item.id for item in self._items if item.checked]))

    def clear_all_items(self) -> None:
        self._items = ()


def items_in_scope(
    items: Iterable[GroceryItem],
    entries: Iterable[MealPlanEntry],
    start: Optional[date],
    end: Optional[date],
) -> List[GroceryItem]:
    """Items to show for the date range ``start``..``end`` (inclusive).

    Manual and pinned items are always shown, as are items with a contribution
    that is not tied to a meal plan entry. Other items are shown when one of
    their entries is still included and is on the shelf or within the range.
    """

    entries_by_id = {entry.id: entry for entry in entries}

    def entry_in_scope(entry_id: Optional[str]) -> bool:
        if entry_id is None:
            return True
        entry = entries_by_id.get(entry_id)
        if entry is None or not entry.include_in_grocery:
            return False
        if entry.date is None:
            return True
        if start is not None and entry.date < start:
            return False
        if end is not None and entry.date > end:
            return False
        return True

    return [
        item
        for item in items
        if item.pinned or not item.sources or any(entry_in_scope(source.meal_plan_entry_id) for source in item.sources)
    ]
