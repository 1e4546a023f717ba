"""Valuation of plate items against the menu catalog.

Market prices and hotel (restaurant list) prices are related by a fixed
conversion ratio. Whichever price is missing is derived from the other, so
every dish with at least one known price has a value in both modes.

Catalog matching is loose: a candidate matches an entry when
either name contains the other. When several entries qualify, the first in
catalog order wins. This is not guaranteed to be the closest match.
"""

import math
from collections.abc import Sequence
from typing import Protocol

from buffet_tracker.domain.catalog import MenuEntry, PriceMode
from buffet_tracker.domain.plates import DEFAULT_CATEGORY, PlateItem
from buffet_tracker.domain.recognition import RecognizedItem

PRICE_CONVERSION_RATIO = 1.5
SUGGESTION_LIMIT = 6


class Priced(Protocol):
    """Anything carrying both a market and a restaurant price."""

    price: float
    restaurant_price: float


def round_half_up(value: float) -> int:
    """Round halves away from zero for non-negative values."""
    return math.floor(value + 0.5)


def unit_price(entry: Priced, mode: PriceMode) -> float:
    """Return the per-unit value of a dish under a pricing mode."""
    if mode is PriceMode.HOTEL:
        if entry.restaurant_price > 0:
            return entry.restaurant_price
        return float(round_half_up(max(entry.price, 0) * PRICE_CONVERSION_RATIO))
    if entry.price > 0:
        return entry.price
    return float(round_half_up(max(entry.restaurant_price, 0) / PRICE_CONVERSION_RATIO))


def match_catalog(name: str, catalog: Sequence[MenuEntry]) -> MenuEntry | None:
    """Return the first entry whose name contains, or is contained in, name."""
    candidate = name.strip().casefold()
    if not candidate:
        return None
    for entry in catalog:
        entry_name = entry.name.strip().casefold()
        if not entry_name:
            continue
        if entry_name in candidate or candidate in entry_name:
            return entry
    return None


def suggest(
    query: str, catalog: Sequence[MenuEntry], limit: int = SUGGESTION_LIMIT
) -> list[MenuEntry]:
    """Return catalog entries whose name contains the query, case-insensitively."""
    needle = query.strip().casefold()
    if not needle:
        return []
    matches = [entry for entry in catalog if needle in entry.name.casefold()]
    return matches[:limit]


def resolve_recognized_item(
    item: RecognizedItem, catalog: Sequence[MenuEntry]
) -> PlateItem:
    """Enrich a recognizer guess with catalog metadata when a match exists."""
    match = match_catalog(item.name, catalog)
    count = item.count if item.count else 1
    if match is None:
        return PlateItem(
            name=item.name,
            price=item.price or 0.0,
            restaurant_price=0.0,
            calories=item.calories or 0.0,
            count=count,
            category=DEFAULT_CATEGORY,
        )
    return PlateItem(
        name=item.name,
        price=match.price or item.price or 0.0,
        restaurant_price=match.restaurant_price,
        calories=match.calories or item.calories or 0.0,
        count=count,
        category=match.category or DEFAULT_CATEGORY,
    )


def resolve_item_unit_price(
    item: PlateItem, catalog: Sequence[MenuEntry], mode: PriceMode
) -> float:
    """Re-resolve an item's unit price against the catalog for a mode."""
    match = match_catalog(item.name, catalog)
    if match is not None and (match.price > 0 or match.restaurant_price > 0):
        return unit_price(match, mode)
    return unit_price(item, mode)
