"""History ledger of committed plate items."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from buffet_tracker.domain.catalog import MenuEntry, PriceMode
from buffet_tracker.domain.plates import PlateItem, Totals
from buffet_tracker.errors import InputError
from buffet_tracker.services.valuation import resolve_item_unit_price, unit_price

DRINK_CATEGORY = "Drink"
LIQUID_KEYWORDS = ("酒", "茶", "飲", "beer", "wine", "sake", "tea", "juice", "soda")


def is_liquid(item: PlateItem) -> bool:
    """Return True for drinks by category or by name keyword."""
    if item.category == DRINK_CATEGORY:
        return True
    name = item.name.casefold()
    return any(keyword in name for keyword in LIQUID_KEYWORDS)


def liquid_amount(item: PlateItem) -> float:
    """Return the liquid contribution of one line.

    Explicit volume (ml) supersedes the unit-count convention.
    """
    if item.ml is not None:
        return item.ml * item.count
    if is_liquid(item):
        return float(item.count)
    return 0.0


def fold_items(
    items: Iterable[PlateItem],
    mode: PriceMode,
    catalog: Sequence[MenuEntry] | None = None,
) -> Totals:
    """Reduce items to price, calorie and liquid totals."""
    price = 0.0
    calories = 0.0
    liquid = 0.0
    for item in items:
        if catalog is None:
            each = unit_price(item, mode)
        else:
            each = resolve_item_unit_price(item, catalog, mode)
        price += each * item.count
        calories += item.calories * item.count
        liquid += liquid_amount(item)
    return Totals(price=price, calories=calories, liquid=liquid)


@dataclass
class HistoryLedger:
    """Ordered committed items for one dining session."""

    items: list[PlateItem] = field(default_factory=list)

    def append(self, items: Sequence[PlateItem]) -> None:
        """Append committed items, dropping zero-count lines."""
        self.items.extend(item for item in items if item.count > 0)

    def replace_all(self, items: Sequence[PlateItem]) -> None:
        """Replace the whole history after an edit or delete."""
        self.items = [item for item in items if item.count > 0]

    def fold(
        self, mode: PriceMode, catalog: Sequence[MenuEntry] | None = None
    ) -> Totals:
        """Return totals derived from the current items."""
        return fold_items(self.items, mode, catalog)

    def dish_count(self) -> int:
        """Return the number of units eaten."""
        return sum(item.count for item in self.items)

    def clear(self, *, confirm: bool) -> None:
        """Irreversibly drop every item; requires explicit confirmation."""
        if not confirm:
            raise InputError("Clearing the history must be confirmed")
        self.items = []
