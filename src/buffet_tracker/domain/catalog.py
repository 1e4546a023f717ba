"""Domain models for the buffet menu catalog."""

from dataclasses import dataclass
from enum import StrEnum


class PriceMode(StrEnum):
    """Valuation policy applied to catalog prices."""

    MARKET = "market"
    HOTEL = "hotel"


@dataclass(frozen=True)
class MenuEntry:
    """Single dish in the menu catalog."""

    category: str
    name: str
    price: float
    restaurant_price: float
    calories: float
    desc: str = ""


@dataclass(frozen=True)
class GuideEntry:
    """Catalog entry annotated for the menu value guide."""

    entry: MenuEntry
    display_price: float
    price_per_kcal: float


class GuideSort(StrEnum):
    """Ordering options for the menu value guide."""

    PRICE_PER_KCAL_DESC = "cp_desc"
    PRICE_DESC = "price_desc"
    CALORIES_ASC = "cal_asc"


@dataclass(frozen=True)
class CatalogSnapshot:
    """Catalog entries together with where they came from."""

    entries: list[MenuEntry]
    from_sheet: bool
