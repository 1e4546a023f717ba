"""Menu catalog loading, parsing and the value guide."""

import logging
import math
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from buffet_tracker.adapters.catalog_client import CatalogClient
from buffet_tracker.domain.catalog import (
    CatalogSnapshot,
    GuideEntry,
    GuideSort,
    MenuEntry,
    PriceMode,
)
from buffet_tracker.services.cache import Cache
from buffet_tracker.services.valuation import unit_price

_logger = logging.getLogger(__name__)

MIN_ROW_TOKENS = 3
LOW_CALORIE_THRESHOLD = 5

DEFAULT_MENU: tuple[MenuEntry, ...] = (
    MenuEntry("Sashimi", "鮭魚 (Salmon)", 70, 120, 55, "現點現切的基本魚種"),
    MenuEntry("Sashimi", "紅魽 (Amberjack)", 80, 150, 45, "配合時令供應的魚種"),
    MenuEntry("Sushi", "炙燒干貝握壽司", 100, 180, 45, "生食級干貝，鮮甜"),
    MenuEntry("Yakimono", "香魚姿燒", 180, 280, 220, "串波技法，NAGOMI 必吃"),
    MenuEntry("Agemono", "廣島炸牡蠣", 100, 160, 140, "爆漿鮮味，必搶"),
    MenuEntry("Drink", "三得利頂級生啤", 180, 250, 140, "無限暢飲，神級泡沫"),
)

CATEGORY_LABELS: dict[str, str] = {
    "Sashimi": "現切刺身",
    "Sushi": "壽司手卷",
    "Kobachi": "懷石小缽",
    "Yakimono": "職人烤物",
    "Agemono": "炸物天婦羅",
    "Soup": "湯品/鍋物",
    "Steamed Dish": "蒸物",
    "Cooked Dish": "熱菜/鐵板",
    "Drink": "飲品酒水",
    "Dessert": "精緻甜點",
}

# Legacy sheets without a recognizable category header use this column order.
_POSITIONAL_COLUMNS = {
    "category": 0,
    "name": 1,
    "price": 2,
    "calories": 3,
    "desc": 4,
    "restaurant_price": 5,
}


def split_csv_line(line: str) -> list[str]:
    """Split one CSV line, honouring quoted fields and doubled quotes."""
    fields: list[str] = []
    current: list[str] = []
    inside_quote = False
    index = 0
    while index < len(line):
        char = line[index]
        if char == '"':
            if inside_quote and index + 1 < len(line) and line[index + 1] == '"':
                current.append('"')
                index += 1
            else:
                inside_quote = not inside_quote
        elif char == "," and not inside_quote:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        index += 1
    fields.append("".join(current))
    return fields


def parse_catalog_csv(csv_text: str) -> list[MenuEntry]:
    """Parse a spreadsheet CSV export into menu entries.

    Header names are matched by case-insensitive substring, in English or
    Chinese, so columns may appear in any order. Rows with fewer than three
    fields are skipped. Missing or non-numeric numbers become 0.
    """
    if not csv_text.strip():
        return []
    lines = re.split(r"\r?\n", csv_text)
    headers = [
        header.strip().lower()
        for header in split_csv_line(lines[0].lstrip("\ufeff").strip())
    ]
    columns = _map_columns(headers)

    entries: list[MenuEntry] = []
    for raw_line in lines[1:]:
        line = raw_line.strip()
        if not line:
            continue
        tokens = split_csv_line(line)
        if len(tokens) < MIN_ROW_TOKENS:
            continue
        entries.append(
            MenuEntry(
                category=_field(tokens, columns["category"]),
                name=_field(tokens, columns["name"]),
                price=_number(_field(tokens, columns["price"])),
                restaurant_price=_number(_field(tokens, columns["restaurant_price"])),
                calories=_number(_field(tokens, columns["calories"])),
                desc=_field(tokens, columns["desc"]),
            )
        )
    return entries


def _map_columns(headers: list[str]) -> dict[str, int]:
    columns = {
        "category": _find(headers, ("category", "分類")),
        "name": _find(headers, ("name", "品名")),
        "price": _find(
            headers,
            ("price", "市價"),
            exclude=("restaurant", "hotel", "定價"),
        ),
        "restaurant_price": _find(headers, ("restaurant", "定價", "飯店", "hotel")),
        "calories": _find(headers, ("calor", "熱量")),
        "desc": _find(headers, ("desc", "描述")),
    }
    if columns["category"] == -1:
        return dict(_POSITIONAL_COLUMNS)
    return columns


def _find(
    headers: list[str], synonyms: tuple[str, ...], exclude: tuple[str, ...] = ()
) -> int:
    for index, header in enumerate(headers):
        if any(term in header for term in synonyms) and not any(
            term in header for term in exclude
        ):
            return index
    return -1


def _field(tokens: list[str], index: int) -> str:
    if 0 <= index < len(tokens):
        return tokens[index].strip()
    return ""


def _number(text: str) -> float:
    if not text:
        return 0.0
    try:
        value = float(text)
    except ValueError:
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


@dataclass
class CatalogService:
    """Loads the published catalog, falling back to the built-in menu."""

    client: CatalogClient
    cache: Cache
    url: str
    ttl_seconds: int = 300
    fallback: list[MenuEntry] = field(default_factory=lambda: list(DEFAULT_MENU))

    async def load(
        self, url: str | None = None, *, force: bool = False
    ) -> CatalogSnapshot:
        """Return the catalog, fetching it unless a fresh copy is cached."""
        target = url or self.url
        cache_key = f"catalog:{target}"
        if force:
            self.cache.invalidate(cache_key)
        else:
            cached = self.cache.get(cache_key)
            if isinstance(cached, CatalogSnapshot):
                return cached

        try:
            text = await self.client.fetch_text(target)
        except Exception as exc:
            _logger.warning("Catalog fetch failed, using default menu: %s", exc)
            return self.default_snapshot()

        entries = parse_catalog_csv(text)
        if not entries:
            _logger.warning("Catalog at %s has no rows, using default menu", target)
            return self.default_snapshot()

        snapshot = CatalogSnapshot(entries=entries, from_sheet=True)
        self.cache.set(cache_key, snapshot, ttl_seconds=self.ttl_seconds)
        _logger.info("Loaded %s catalog entries", len(entries))
        return snapshot

    def default_snapshot(self) -> CatalogSnapshot:
        """Return the built-in catalog."""
        return CatalogSnapshot(entries=list(self.fallback), from_sheet=False)


def category_label(category: str) -> str:
    """Return the localized display label for a category."""
    return CATEGORY_LABELS.get(category, category)


def list_categories(catalog: Sequence[MenuEntry]) -> list[str]:
    """Return distinct categories in first-seen catalog order."""
    seen: list[str] = []
    for entry in catalog:
        if entry.category not in seen:
            seen.append(entry.category)
    return seen


def build_guide(  # noqa: PLR0913
    catalog: Sequence[MenuEntry],
    mode: PriceMode,
    *,
    sort: GuideSort = GuideSort.PRICE_PER_KCAL_DESC,
    category: str | None = None,
    ranking: bool = False,
    exclude_low_calorie: bool = True,
) -> list[GuideEntry]:
    """Annotate catalog entries with display price and value per kcal.

    The ranking view drops dishes without a price and, optionally, dishes at
    or below the low-calorie threshold (tea, water).
    """
    guide = []
    for entry in catalog:
        if category is not None and entry.category != category:
            continue
        display_price = unit_price(entry, mode)
        per_kcal = 0.0
        if entry.calories > 0:
            per_kcal = round(display_price / entry.calories, 2)
        guide.append(
            GuideEntry(
                entry=entry, display_price=display_price, price_per_kcal=per_kcal
            )
        )
    if ranking:
        if exclude_low_calorie:
            guide = [g for g in guide if g.entry.calories > LOW_CALORIE_THRESHOLD]
        guide = [g for g in guide if g.display_price > 0]

    if sort is GuideSort.PRICE_DESC:
        return sorted(guide, key=lambda g: g.display_price, reverse=True)
    if sort is GuideSort.CALORIES_ASC:
        return sorted(guide, key=lambda g: g.entry.calories)
    return sorted(guide, key=lambda g: g.price_per_kcal, reverse=True)
