"""Domain models for plates and committed plate items."""

import math
from dataclasses import dataclass, field

DEFAULT_CATEGORY = "General"


@dataclass(frozen=True)
class PlateItem:
    """One line of a draft or committed plate."""

    name: str
    price: float = 0.0
    restaurant_price: float = 0.0
    calories: float = 0.0
    count: int = 1
    category: str = DEFAULT_CATEGORY
    ml: float | None = None


@dataclass(frozen=True)
class Totals:
    """Price, calorie and liquid totals derived from a list of items."""

    price: float
    calories: float
    liquid: float


@dataclass(frozen=True)
class Empty:
    """No image and no items."""


@dataclass(frozen=True)
class Capturing:
    """An image is attached but recognition has not run."""

    image: bytes


@dataclass(frozen=True)
class Recognizing:
    """Recognition of the attached image is in flight."""

    image: bytes


@dataclass(frozen=True)
class Draft:
    """Editable plate items awaiting commit or discard."""

    items: list[PlateItem]
    comment: str = ""
    image: bytes | None = None


@dataclass(frozen=True)
class Committed:
    """Plate items were appended to the history ledger."""

    items: list[PlateItem] = field(default_factory=list)


@dataclass(frozen=True)
class Discarded:
    """Draft was dropped without touching the ledger."""


PlateState = Empty | Capturing | Recognizing | Draft | Committed | Discarded


def item_to_payload(item: PlateItem) -> dict[str, object]:
    """Serialize a plate item to the camelCase wire format."""
    payload: dict[str, object] = {
        "name": item.name,
        "price": item.price,
        "restaurantPrice": item.restaurant_price,
        "calories": item.calories,
        "count": item.count,
        "category": item.category,
    }
    if item.ml is not None:
        payload["ml"] = item.ml
    return payload


def item_from_payload(payload: dict[str, object]) -> PlateItem:
    """Build a plate item from a loosely typed wire payload."""
    raw_count = payload.get("count")
    ml = payload.get("ml")
    return PlateItem(
        name=str(payload.get("name") or ""),
        price=_to_float(payload.get("price")),
        restaurant_price=_to_float(payload.get("restaurantPrice")),
        calories=_to_float(payload.get("calories")),
        count=1 if raw_count is None else max(0, int(_to_float(raw_count))),
        category=str(payload.get("category") or DEFAULT_CATEGORY),
        ml=_to_float(ml) if ml is not None else None,
    )


def _to_float(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        return float(value) if math.isfinite(value) else 0.0
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return 0.0
        return parsed if math.isfinite(parsed) else 0.0
    return 0.0
