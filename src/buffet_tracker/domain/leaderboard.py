"""Domain models for server-side aggregation."""

from dataclasses import dataclass, field
from enum import StrEnum

from buffet_tracker.domain.plates import PlateItem, item_from_payload, item_to_payload


class RankMetric(StrEnum):
    """Aggregate field a leaderboard is ordered by."""

    PRICE = "price"
    CALORIES = "calories"
    DISHES = "dishes"
    LIQUID = "liquid"


@dataclass(frozen=True)
class PlateRecord:
    """A submitted plate as stored in a user aggregate."""

    items: list[PlateItem]
    total_price: float
    total_calories: float
    timestamp: int


@dataclass(frozen=True)
class UserAggregate:
    """Cumulative totals and plate history for one user."""

    total_price: float = 0.0
    total_calories: float = 0.0
    total_dishes: int = 0
    total_liquid: float = 0.0
    plates: list[PlateRecord] = field(default_factory=list)


@dataclass(frozen=True)
class RankedUser:
    """Leaderboard row."""

    user_id: str
    aggregate: UserAggregate


@dataclass(frozen=True)
class DishPopularity:
    """Total consumption of one dish name across all users."""

    name: str
    count: int
    price: float


@dataclass(frozen=True)
class CategoryTotal:
    """Price contribution of one category across all users."""

    category: str
    total: float


@dataclass(frozen=True)
class LeaderboardStats:
    """Global figures across every stored aggregate."""

    user_count: int
    plate_count: int
    total_price: float
    total_calories: float
    total_dishes: int
    total_liquid: float


def metric_value(aggregate: UserAggregate, metric: RankMetric) -> float:
    """Return the aggregate field selected by a rank metric."""
    if metric is RankMetric.PRICE:
        return aggregate.total_price
    if metric is RankMetric.CALORIES:
        return aggregate.total_calories
    if metric is RankMetric.DISHES:
        return aggregate.total_dishes
    return aggregate.total_liquid


def aggregate_to_payload(aggregate: UserAggregate) -> dict[str, object]:
    """Serialize an aggregate to its persisted JSON shape."""
    return {
        "totalPrice": aggregate.total_price,
        "totalCalories": aggregate.total_calories,
        "totalDishes": aggregate.total_dishes,
        "totalLiquid": aggregate.total_liquid,
        "plates": [
            {
                "items": [item_to_payload(item) for item in plate.items],
                "totalPrice": plate.total_price,
                "totalCalories": plate.total_calories,
                "timestamp": plate.timestamp,
            }
            for plate in aggregate.plates
        ],
    }


def aggregate_from_payload(payload: dict[str, object]) -> UserAggregate:
    """Parse a persisted aggregate, tolerating missing fields."""
    plates_raw = payload.get("plates") or []
    plates = []
    if isinstance(plates_raw, list):
        for plate in plates_raw:
            if not isinstance(plate, dict):
                continue
            items_raw = plate.get("items") or []
            plates.append(
                PlateRecord(
                    items=[
                        item_from_payload(item)
                        for item in items_raw
                        if isinstance(item, dict)
                    ],
                    total_price=float(plate.get("totalPrice") or 0.0),
                    total_calories=float(plate.get("totalCalories") or 0.0),
                    timestamp=int(plate.get("timestamp") or 0),
                )
            )
    return UserAggregate(
        total_price=float(payload.get("totalPrice") or 0.0),
        total_calories=float(payload.get("totalCalories") or 0.0),
        total_dishes=int(payload.get("totalDishes") or 0),
        total_liquid=float(payload.get("totalLiquid") or 0.0),
        plates=plates,
    )
