"""Cross-user aggregation: per-user totals, rankings and dish popularity.

Every ranking is recomputed from the persisted per-user plate history on
read. There are no separately maintained counters that could drift from the
aggregates.

Each write is a read-modify-write of one user record with last-write-wins
semantics: two concurrent submissions for the same user may lose one
plate. A failed write leaves the previous record untouched because the
new aggregate is built in memory and persisted in a single call.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from buffet_tracker.domain.catalog import PriceMode
from buffet_tracker.domain.leaderboard import (
    CategoryTotal,
    DishPopularity,
    LeaderboardStats,
    PlateRecord,
    RankedUser,
    RankMetric,
    UserAggregate,
    metric_value,
)
from buffet_tracker.domain.plates import DEFAULT_CATEGORY, PlateItem
from buffet_tracker.errors import InputError
from buffet_tracker.services.ledger import fold_items, liquid_amount

RANK_LIMIT = 20
POPULARITY_LIMIT = 50


class AggregateRepository(Protocol):
    """Persistence interface for per-user aggregates."""

    def get_aggregate(self, user_id: str) -> UserAggregate | None:
        """Return the stored aggregate for a user, if any."""

    def save_aggregate(self, user_id: str, aggregate: UserAggregate) -> None:
        """Replace the stored aggregate for a user."""

    def list_aggregates(self) -> dict[str, UserAggregate]:
        """Return every stored aggregate keyed by user id."""


@dataclass(frozen=True)
class Leaderboard:
    """All rankings plus global figures."""

    rankings: dict[RankMetric, list[RankedUser]]
    stats: LeaderboardStats


def now_ms() -> int:
    """Return the current time in epoch milliseconds."""
    return int(datetime.now(tz=UTC).timestamp() * 1000)


@dataclass
class LeaderboardService:
    """Applies plate submissions and history edits to user aggregates."""

    repository: AggregateRepository
    clock: Callable[[], int] = now_ms

    def submit(
        self,
        user_id: str,
        items: Sequence[PlateItem],
        total_price: float,
        total_calories: float,
        timestamp: int | None = None,
    ) -> UserAggregate:
        """Add one plate to a user's running totals.

        Price and calorie totals are taken as computed by the caller. This
        path is additive only; use update_history for edits and deletions.
        """
        _require_user(user_id)
        current = self.repository.get_aggregate(user_id) or UserAggregate()
        plate_items = [item for item in items if item.count > 0]
        plate = PlateRecord(
            items=plate_items,
            total_price=total_price or 0.0,
            total_calories=total_calories or 0.0,
            timestamp=timestamp or self.clock(),
        )
        updated = UserAggregate(
            total_price=current.total_price + plate.total_price,
            total_calories=current.total_calories + plate.total_calories,
            total_dishes=current.total_dishes
            + sum(item.count for item in plate_items),
            total_liquid=current.total_liquid
            + sum(liquid_amount(item) for item in plate_items),
            plates=[*current.plates, plate],
        )
        self.repository.save_aggregate(user_id, updated)
        return updated

    def update_history(
        self,
        user_id: str,
        updated_history: Sequence[PlateItem],
        mode: PriceMode = PriceMode.MARKET,
        timestamp: int | None = None,
    ) -> UserAggregate:
        """Recompute a user's totals from a complete edited history.

        The stored plates collapse into one record. Without an explicit
        timestamp it keeps the latest replaced plate's timestamp, so repeated
        identical calls produce identical aggregates.
        """
        _require_user(user_id)
        current = self.repository.get_aggregate(user_id)
        items = [item for item in updated_history if item.count > 0]
        totals = fold_items(items, mode)
        if timestamp is None:
            previous = [plate.timestamp for plate in current.plates] if current else []
            timestamp = max(previous) if previous else self.clock()
        updated = UserAggregate(
            total_price=totals.price,
            total_calories=totals.calories,
            total_dishes=sum(item.count for item in items),
            total_liquid=totals.liquid,
            plates=[
                PlateRecord(
                    items=items,
                    total_price=totals.price,
                    total_calories=totals.calories,
                    timestamp=timestamp,
                )
            ],
        )
        self.repository.save_aggregate(user_id, updated)
        return updated

    def get_user(self, user_id: str) -> UserAggregate | None:
        """Return one user's aggregate."""
        _require_user(user_id)
        return self.repository.get_aggregate(user_id)

    def rank(self, metric: RankMetric, limit: int = RANK_LIMIT) -> list[RankedUser]:
        """Return the top users by a metric, ties ordered by user id."""
        return _rank(self._ranked_users(), metric, limit)

    def popularity(self, limit: int = POPULARITY_LIMIT) -> list[DishPopularity]:
        """Return the most eaten dishes across every stored plate."""
        counts: dict[str, int] = {}
        prices: dict[str, float] = {}
        for plate in _plates_by_time(self.repository.list_aggregates()):
            for item in plate.items:
                name = item.name.strip()
                if not name:
                    continue
                counts[name] = counts.get(name, 0) + item.count
                if item.price > 0:
                    prices[name] = item.price
        dishes = [
            DishPopularity(name=name, count=count, price=prices.get(name, 0.0))
            for name, count in counts.items()
        ]
        dishes.sort(key=lambda dish: dish.count, reverse=True)
        return dishes[:limit]

    def category_breakdown(self) -> list[CategoryTotal]:
        """Return price eaten per category across all users."""
        totals: dict[str, float] = {}
        for aggregate in self.repository.list_aggregates().values():
            for plate in aggregate.plates:
                for item in plate.items:
                    category = item.category or DEFAULT_CATEGORY
                    totals[category] = totals.get(category, 0.0) + (
                        item.price * item.count
                    )
        breakdown = [
            CategoryTotal(category=category, total=total)
            for category, total in totals.items()
        ]
        breakdown.sort(key=lambda row: row.total, reverse=True)
        return breakdown

    def leaderboard(self, limit: int = RANK_LIMIT) -> Leaderboard:
        """Return every ranking and global stats from one snapshot."""
        users = self._ranked_users()
        return Leaderboard(
            rankings={metric: _rank(users, metric, limit) for metric in RankMetric},
            stats=_stats(users),
        )

    def _ranked_users(self) -> list[RankedUser]:
        aggregates = self.repository.list_aggregates()
        return [
            RankedUser(user_id=user_id, aggregate=aggregates[user_id])
            for user_id in sorted(aggregates)
        ]


def _require_user(user_id: str) -> None:
    if not user_id or not str(user_id).strip():
        raise InputError("userId required")


def _rank(
    users: list[RankedUser], metric: RankMetric, limit: int
) -> list[RankedUser]:
    ordered = sorted(
        users, key=lambda user: metric_value(user.aggregate, metric), reverse=True
    )
    return ordered[:limit]


def _plates_by_time(aggregates: dict[str, UserAggregate]) -> list[PlateRecord]:
    plates = [plate for aggregate in aggregates.values() for plate in aggregate.plates]
    return sorted(plates, key=lambda plate: plate.timestamp)


def _stats(users: list[RankedUser]) -> LeaderboardStats:
    return LeaderboardStats(
        user_count=len(users),
        plate_count=sum(len(user.aggregate.plates) for user in users),
        total_price=sum(user.aggregate.total_price for user in users),
        total_calories=sum(user.aggregate.total_calories for user in users),
        total_dishes=sum(user.aggregate.total_dishes for user in users),
        total_liquid=sum(user.aggregate.total_liquid for user in users),
    )
