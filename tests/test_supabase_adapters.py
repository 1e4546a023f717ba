"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field

import pytest

from buffet_tracker.adapters.supabase_aggregate_repository import (
    SupabaseAggregateRepository,
)
from buffet_tracker.domain.leaderboard import PlateRecord, UserAggregate
from buffet_tracker.domain.plates import PlateItem
from buffet_tracker.errors import PersistenceError


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "upsert": []}
    )
    last_payload: object | None = None
    last_conflict: str | None = None
    last_filters: list[tuple[str, object]] = field(default_factory=list)
    last_order: str | None = None
    error: Exception | None = None

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        return self

    def upsert(  # type: ignore[no-untyped-def]
        self, payload, on_conflict: str = ""
    ) -> "FakeTable":
        self._action = "upsert"
        self.last_payload = payload
        self.last_conflict = on_conflict
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def order(self, column: str, desc: bool = False) -> "FakeTable":
        self.last_order = column
        return self

    def execute(self) -> FakeResponse:
        if self.error is not None:
            raise self.error
        action = getattr(self, "_action", "select")
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


STORED_DATA = {
    "totalPrice": 140,
    "totalCalories": 110,
    "totalDishes": 2,
    "totalLiquid": 0,
    "plates": [
        {
            "items": [
                {
                    "name": "Salmon",
                    "price": 70,
                    "restaurantPrice": 120,
                    "calories": 55,
                    "count": 2,
                    "category": "Sashimi",
                }
            ],
            "totalPrice": 140,
            "totalCalories": 110,
            "timestamp": 1700000000000,
        }
    ],
}


def test_aggregate_repository_reads_user_row() -> None:
    client = FakeSupabaseClient()
    table = client.table("leaderboard_users")
    table.queue("select", [{"user_id": "alice", "data": STORED_DATA}])
    repository = SupabaseAggregateRepository(client)

    aggregate = repository.get_aggregate("alice")

    assert aggregate is not None
    assert aggregate.total_price == 140
    assert aggregate.total_dishes == 2
    assert aggregate.plates[0].items[0].restaurant_price == 120
    assert aggregate.plates[0].timestamp == 1700000000000
    assert table.last_filters == [("user_id", "alice")]


def test_aggregate_repository_missing_user() -> None:
    repository = SupabaseAggregateRepository(FakeSupabaseClient())

    assert repository.get_aggregate("nobody") is None


def test_aggregate_repository_upserts_whole_aggregate() -> None:
    client = FakeSupabaseClient()
    repository = SupabaseAggregateRepository(client, table="scores")
    aggregate = UserAggregate(
        total_price=180,
        total_calories=140,
        total_dishes=1,
        total_liquid=1,
        plates=[
            PlateRecord(
                items=[PlateItem(name="Beer", price=180, category="Drink", ml=500)],
                total_price=180,
                total_calories=140,
                timestamp=5,
            )
        ],
    )

    repository.save_aggregate("bob", aggregate)

    table = client.tables["scores"]
    assert table.last_conflict == "user_id"
    payload = table.last_payload
    assert isinstance(payload, dict)
    assert payload["user_id"] == "bob"
    assert payload["data"]["totalLiquid"] == 1
    assert payload["data"]["plates"][0]["items"][0]["ml"] == 500
    assert "updated_at" in payload


def test_aggregate_repository_lists_rows() -> None:
    client = FakeSupabaseClient()
    table = client.table("leaderboard_users")
    table.queue(
        "select",
        [
            {"user_id": "alice", "data": STORED_DATA},
            {"user_id": "bob", "data": None},
            {"user_id": None, "data": STORED_DATA},
        ],
    )
    repository = SupabaseAggregateRepository(client)

    aggregates = repository.list_aggregates()

    assert list(aggregates) == ["alice", "bob"]
    assert aggregates["bob"] == UserAggregate()
    assert table.last_order == "user_id"


def test_aggregate_repository_wraps_store_errors() -> None:
    client = FakeSupabaseClient()
    client.table("leaderboard_users").error = RuntimeError("connection refused")
    repository = SupabaseAggregateRepository(client)

    with pytest.raises(PersistenceError, match="connection refused"):
        repository.save_aggregate("alice", UserAggregate())
