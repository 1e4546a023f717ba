"""Supabase repository for per-user leaderboard aggregates."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from buffet_tracker.domain.leaderboard import (
    UserAggregate,
    aggregate_from_payload,
    aggregate_to_payload,
)
from buffet_tracker.errors import PersistenceError
from buffet_tracker.services.leaderboard import AggregateRepository


@dataclass
class SupabaseAggregateRepository(AggregateRepository):
    """Stores each user's aggregate as one JSON row keyed by user id."""

    client: Client
    table: str = "leaderboard_users"

    def get_aggregate(self, user_id: str) -> UserAggregate | None:
        """Return the stored aggregate for a user."""
        response = _execute(
            self.client.table(self.table)
            .select("user_id, data")
            .eq("user_id", user_id)
            .limit(1),
            action="read",
        )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    def save_aggregate(self, user_id: str, aggregate: UserAggregate) -> None:
        """Upsert the whole aggregate in one statement."""
        _execute(
            self.client.table(self.table).upsert(
                {
                    "user_id": user_id,
                    "data": aggregate_to_payload(aggregate),
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                },
                on_conflict="user_id",
            ),
            action="write",
        )

    def list_aggregates(self) -> dict[str, UserAggregate]:
        """Return every aggregate keyed by user id."""
        response = _execute(
            self.client.table(self.table).select("user_id, data").order("user_id"),
            action="list",
        )
        return {
            str(row["user_id"]): _parse_row(row)
            for row in response.data or []
            if row.get("user_id")
        }


def _execute(query, *, action: str):  # type: ignore[no-untyped-def]
    try:
        return query.execute()
    except Exception as exc:
        raise PersistenceError(f"Aggregate {action} failed: {exc}") from exc


def _parse_row(row: dict[str, object]) -> UserAggregate:
    data = row.get("data")
    if not isinstance(data, dict):
        return UserAggregate()
    return aggregate_from_payload(data)
