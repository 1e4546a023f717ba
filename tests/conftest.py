"""Shared test fixtures."""

from dataclasses import dataclass, field

import pytest

from buffet_tracker.adapters.catalog_client import CatalogClient
from buffet_tracker.config import Settings
from buffet_tracker.containers import AppContainer
from buffet_tracker.domain.catalog import MenuEntry
from buffet_tracker.domain.leaderboard import UserAggregate
from buffet_tracker.services.cache import InMemoryCache
from buffet_tracker.services.catalog import CatalogService
from buffet_tracker.services.leaderboard import AggregateRepository, LeaderboardService
from buffet_tracker.services.recognition import (
    RecognitionClient,
    RecognitionProvider,
    RecognitionService,
)

SAMPLE_CSV = (
    "Category,Name,Price,RestaurantPrice,Calories,Desc\n"
    "Sashimi,Salmon,70,120,55,Fresh cut\n"
    "Sushi,Scallop Nigiri,100,180,45,Seared\n"
    "Drink,Beer,180,250,140,Tap\n"
    "Dessert,Green Tea Pudding,0,90,120,Seasonal\n"
)

SAMPLE_MENU = [
    MenuEntry("Sashimi", "Salmon", 70, 120, 55, "Fresh cut"),
    MenuEntry("Sushi", "Scallop Nigiri", 100, 180, 45, "Seared"),
    MenuEntry("Drink", "Beer", 180, 250, 140, "Tap"),
    MenuEntry("Dessert", "Green Tea Pudding", 0, 90, 120, "Seasonal"),
]


@dataclass
class InMemoryAggregateRepository(AggregateRepository):
    """In-memory aggregate repository for tests."""

    aggregates: dict[str, UserAggregate] = field(default_factory=dict)
    writes: int = 0

    def get_aggregate(self, user_id: str) -> UserAggregate | None:
        return self.aggregates.get(user_id)

    def save_aggregate(self, user_id: str, aggregate: UserAggregate) -> None:
        self.aggregates[user_id] = aggregate
        self.writes += 1

    def list_aggregates(self) -> dict[str, UserAggregate]:
        return dict(self.aggregates)


@dataclass
class FailingAggregateRepository(InMemoryAggregateRepository):
    """Repository whose writes always fail."""

    def save_aggregate(self, user_id: str, aggregate: UserAggregate) -> None:
        raise RuntimeError("store unreachable")


@dataclass
class FakeRecognitionClient(RecognitionClient):
    """Fake recognition client returning a fixed reply."""

    reply: str = (
        '```json\n{"items": [{"name": "Salmon Sashimi", "price": 60, '
        '"calories": 50, "count": 3}, {"name": "Mystery Roll", "price": 40, '
        '"calories": 80}], "comment": "Nice plate"}\n```'
    )
    calls: list[dict[str, str]] = field(default_factory=list)

    async def complete(self, *, model: str, prompt: str, image_data_url: str) -> str:
        self.calls.append(
            {"model": model, "prompt": prompt, "image_data_url": image_data_url}
        )
        return self.reply


@dataclass
class FailingRecognitionClient(RecognitionClient):
    """Recognition client that always raises."""

    message: str = "model unavailable"
    calls: int = 0

    async def complete(self, *, model: str, prompt: str, image_data_url: str) -> str:
        self.calls += 1
        raise RuntimeError(self.message)


@dataclass
class FakeCatalogClient(CatalogClient):
    """Fake catalog client serving a fixed CSV body."""

    text: str = SAMPLE_CSV
    error: Exception | None = None
    calls: list[str] = field(default_factory=list)

    async def fetch_text(self, url: str) -> str:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        openai_api_key="openai-key",
        catalog_url="https://sheets.example.com/menu.csv",
    )


@pytest.fixture
def aggregate_repository() -> InMemoryAggregateRepository:
    return InMemoryAggregateRepository()


@pytest.fixture
def catalog_client() -> FakeCatalogClient:
    return FakeCatalogClient()


@pytest.fixture
def recognition_client() -> FakeRecognitionClient:
    return FakeRecognitionClient()


@pytest.fixture
def container(
    settings: Settings,
    aggregate_repository: InMemoryAggregateRepository,
    catalog_client: FakeCatalogClient,
    recognition_client: FakeRecognitionClient,
) -> AppContainer:
    catalog_service = CatalogService(
        client=catalog_client,
        cache=InMemoryCache(),
        url=settings.catalog_url,
    )
    recognition_service = RecognitionService(
        providers=[
            RecognitionProvider(
                name="fake", client=recognition_client, model="fake-model"
            )
        ]
    )
    closed: list[bool] = []

    async def close_resources() -> None:
        closed.append(True)

    return AppContainer(
        settings=settings,
        catalog_service=catalog_service,
        recognition_service=recognition_service,
        leaderboard_service=LeaderboardService(
            aggregate_repository, clock=lambda: 1_700_000_000_000
        ),
        close_resources=close_resources,
    )
