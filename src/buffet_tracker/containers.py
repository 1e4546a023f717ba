"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from buffet_tracker.adapters.catalog_client import HttpxCatalogClient
from buffet_tracker.adapters.gemini_recognition_client import HttpxGeminiClient
from buffet_tracker.adapters.openai_recognition_client import OpenAIRecognitionClient
from buffet_tracker.adapters.supabase_aggregate_repository import (
    SupabaseAggregateRepository,
)
from buffet_tracker.config import Settings, parse_model_list
from buffet_tracker.services.cache import InMemoryCache
from buffet_tracker.services.catalog import CatalogService
from buffet_tracker.services.leaderboard import LeaderboardService
from buffet_tracker.services.recognition import (
    RecognitionProvider,
    RecognitionService,
)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    catalog_service: CatalogService
    recognition_service: RecognitionService
    leaderboard_service: LeaderboardService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    aggregate_repository = SupabaseAggregateRepository(
        supabase_client, table=resolved_settings.leaderboard_table
    )
    catalog_client = HttpxCatalogClient.create()
    catalog_service = CatalogService(
        client=catalog_client,
        cache=InMemoryCache(),
        url=resolved_settings.catalog_url,
        ttl_seconds=resolved_settings.catalog_ttl_seconds,
    )

    openai_client = OpenAIRecognitionClient.create(resolved_settings.openai_api_key)
    providers = [
        RecognitionProvider(name="openai", client=openai_client, model=model)
        for model in parse_model_list(resolved_settings.openai_models)
    ]
    gemini_client: HttpxGeminiClient | None = None
    if resolved_settings.gemini_api_key:
        gemini_client = HttpxGeminiClient.create(
            api_key=resolved_settings.gemini_api_key,
            base_url=resolved_settings.gemini_base_url,
        )
        providers.append(
            RecognitionProvider(
                name="gemini",
                client=gemini_client,
                model=resolved_settings.gemini_model,
            )
        )
    recognition_service = RecognitionService(providers=providers)
    leaderboard_service = LeaderboardService(aggregate_repository)

    async def close_resources() -> None:
        await catalog_client.close()
        await openai_client.close()
        if gemini_client is not None:
            await gemini_client.close()

    return AppContainer(
        settings=resolved_settings,
        catalog_service=catalog_service,
        recognition_service=recognition_service,
        leaderboard_service=leaderboard_service,
        close_resources=close_resources,
    )
