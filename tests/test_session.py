"""Tests for a diner's session flow."""

import asyncio
from datetime import datetime
from zoneinfo import ZoneInfo

from buffet_tracker.domain.catalog import PriceMode
from buffet_tracker.domain.plates import Committed
from buffet_tracker.services.cache import InMemoryCache
from buffet_tracker.services.catalog import CatalogService
from buffet_tracker.services.recognition import (
    RecognitionProvider,
    RecognitionService,
)
from buffet_tracker.services.session import DiningSession
from tests.conftest import FakeCatalogClient, FakeRecognitionClient


def _catalog_service(client: FakeCatalogClient) -> CatalogService:
    return CatalogService(
        client=client, cache=InMemoryCache(), url="https://sheets.example.com/a"
    )


def _recognition_service() -> RecognitionService:
    return RecognitionService(
        providers=[
            RecognitionProvider(
                name="fake", client=FakeRecognitionClient(), model="m"
            )
        ]
    )


def test_photo_to_commit_flow() -> None:
    catalog_client = FakeCatalogClient()
    session = asyncio.run(DiningSession.start(_catalog_service(catalog_client)))

    session.plate.capture(b"photo")
    asyncio.run(session.recognize(_recognition_service()))
    draft_totals = session.plate_totals()
    submission = session.commit_plate()

    assert session.catalog.from_sheet is True
    assert draft_totals.price == 250
    assert submission.total_price == 250
    assert submission.total_calories == 245
    assert [item.name for item in submission.items] == [
        "Salmon Sashimi",
        "Mystery Roll",
    ]
    assert isinstance(session.plate.state, Committed)
    assert session.ledger.dish_count() == 4


def test_toggle_price_mode_revalues_history() -> None:
    session = asyncio.run(DiningSession.start(_catalog_service(FakeCatalogClient())))
    session.plate.capture(b"photo")
    asyncio.run(session.recognize(_recognition_service()))
    session.commit_plate()

    assert session.toggle_price_mode() is PriceMode.HOTEL
    assert session.history_totals().price == 120 * 3 + 60
    assert session.toggle_price_mode() is PriceMode.MARKET
    assert session.history_totals().price == 250


def test_dashboard_reports_window_and_progress() -> None:
    session = asyncio.run(DiningSession.start(_catalog_service(FakeCatalogClient())))
    session.plate.start_manual()
    session.plate.rename_item(0, "Beer", session.catalog.entries)
    session.plate.update_item(0, price=180, calories=140, category="Drink", count=2)
    session.commit_plate()

    summary = session.dashboard(datetime(2026, 10, 19, 19, 0, tzinfo=ZoneInfo("UTC")))

    assert summary.window.window == "dinner"
    assert summary.totals.price == 360
    assert summary.totals.liquid == 2
    assert summary.dish_count == 2
    assert summary.progress.budget == 1580
    assert summary.progress.payback_score == 2
    assert summary.from_sheet is True


def test_refresh_catalog_forces_fetch_and_guide_uses_mode() -> None:
    catalog_client = FakeCatalogClient()
    catalog_service = _catalog_service(catalog_client)
    session = asyncio.run(DiningSession.start(catalog_service))

    asyncio.run(session.refresh_catalog(catalog_service))
    session.toggle_price_mode()
    guide = session.guide(category="Drink")

    assert len(catalog_client.calls) == 2
    assert [(row.entry.name, row.display_price) for row in guide] == [("Beer", 250)]
