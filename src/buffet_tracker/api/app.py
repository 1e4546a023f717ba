"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from buffet_tracker.api.models import (
    AnalyzeRequest,
    SubmitPlateRequest,
    UpdateHistoryRequest,
)
from buffet_tracker.app_logging import configure_logging
from buffet_tracker.containers import AppContainer
from buffet_tracker.domain.catalog import GuideEntry, GuideSort, MenuEntry, PriceMode
from buffet_tracker.domain.leaderboard import (
    CategoryTotal,
    DishPopularity,
    LeaderboardStats,
    RankedUser,
    RankMetric,
    aggregate_to_payload,
)
from buffet_tracker.domain.plates import item_to_payload
from buffet_tracker.errors import InputError
from buffet_tracker.services.catalog import build_guide, list_categories
from buffet_tracker.services.recognition import decode_image
from buffet_tracker.services.valuation import resolve_recognized_item

UPDATE_HISTORY_ACTION = "updateHistory"

_RANKING_KEYS = {
    RankMetric.PRICE: "byPrice",
    RankMetric.CALORIES: "byCalories",
    RankMetric.DISHES: "byDishes",
    RankMetric.LIQUID: "byLiquid",
}


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    async def respond(
        description: str, handler: Callable[[], Awaitable[dict[str, object]]]
    ) -> JSONResponse:
        try:
            return JSONResponse(await handler())
        except (InputError, ValidationError) as exc:
            return _error(400, _error_message(exc))
        except Exception as exc:
            logger.exception("%s failed", description)
            return _error(500, str(exc) or "Internal server error")

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/api/leaderboard")
    async def post_leaderboard(request: Request) -> JSONResponse:
        """Submit a plate, or replace a user's history after local edits."""
        state_container: AppContainer = request.app.state.container
        service = state_container.leaderboard_service
        body = await _json_body(request)
        if body is None:
            return _error(400, "Invalid JSON body")

        async def handle() -> dict[str, object]:
            if body.get("action") == UPDATE_HISTORY_ACTION:
                update = UpdateHistoryRequest.model_validate(body)
                aggregate = service.update_history(
                    update.user_id or "",
                    [item.to_item() for item in update.updated_history],
                    update.price_mode,
                    update.timestamp,
                )
                logger.info("Replaced history for %s", update.user_id)
            else:
                submission = SubmitPlateRequest.model_validate(body)
                aggregate = service.submit(
                    submission.user_id or "",
                    [item.to_item() for item in submission.items],
                    submission.total_price or 0.0,
                    submission.total_calories or 0.0,
                    submission.timestamp,
                )
                logger.info("Recorded plate for %s", submission.user_id)
            return {"success": True, "userData": aggregate_to_payload(aggregate)}

        return await respond("Leaderboard write", handle)

    @app.get("/api/leaderboard")
    async def get_leaderboard(
        request: Request,
        view: str | None = Query(default=None, alias="type"),
        user_id: str | None = Query(default=None, alias="userId"),
    ) -> JSONResponse:
        """Return rankings, dish popularity, category totals or one user."""
        state_container: AppContainer = request.app.state.container
        service = state_container.leaderboard_service

        async def handle() -> dict[str, object]:
            if view == "dishes":
                dishes = service.popularity()
                return {"dishes": [_format_dish(dish) for dish in dishes]}
            if view == "categories":
                return {
                    "categories": [
                        _format_category(row) for row in service.category_breakdown()
                    ]
                }
            if view == "user":
                aggregate = service.get_user(user_id or "")
                return {
                    "userData": (
                        aggregate_to_payload(aggregate) if aggregate else None
                    )
                }
            board = service.leaderboard()
            payload: dict[str, object] = {
                key: [_format_ranked(user) for user in board.rankings[metric]]
                for metric, key in _RANKING_KEYS.items()
            }
            payload["stats"] = _format_stats(board.stats)
            return payload

        return await respond("Leaderboard read", handle)

    @app.post("/api/analyze")
    async def analyze(request: Request) -> JSONResponse:
        """Recognize dishes in a plate photo."""
        state_container: AppContainer = request.app.state.container
        body = await _json_body(request)
        if body is None:
            return _error(400, "Invalid JSON body")

        async def handle() -> dict[str, object]:
            analyze_request = AnalyzeRequest.model_validate(body)
            if not analyze_request.image:
                raise InputError("Image data required")
            image_bytes = decode_image(analyze_request.image)
            if analyze_request.menu_db:
                catalog = [entry.to_entry() for entry in analyze_request.menu_db]
            else:
                snapshot = await state_container.catalog_service.load()
                catalog = snapshot.entries
            result = await state_container.recognition_service.recognize(
                image_bytes, catalog
            )
            plate = [resolve_recognized_item(item, catalog) for item in result.items]
            return {
                **result.model_dump(),
                "plate": [item_to_payload(item) for item in plate],
            }

        return await respond("Plate analysis", handle)

    @app.get("/api/catalog")
    async def get_catalog(request: Request, refresh: bool = False) -> JSONResponse:
        """Return the current menu catalog."""
        state_container: AppContainer = request.app.state.container

        async def handle() -> dict[str, object]:
            snapshot = await state_container.catalog_service.load(force=refresh)
            return {
                "fromSheet": snapshot.from_sheet,
                "categories": list_categories(snapshot.entries),
                "entries": [_format_entry(entry) for entry in snapshot.entries],
            }

        return await respond("Catalog load", handle)

    @app.get("/api/catalog/guide")
    async def get_guide(  # noqa: PLR0913
        request: Request,
        mode: PriceMode = PriceMode.MARKET,
        sort: GuideSort = GuideSort.PRICE_PER_KCAL_DESC,
        category: str | None = None,
        ranking: bool = False,
        exclude_low_calorie: bool = Query(default=True, alias="excludeLowCalorie"),
    ) -> JSONResponse:
        """Return the menu value guide for one price mode."""
        state_container: AppContainer = request.app.state.container

        async def handle() -> dict[str, object]:
            snapshot = await state_container.catalog_service.load()
            guide = build_guide(
                snapshot.entries,
                mode,
                sort=sort,
                category=category,
                ranking=ranking,
                exclude_low_calorie=exclude_low_calorie,
            )
            return {
                "mode": mode.value,
                "fromSheet": snapshot.from_sheet,
                "entries": [_format_guide_entry(row) for row in guide],
            }

        return await respond("Menu guide", handle)

    return app


async def _json_body(request: Request) -> dict[str, object] | None:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _error_message(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        return f"Invalid {location}: {first['msg']}"
    return str(exc)


def _format_ranked(user: RankedUser) -> dict[str, object]:
    return {"id": user.user_id, **aggregate_to_payload(user.aggregate)}


def _format_dish(dish: DishPopularity) -> dict[str, object]:
    return {"name": dish.name, "count": dish.count, "price": dish.price}


def _format_category(row: CategoryTotal) -> dict[str, object]:
    return {"category": row.category, "total": row.total}


def _format_stats(stats: LeaderboardStats) -> dict[str, object]:
    return {
        "userCount": stats.user_count,
        "plateCount": stats.plate_count,
        "totalPrice": stats.total_price,
        "totalCalories": stats.total_calories,
        "totalDishes": stats.total_dishes,
        "totalLiquid": stats.total_liquid,
    }


def _format_entry(entry: MenuEntry) -> dict[str, object]:
    return {
        "category": entry.category,
        "name": entry.name,
        "price": entry.price,
        "restaurantPrice": entry.restaurant_price,
        "calories": entry.calories,
        "desc": entry.desc,
    }


def _format_guide_entry(row: GuideEntry) -> dict[str, object]:
    return {
        **_format_entry(row.entry),
        "displayPrice": row.display_price,
        "pricePerKcal": row.price_per_kcal,
    }
