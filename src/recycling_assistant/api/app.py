"""FastAPI application factory."""

import asyncio
import contextlib
import logging
import math
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, HTTPException, Request, status

from recycling_assistant.api.admin import router as admin_router
from recycling_assistant.api.models import IdentifyRequest, ScenarioRequest
from recycling_assistant.app_logging import configure_logging
from recycling_assistant.containers import AppContainer
from recycling_assistant.domain.catalog import RecyclableItem
from recycling_assistant.domain.errors import (
    DailyQuotaExceeded,
    InvalidImage,
    RateLimitExceeded,
)
from recycling_assistant.services.scenarios import SCENARIOS, run_scenario
from recycling_assistant.services.vision import ALLOWED_MIME_TYPES


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        sweeper = asyncio.create_task(
            _sweep_periodically(
                app.state.container, app.state.container.settings.sweep_interval_seconds
            )
        )
        yield
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/api/identify")
    async def identify_info(request: Request) -> dict[str, object]:
        """Describe the configured identification chain."""
        state_container: AppContainer = request.app.state.container
        interpreters = [
            client.name for client in state_container.interpretation_service.clients
        ]
        return {
            "status": "ready",
            "vision_providers": [
                provider.name for provider in state_container.vision_service.providers
            ],
            "interpreters": [*interpreters, "rules"],
            "max_image_bytes": state_container.settings.max_image_bytes,
            "allowed_types": sorted(ALLOWED_MIME_TYPES),
        }

    @app.post("/api/identify")
    async def identify(body: IdentifyRequest, request: Request) -> dict[str, object]:
        """Identify the item in an uploaded image."""
        state_container: AppContainer = request.app.state.container
        if not body.image:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No image provided",
            )
        client_id = _client_id(request)
        try:
            return await state_container.identify_service.identify(
                body.image, client_id
            )
        except InvalidImage as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
            ) from exc
        except RateLimitExceeded as exc:
            logger.info("Rate limit exceeded for %s", client_id)
            raise _too_many_requests(
                "Rate limit exceeded. Please wait before trying again.", exc.reset_at
            ) from exc
        except DailyQuotaExceeded as exc:
            logger.info("Daily limit reached for %s", client_id)
            raise _too_many_requests(
                f"Daily limit of {exc.limit} requests reached. Try again tomorrow.",
                exc.reset_at,
            ) from exc

    @app.get("/api/identify/test")
    async def list_scenarios() -> dict[str, object]:
        """List the canned detection scenarios."""
        return {
            "scenarios": {
                name: scenario.description for name, scenario in SCENARIOS.items()
            }
        }

    @app.post("/api/identify/test")
    async def identify_test(
        body: ScenarioRequest, request: Request
    ) -> dict[str, object]:
        """Run a canned scenario through the matcher without calling providers."""
        state_container: AppContainer = request.app.state.container
        if body.scenario not in SCENARIOS:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={
                    "error": f"Unknown scenario: {body.scenario}",
                    "available": list(SCENARIOS),
                },
            )
        return run_scenario(body.scenario, state_container.catalog_service.items())

    @app.get("/api/search")
    async def search(request: Request, q: str = "") -> dict[str, object]:
        """Search the item catalog by name or category."""
        state_container: AppContainer = request.app.state.container
        query = q.strip()
        if not query:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Query parameter 'q' is required",
            )
        result = state_container.catalog_service.search(query)
        return {
            "query": query,
            "count": len(result.items),
            "fuzzy": result.fuzzy,
            "results": [_item_payload(item) for item in result.items],
        }

    return app


async def _sweep_periodically(container: AppContainer, interval: float) -> None:
    logger = logging.getLogger(__name__)
    while True:
        await asyncio.sleep(interval)
        container.usage_limiter.sweep()
        purged = container.cache.purge_expired()
        if purged:
            logger.info("Purged %s expired cache entries", purged)


def _client_id(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client is not None:
        return request.client.host
    return "unknown"


def _too_many_requests(message: str, reset_at: datetime) -> HTTPException:
    retry_after = max(1, math.ceil((reset_at - datetime.now(tz=UTC)).total_seconds()))
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail={"error": message, "reset_at": reset_at.isoformat()},
        headers={"Retry-After": str(retry_after)},
    )


def _item_payload(item: RecyclableItem) -> dict[str, object]:
    return {
        "name": item.name,
        "category": item.category,
        "is_recyclable": item.is_recyclable,
        "bin_type": item.bin_type,
        "special_instructions": item.special_instructions,
        "contamination_notes": item.contamination_notes,
        "material_codes": list(item.material_codes),
        "similar_items": list(item.similar_items),
    }
