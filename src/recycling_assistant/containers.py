"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from recycling_assistant.adapters.clarifai_client import ClarifaiVisionClient
from recycling_assistant.adapters.clarifai_llm_client import ClarifaiLLMClient
from recycling_assistant.adapters.csv_catalog_repository import CsvCatalogRepository
from recycling_assistant.adapters.google_vision_client import GoogleVisionClient
from recycling_assistant.adapters.openai_interpreter_client import (
    OpenAIInterpreterClient,
)
from recycling_assistant.adapters.openai_vision_client import OpenAIVisionClient
from recycling_assistant.config import Settings, parse_provider_order
from recycling_assistant.services.cache import InMemoryCache
from recycling_assistant.services.catalog import CatalogService
from recycling_assistant.services.identify import IdentifyService
from recycling_assistant.services.interpretation import (
    InterpretationService,
    LLMClient,
)
from recycling_assistant.services.limits import DailyQuota, RateLimiter, UsageLimiter
from recycling_assistant.services.vision import VisionProvider, VisionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    catalog_service: CatalogService
    vision_service: VisionService
    interpretation_service: InterpretationService
    cache: InMemoryCache
    usage_limiter: UsageLimiter
    identify_service: IdentifyService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    google_client = GoogleVisionClient.create(resolved_settings.google_vision_api_key)
    clarifai_client = ClarifaiVisionClient.create(resolved_settings.clarifai_pat)
    openai_vision_client = OpenAIVisionClient.create(
        resolved_settings.openai_api_key, resolved_settings.openai_model
    )
    available: dict[str, VisionProvider] = {
        google_client.name: google_client,
        clarifai_client.name: clarifai_client,
        openai_vision_client.name: openai_vision_client,
    }
    providers = [
        available[name]
        for name in parse_provider_order(resolved_settings.vision_provider_order)
    ]
    vision_service = VisionService(
        providers=providers,
        timeout_seconds=resolved_settings.vision_timeout_seconds,
        retry_attempts=resolved_settings.vision_retry_attempts,
        retry_delay_seconds=resolved_settings.vision_retry_delay_seconds,
    )

    llm_clients: list[LLMClient] = []
    clarifai_llm_client: ClarifaiLLMClient | None = None
    if resolved_settings.openai_api_key:
        llm_clients.append(
            OpenAIInterpreterClient.create(
                resolved_settings.openai_api_key, resolved_settings.openai_model
            )
        )
    if resolved_settings.clarifai_pat:
        clarifai_llm_client = ClarifaiLLMClient.create(resolved_settings.clarifai_pat)
        llm_clients.append(clarifai_llm_client)
    interpretation_service = InterpretationService(clients=llm_clients)

    catalog_service = CatalogService(CsvCatalogRepository(resolved_settings.catalog_path))
    cache = InMemoryCache(
        max_entries=resolved_settings.cache_max_entries,
        ttl_seconds=resolved_settings.cache_ttl_seconds,
    )
    usage_limiter = UsageLimiter(
        rate_limiter=RateLimiter(
            max_requests=resolved_settings.rate_limit_requests,
            window_seconds=resolved_settings.rate_limit_window_seconds,
        ),
        daily_quota=DailyQuota(max_daily=resolved_settings.daily_request_limit),
    )
    identify_service = IdentifyService(
        vision_service=vision_service,
        interpretation_service=interpretation_service,
        catalog_service=catalog_service,
        cache=cache,
        usage_limiter=usage_limiter,
        max_image_bytes=resolved_settings.max_image_bytes,
        fingerprint_prefix_chars=resolved_settings.cache_fingerprint_chars,
    )

    async def close_resources() -> None:
        await google_client.close()
        await clarifai_client.close()
        if clarifai_llm_client is not None:
            await clarifai_llm_client.close()

    return AppContainer(
        settings=resolved_settings,
        catalog_service=catalog_service,
        vision_service=vision_service,
        interpretation_service=interpretation_service,
        cache=cache,
        usage_limiter=usage_limiter,
        identify_service=identify_service,
        close_resources=close_resources,
    )
