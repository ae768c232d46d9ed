"""Shared test fixtures."""

import base64
from dataclasses import dataclass, field

import pytest

from recycling_assistant.adapters.csv_catalog_repository import CsvCatalogRepository
from recycling_assistant.config import Settings
from recycling_assistant.containers import AppContainer
from recycling_assistant.domain.catalog import RecyclableItem
from recycling_assistant.domain.vision import DetectionBundle, VisionLabel
from recycling_assistant.services.cache import InMemoryCache
from recycling_assistant.services.catalog import CatalogService
from recycling_assistant.services.identify import IdentifyService
from recycling_assistant.services.interpretation import (
    InterpretationService,
    LLMClient,
)
from recycling_assistant.services.limits import DailyQuota, RateLimiter, UsageLimiter
from recycling_assistant.services.vision import VisionProvider, VisionService

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
PNG_BASE64 = base64.b64encode(PNG_BYTES).decode("ascii")


def labels(*pairs: tuple[str, float]) -> list[VisionLabel]:
    """Build canonical labels from name/confidence pairs."""
    return [VisionLabel(name=name, confidence=score) for name, score in pairs]


def make_bundle(
    *label_pairs: tuple[str, float],
    objects: list[VisionLabel] | None = None,
    ocr_texts: list[str] | None = None,
    web_entities: list[VisionLabel] | None = None,
) -> DetectionBundle:
    return DetectionBundle(
        labels=labels(*label_pairs),
        objects=objects or [],
        ocr_texts=ocr_texts or [],
        web_entities=web_entities or [],
    )


@dataclass
class FakeVisionProvider(VisionProvider):
    """Vision provider replaying scripted bundles or errors."""

    name: str = "fake-vision"
    outcomes: list[DetectionBundle | Exception] = field(default_factory=list)
    calls: int = 0

    async def analyze(self, image_bytes: bytes) -> DetectionBundle:
        self.calls += 1
        outcome = self.outcomes[min(self.calls, len(self.outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@dataclass
class FakeLLMClient(LLMClient):
    """LLM client returning a fixed answer or raising."""

    name: str = "fake-llm"
    response: str | Exception = ""
    prompts: list[str] = field(default_factory=list)

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


BOTTLE_BUNDLE = make_bundle(
    ("Plastic Bottle", 0.95),
    ("Water", 0.8),
    objects=labels(("Bottle", 0.93)),
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        google_vision_api_key=None,
        openai_api_key=None,
        clarifai_pat=None,
        admin_token="admin-token",
    )


@pytest.fixture
def catalog() -> tuple[RecyclableItem, ...]:
    return CsvCatalogRepository().list_items()


@pytest.fixture
def vision_provider() -> FakeVisionProvider:
    return FakeVisionProvider(outcomes=[BOTTLE_BUNDLE])


@pytest.fixture
def identify_service(vision_provider: FakeVisionProvider) -> IdentifyService:
    return IdentifyService(
        vision_service=VisionService(
            providers=[vision_provider], retry_delay_seconds=0
        ),
        interpretation_service=InterpretationService(),
        catalog_service=CatalogService(CsvCatalogRepository()),
        cache=InMemoryCache(),
        usage_limiter=UsageLimiter(
            rate_limiter=RateLimiter(max_requests=3),
            daily_quota=DailyQuota(max_daily=2),
        ),
    )


@pytest.fixture
def container(settings: Settings, identify_service: IdentifyService) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        catalog_service=identify_service.catalog_service,
        vision_service=identify_service.vision_service,
        interpretation_service=identify_service.interpretation_service,
        cache=identify_service.cache,
        usage_limiter=identify_service.usage_limiter,
        identify_service=identify_service,
        close_resources=close_resources,
    )
