"""End-to-end identification pipeline."""

import logging
import time
from dataclasses import dataclass

from recycling_assistant.domain.errors import (
    AllProvidersExhausted,
    DailyQuotaExceeded,
    RateLimitExceeded,
)
from recycling_assistant.services.cache import (
    FINGERPRINT_PREFIX_CHARS,
    InMemoryCache,
    fingerprint,
)
from recycling_assistant.services.catalog import CatalogService
from recycling_assistant.services.interpretation import InterpretationService
from recycling_assistant.services.labels import interpretation_labels
from recycling_assistant.services.limits import UsageLimiter
from recycling_assistant.services.matching import (
    find_matches,
    unidentified_objects,
    unknown_item,
)
from recycling_assistant.services.responses import (
    assemble_identify_response,
    assemble_unidentified_response,
    usage_metadata,
)
from recycling_assistant.services.vision import MAX_IMAGE_BYTES, VisionService, decode_image

_logger = logging.getLogger(__name__)


@dataclass
class IdentifyService:
    """Gates a request, then runs vision, matching and interpretation."""

    vision_service: VisionService
    interpretation_service: InterpretationService
    catalog_service: CatalogService
    cache: InMemoryCache
    usage_limiter: UsageLimiter
    max_image_bytes: int = MAX_IMAGE_BYTES
    fingerprint_prefix_chars: int = FINGERPRINT_PREFIX_CHARS

    async def identify(self, image: str, client_id: str) -> dict[str, object]:
        """Identify the item in a base64 image for the given client.

        Raises ``RateLimitExceeded``, ``DailyQuotaExceeded`` or
        ``InvalidImage``; every other failure ends in a structured response.
        """
        started = time.perf_counter()
        rate = self.usage_limiter.rate_limiter.check(client_id)
        if not rate.allowed:
            raise RateLimitExceeded(client_id, rate.reset_at)

        decoded = decode_image(image, self.max_image_bytes)
        cache_key = fingerprint(decoded.payload, self.fingerprint_prefix_chars)
        cached = self.cache.get(cache_key)
        if isinstance(cached, dict):
            return {
                **cached,
                "cached": True,
                "usage": usage_metadata(rate, None),
                "processing_time_ms": _elapsed_ms(started),
            }

        quota = self.usage_limiter.daily_quota.check(client_id)
        if not quota.allowed:
            raise DailyQuotaExceeded(
                client_id, self.usage_limiter.daily_quota.max_daily, quota.reset_at
            )

        try:
            bundle = await self.vision_service.analyze(decoded.data)
        except AllProvidersExhausted as exc:
            _logger.warning("Identification failed: %s", exc)
            return {
                **assemble_unidentified_response(exc),
                "cached": False,
                "usage": usage_metadata(rate, quota),
                "processing_time_ms": _elapsed_ms(started),
            }

        catalog = self.catalog_service.items()
        matches = find_matches(bundle, catalog)
        labels = interpretation_labels(bundle)
        interpretation, interpreter = await self.interpretation_service.interpret(labels)
        result = assemble_identify_response(
            bundle=bundle,
            labels=labels,
            matches=matches or [unknown_item()],
            unidentified=unidentified_objects(bundle, matches),
            interpretation=interpretation,
            interpreter=interpreter,
        )
        self.cache.set(cache_key, result)
        _logger.info(
            "Identified %s via %s/%s",
            interpretation.item_name,
            bundle.provider_used,
            interpreter,
        )
        return {
            **result,
            "cached": False,
            "usage": usage_metadata(rate, quota),
            "processing_time_ms": _elapsed_ms(started),
        }


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
