"""Vision provider fallback chain and image validation."""

import asyncio
import base64
import binascii
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Protocol

from recycling_assistant.domain.errors import (
    AllProvidersExhausted,
    InvalidImage,
    ProviderEmptyResult,
    ProviderError,
    ProviderTransient,
)
from recycling_assistant.domain.vision import DetectionBundle

_logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/gif"})
MAX_IMAGE_BYTES = 4 * 1024 * 1024

_DATA_URL = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,", re.IGNORECASE)
_MIME_ALIASES = {"image/jpg": "image/jpeg"}


class VisionProvider(Protocol):
    """Interface for label detection services."""

    name: str

    async def analyze(self, image_bytes: bytes) -> DetectionBundle:
        """Return detections for the image or raise a ``ProviderError``."""


@dataclass(frozen=True)
class DecodedImage:
    """An uploaded image after validation."""

    payload: str
    data: bytes
    mime_type: str


@dataclass
class VisionService:
    """Tries providers in priority order until one detects something."""

    providers: Sequence[VisionProvider]
    timeout_seconds: float = 15.0
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.5

    async def analyze(self, image_bytes: bytes) -> DetectionBundle:
        """Return the first non-empty detection bundle from the chain."""
        failures: list[ProviderError] = []
        for provider in self.providers:
            try:
                bundle = await self._call_with_retry(provider, image_bytes)
            except ProviderError as exc:
                _logger.warning("Vision provider %s failed: %s", provider.name, exc)
                failures.append(exc)
                continue
            _logger.info("Vision served by %s", provider.name)
            return replace(bundle, provider_used=provider.name)
        raise AllProvidersExhausted(failures)

    async def _call_with_retry(
        self, provider: VisionProvider, image_bytes: bytes
    ) -> DetectionBundle:
        """Call a provider, retrying retryable failures with exponential backoff."""
        attempt = 0
        while True:
            try:
                bundle = await self._call_once(provider, image_bytes)
            except ProviderError as exc:
                attempt += 1
                if not exc.retryable or attempt > self.retry_attempts:
                    raise
                delay = self.retry_delay_seconds * 2 ** (attempt - 1)
                _logger.warning(
                    "Vision %s failed (attempt %s/%s), retrying in %.2fs: %s",
                    provider.name,
                    attempt,
                    self.retry_attempts + 1,
                    delay,
                    exc,
                )
                await asyncio.sleep(delay)
                continue
            if bundle.is_empty:
                raise ProviderEmptyResult(provider.name, "No labels found")
            return bundle

    async def _call_once(
        self, provider: VisionProvider, image_bytes: bytes
    ) -> DetectionBundle:
        try:
            return await asyncio.wait_for(
                provider.analyze(image_bytes), timeout=self.timeout_seconds
            )
        except TimeoutError as exc:
            raise ProviderTransient(provider.name, "Timed out") from exc
        except ProviderError:
            raise
        except Exception as exc:
            _logger.exception("Unexpected error from vision provider %s", provider.name)
            raise ProviderTransient(provider.name, str(exc)) from exc


def decode_image(image: str, max_bytes: int = MAX_IMAGE_BYTES) -> DecodedImage:
    """Validate a base64 (optionally data URL) image upload."""
    declared_mime: str | None = None
    payload = image.strip()
    match = _DATA_URL.match(payload)
    if match:
        declared_mime = match.group("mime").lower()
        payload = payload[match.end() :]
    if not payload:
        raise InvalidImage("No image data provided")
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImage("Image is not valid base64") from exc
    if len(data) > max_bytes:
        raise InvalidImage(f"Image size exceeds {max_bytes // (1024 * 1024)}MB limit")
    mime_type = detect_mime_type(data)
    if mime_type not in ALLOWED_MIME_TYPES:
        raise InvalidImage("Unsupported image type")
    if declared_mime is not None:
        declared = _MIME_ALIASES.get(declared_mime, declared_mime)
        if declared != mime_type:
            raise InvalidImage(
                f"Declared type {declared_mime} does not match image content {mime_type}"
            )
    return DecodedImage(payload=payload, data=data, mime_type=mime_type)


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = detect_mime_type(image_bytes) or "image/jpeg"
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def detect_mime_type(image_bytes: bytes) -> str | None:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:6] in {b"GIF87a", b"GIF89a"}:
        return "image/gif"
    return None
