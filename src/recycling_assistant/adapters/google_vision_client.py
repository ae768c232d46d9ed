"""Google Cloud Vision REST client using an API key."""

import base64
from dataclasses import dataclass

import httpx

from recycling_assistant.domain.errors import (
    ProviderTransient,
    ProviderUnconfigured,
    provider_error_for_status,
)
from recycling_assistant.domain.vision import DescribedLabel, DetectionBundle
from recycling_assistant.services.labels import normalize
from recycling_assistant.services.vision import VisionProvider

GOOGLE_VISION_URL = "https://vision.googleapis.com/v1/images:annotate"
MIN_SCORE = 0.5
MAX_OCR_TOKENS = 50

_FEATURES = [
    {"type": "LABEL_DETECTION", "maxResults": 20},
    {"type": "OBJECT_LOCALIZATION", "maxResults": 10},
    {"type": "TEXT_DETECTION", "maxResults": 50},
    {"type": "WEB_DETECTION", "maxResults": 10},
]


@dataclass
class GoogleVisionClient(VisionProvider):
    """Label, object, text and web detection via Google Vision."""

    api_key: str | None
    http_client: httpx.AsyncClient
    url: str = GOOGLE_VISION_URL
    name: str = "google-vision"

    @classmethod
    def create(cls, api_key: str | None) -> "GoogleVisionClient":
        """Create a Google Vision client with a managed httpx session."""
        return cls(api_key=api_key, http_client=httpx.AsyncClient())

    async def analyze(self, image_bytes: bytes) -> DetectionBundle:
        """Annotate the image and return its detections."""
        if not self.api_key:
            raise ProviderUnconfigured(self.name, "Google Vision API key not configured")
        body = {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image_bytes).decode("ascii")},
                    "features": _FEATURES,
                }
            ]
        }
        try:
            response = await self.http_client.post(
                self.url, params={"key": self.api_key}, json=body, timeout=15
            )
        except httpx.HTTPError as exc:
            raise ProviderTransient(self.name, str(exc)) from exc
        if response.is_error:
            raise provider_error_for_status(self.name, response.status_code, response.text)
        responses = response.json().get("responses") or [{}]
        return parse_annotations(responses[0], provider=self.name)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def parse_annotations(result: dict[str, object], provider: str) -> DetectionBundle:
    """Convert a Vision ``AnnotateImageResponse`` into a detection bundle."""
    error = result.get("error")
    labels = [
        DescribedLabel(description=item.get("description", ""), score=item.get("score", 0))
        for item in _confident(result.get("labelAnnotations"))
    ]
    objects = [
        DescribedLabel(description=item.get("name", ""), score=item.get("score", 0))
        for item in _confident(result.get("localizedObjectAnnotations"))
    ]
    web = result.get("webDetection") or {}
    entities = [
        DescribedLabel(description=item.get("description", ""), score=item.get("score", 0))
        for item in _confident(web.get("webEntities") if isinstance(web, dict) else None)
    ]
    texts: list[str] = []
    text_annotations = result.get("textAnnotations")
    if isinstance(text_annotations, list) and text_annotations:
        full_text = text_annotations[0].get("description") or ""
        texts = [token for token in full_text.split() if len(token) > 2][:MAX_OCR_TOKENS]
    return DetectionBundle(
        labels=normalize(labels),
        objects=normalize(objects),
        ocr_texts=texts,
        web_entities=normalize(entities),
        provider_used=provider,
        error=error.get("message") if isinstance(error, dict) else None,
    )


def _confident(items: object) -> list[dict[str, object]]:
    if not isinstance(items, list):
        return []
    return [
        item
        for item in items
        if isinstance(item, dict) and (item.get("score") or 0) > MIN_SCORE
    ]
