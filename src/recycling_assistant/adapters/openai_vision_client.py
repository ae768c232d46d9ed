"""OpenAI Responses API client for image labeling."""

import json
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from recycling_assistant.domain.errors import (
    ProviderError,
    ProviderQuotaExceeded,
    ProviderTransient,
    ProviderUnauthorized,
    ProviderUnconfigured,
)
from recycling_assistant.domain.vision import DetectionBundle, NamedLabel
from recycling_assistant.services.labels import normalize
from recycling_assistant.services.vision import VisionProvider, to_data_url

_SCORED_NAME = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "confidence": {"type": "number", "minimum": 0.0, "maximum": 1.0},
    },
    "required": ["name", "confidence"],
    "additionalProperties": False,
}

VISION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "main_objects": {"type": "array", "items": _SCORED_NAME},
        "materials": {"type": "array", "items": _SCORED_NAME},
        "text_found": {"type": "array", "items": {"type": "string"}},
        "brands": {"type": "array", "items": {"type": "string"}},
        "recycling_relevant": {"type": "boolean"},
        "description": {"type": "string"},
    },
    "required": [
        "main_objects",
        "materials",
        "text_found",
        "brands",
        "recycling_relevant",
        "description",
    ],
    "additionalProperties": False,
}

VISION_PROMPT = (
    "Analyze this image and identify what objects are present. For recycling "
    "purposes, identify the main object(s), their material type (plastic, glass, "
    "metal, paper, organic, electronics, etc.), any text visible on the object, "
    "and brand or product information if visible. Give confidences from 0 to 1."
)

_DESCRIPTION_KEYWORDS = [
    "bottle",
    "can",
    "paper",
    "cardboard",
    "plastic",
    "glass",
    "metal",
    "apple",
    "food",
    "fruit",
    "organic",
]
_DESCRIPTION_OBJECTS = {"bottle", "can", "apple"}


@dataclass
class OpenAIVisionClient(VisionProvider):
    """Vision provider backed by OpenAI Responses API."""

    client: AsyncOpenAI | None
    model: str = "gpt-4o-mini"
    name: str = "openai-vision"

    @classmethod
    def create(cls, api_key: str | None, model: str) -> "OpenAIVisionClient":
        """Create an OpenAI vision client, unconfigured when no key is set."""
        client = AsyncOpenAI(api_key=api_key) if api_key else None
        return cls(client=client, model=model)

    async def analyze(self, image_bytes: bytes) -> DetectionBundle:
        """Ask the model to describe the image and convert its answer."""
        if self.client is None:
            raise ProviderUnconfigured(self.name, "OpenAI API key not configured")
        request_payload: dict[str, object] = {
            "model": self.model,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": VISION_PROMPT},
                        {"type": "input_image", "image_url": to_data_url(image_bytes)},
                    ],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "recycling_vision",
                    "strict": True,
                    "schema": VISION_SCHEMA,
                }
            },
            "store": False,
        }
        try:
            response = await self.client.responses.create(**request_payload)
        except openai.APIError as exc:
            raise _provider_error(self.name, exc) from exc
        output_text = response.output_text
        if not output_text:
            raise ProviderError(self.name, "OpenAI returned an empty response")
        try:
            analysis = json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise ProviderError(self.name, "OpenAI returned invalid JSON") from exc
        return parse_analysis(analysis, provider=self.name)


def parse_analysis(analysis: dict[str, object], provider: str) -> DetectionBundle:
    """Convert the structured model answer into a detection bundle."""
    labels: list[NamedLabel] = []
    objects: list[NamedLabel] = []
    for obj in analysis.get("main_objects") or []:
        label = NamedLabel(name=obj.get("name", ""), value=obj.get("confidence", 0.8))
        labels.append(label)
        objects.append(label)
    for material in analysis.get("materials") or []:
        labels.append(
            NamedLabel(name=material.get("name", ""), value=material.get("confidence", 0.7))
        )
    if analysis.get("recycling_relevant"):
        labels.append(NamedLabel(name="recyclable material", value=0.9))

    description = str(analysis.get("description") or "").lower()
    if not labels and description:
        for keyword in _DESCRIPTION_KEYWORDS:
            if keyword in description:
                labels.append(NamedLabel(name=keyword, value=0.7))
                if keyword in _DESCRIPTION_OBJECTS:
                    objects.append(NamedLabel(name=keyword, value=0.7))

    brands = [NamedLabel(name=brand, value=0.8) for brand in analysis.get("brands") or []]
    return DetectionBundle(
        labels=normalize(labels),
        objects=normalize(objects),
        ocr_texts=[str(text) for text in analysis.get("text_found") or []],
        web_entities=normalize(brands),
        provider_used=provider,
    )


def _provider_error(provider: str, exc: openai.APIError) -> ProviderError:
    if isinstance(exc, openai.AuthenticationError | openai.PermissionDeniedError):
        return ProviderUnauthorized(provider, str(exc))
    if isinstance(exc, openai.RateLimitError):
        return ProviderQuotaExceeded(provider, str(exc))
    if isinstance(
        exc,
        openai.APIConnectionError | openai.APITimeoutError | openai.InternalServerError,
    ):
        return ProviderTransient(provider, str(exc))
    return ProviderError(provider, str(exc))
