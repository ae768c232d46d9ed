"""Clarifai general image recognition client."""

import base64
from dataclasses import dataclass

import httpx

from recycling_assistant.domain.errors import (
    ProviderTransient,
    ProviderUnconfigured,
    provider_error_for_status,
)
from recycling_assistant.domain.vision import DetectionBundle
from recycling_assistant.services.labels import normalize, raw_label_from_mapping
from recycling_assistant.services.vision import VisionProvider

CLARIFAI_API_BASE = "https://api.clarifai.com/v2"
GENERAL_MODEL_PATH = (
    "/models/general-image-recognition/versions/aa7f35c01e0642fda5cf400f543e7c40/outputs"
)


@dataclass
class ClarifaiVisionClient(VisionProvider):
    """Concept detection via Clarifai's general model."""

    pat: str | None
    http_client: httpx.AsyncClient
    base_url: str = CLARIFAI_API_BASE
    name: str = "clarifai"

    @classmethod
    def create(cls, pat: str | None) -> "ClarifaiVisionClient":
        """Create a Clarifai client with a managed httpx session."""
        return cls(pat=pat, http_client=httpx.AsyncClient())

    async def analyze(self, image_bytes: bytes) -> DetectionBundle:
        """Predict concepts for the image."""
        if not self.pat:
            raise ProviderUnconfigured(self.name, "Clarifai PAT not configured")
        body = {
            "inputs": [
                {
                    "data": {
                        "image": {"base64": base64.b64encode(image_bytes).decode("ascii")}
                    }
                }
            ]
        }
        try:
            response = await self.http_client.post(
                f"{self.base_url}{GENERAL_MODEL_PATH}",
                headers={"Authorization": f"Key {self.pat}"},
                json=body,
                timeout=15,
            )
        except httpx.HTTPError as exc:
            raise ProviderTransient(self.name, str(exc)) from exc
        if response.is_error:
            raise provider_error_for_status(self.name, response.status_code, response.text)
        return parse_concepts(response.json(), provider=self.name)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def parse_concepts(payload: dict[str, object], provider: str) -> DetectionBundle:
    """Convert a Clarifai outputs payload into a detection bundle."""
    outputs = payload.get("outputs")
    if not isinstance(outputs, list) or not outputs:
        return DetectionBundle(provider_used=provider)
    data = outputs[0].get("data") or {}
    concepts = data.get("concepts") or []
    labels = [raw_label_from_mapping(concept) for concept in concepts]
    return DetectionBundle(labels=normalize(labels), provider_used=provider)
