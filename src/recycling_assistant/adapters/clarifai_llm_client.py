"""Clarifai-hosted LLM used as a recycling interpreter."""

from dataclasses import dataclass

import httpx

from recycling_assistant.domain.errors import InterpreterHttpError, InterpreterParseError
from recycling_assistant.services.interpretation import LLMClient

CLARIFAI_LLM_URL = "https://api.clarifai.com/v2/models/gpt-4/versions/latest/outputs"


@dataclass
class ClarifaiLLMClient(LLMClient):
    """Interpreter backed by a Clarifai text model."""

    pat: str
    http_client: httpx.AsyncClient
    url: str = CLARIFAI_LLM_URL
    name: str = "clarifai-llm"

    @classmethod
    def create(cls, pat: str) -> "ClarifaiLLMClient":
        """Create a Clarifai LLM client with a managed httpx session."""
        return cls(pat=pat, http_client=httpx.AsyncClient())

    async def complete(self, prompt: str) -> str:
        """Return the raw text output of the model."""
        try:
            response = await self.http_client.post(
                self.url,
                headers={"Authorization": f"Key {self.pat}"},
                json={"inputs": [{"data": {"text": {"raw": prompt}}}]},
                timeout=30,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise InterpreterHttpError(self.name, str(exc)) from exc
        outputs = response.json().get("outputs") or [{}]
        text = ((outputs[0].get("data") or {}).get("text") or {}).get("raw") or ""
        if not text:
            raise InterpreterParseError(self.name, "Clarifai returned no text output")
        return text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
