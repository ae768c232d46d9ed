"""Request bodies accepted by the public API."""

from pydantic import BaseModel


class IdentifyRequest(BaseModel):
    """Image upload as base64, optionally as a data URL."""

    image: str | None = None


class ScenarioRequest(BaseModel):
    """Name of a canned detection scenario."""

    scenario: str = "plastic-bottle"
