"""Models for recycling interpretations."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

BinColor = Literal["Blue", "Green", "Black", "Special"]


class Interpretation(BaseModel):
    """Disposal recommendation produced by an interpreter."""

    item_name: str
    is_recyclable: bool
    bin_color: BinColor
    disposal_method: str
    preparation: str = ""
    special_instructions: str | None = None
    disposal_location: str | None = None
    disposal_address: str | None = None
    disposal_phone: str | None = None
    confidence: float = Field(ge=0.0, le=1.0)

    @field_validator("bin_color", mode="before")
    @classmethod
    def _capitalize_bin_color(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().capitalize()
        return value
