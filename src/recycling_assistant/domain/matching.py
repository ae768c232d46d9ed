"""Matching engine result models."""

from dataclasses import dataclass, field
from typing import Literal

from recycling_assistant.domain.catalog import BinType

MatchMethod = Literal["direct", "category", "material", "fuzzy", "none"]


@dataclass(frozen=True)
class MatchResult:
    """A catalog item matched against detected labels."""

    item_name: str
    confidence: float
    is_recyclable: bool
    bin_type: BinType
    category: str
    special_instructions: str
    contamination_notes: str
    match_method: MatchMethod
    matched_labels: list[str] = field(default_factory=list)
    alternative_disposal: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize the match for API responses."""
        return {
            "name": self.item_name,
            "confidence": round(self.confidence),
            "is_recyclable": self.is_recyclable,
            "bin_type": self.bin_type,
            "category": self.category,
            "special_instructions": self.special_instructions,
            "contamination_notes": self.contamination_notes,
            "alternative_disposal": self.alternative_disposal,
            "matched_labels": self.matched_labels[:10],
            "matching_method": self.match_method,
        }
