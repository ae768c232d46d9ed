"""Assembly of identify responses."""

from collections.abc import Sequence

from recycling_assistant.domain.errors import AllProvidersExhausted
from recycling_assistant.domain.interpretation import Interpretation
from recycling_assistant.domain.matching import MatchResult
from recycling_assistant.domain.vision import DetectionBundle, VisionLabel
from recycling_assistant.services.limits import QuotaDecision, RateLimitDecision
from recycling_assistant.services.matching import unknown_item

VISION_LABEL_LIMIT = 5

_MATERIAL_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("Plastic", ("plastic",)),
    ("Glass", ("glass",)),
    ("Metal", ("metal", "aluminum")),
    ("Paper", ("paper", "cardboard")),
    ("Organic", ("organic", "food")),
    ("Electronics", ("electronic",)),
]


def detect_material(labels: Sequence[VisionLabel]) -> str:
    """Guess the dominant material from label text."""
    text = " ".join(label.name.lower() for label in labels)
    for material, keywords in _MATERIAL_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return material
    return "Mixed/Unknown"


def item_category(interpretation: Interpretation) -> str:
    """Coarse category shown alongside the recommendation."""
    if interpretation.is_recyclable:
        return "recyclable"
    if interpretation.bin_color == "Special":
        return "hazardous"
    if interpretation.bin_color == "Green":
        return "compost"
    return "trash"


def assemble_identify_response(  # noqa: PLR0913
    *,
    bundle: DetectionBundle,
    labels: Sequence[VisionLabel],
    matches: Sequence[MatchResult],
    unidentified: Sequence[str],
    interpretation: Interpretation,
    interpreter: str,
) -> dict[str, object]:
    """Merge interpretation, matches and provenance into the response body."""
    return {
        "success": True,
        "item": {
            "name": interpretation.item_name,
            "is_recyclable": interpretation.is_recyclable,
            "bin_color": interpretation.bin_color,
            "disposal_method": interpretation.disposal_method,
            "preparation": interpretation.preparation,
            "special_instructions": interpretation.special_instructions,
            "disposal_location": interpretation.disposal_location,
            "disposal_address": interpretation.disposal_address,
            "disposal_phone": interpretation.disposal_phone,
            "category": item_category(interpretation),
            "material": detect_material(labels),
        },
        "recyclable": interpretation.is_recyclable,
        "confidence": interpretation.confidence,
        "identified_items": [match.to_dict() for match in matches],
        "unidentified_objects": list(unidentified),
        "vision_labels": [
            {"name": label.name, "confidence": label.confidence}
            for label in labels[:VISION_LABEL_LIMIT]
        ],
        "services": {"vision": bundle.provider_used, "interpreter": interpreter},
    }


def assemble_unidentified_response(exc: AllProvidersExhausted) -> dict[str, object]:
    """Structured answer for images no vision provider could label."""
    sentinel = unknown_item()
    return {
        "success": False,
        "error": "Could not identify item in image",
        "item": {
            "name": sentinel.item_name,
            "is_recyclable": False,
            "bin_color": "Black",
            "disposal_method": "When in doubt, throw it out (regular trash)",
            "preparation": "",
            "category": "trash",
            "material": "Mixed/Unknown",
        },
        "recyclable": False,
        "confidence": 0.0,
        "identified_items": [sentinel.to_dict()],
        "unidentified_objects": [],
        "vision_labels": [],
        "services": {
            "vision": None,
            "interpreter": None,
            "attempted": [
                {"provider": failure.provider, "error": failure.kind}
                for failure in exc.failures
            ],
        },
    }


def usage_metadata(
    rate: RateLimitDecision, quota: QuotaDecision | None
) -> dict[str, object]:
    """Client usage counters attached to every response."""
    usage: dict[str, object] = {
        "rate_limit_remaining": rate.remaining,
        "rate_limit_reset": rate.reset_at.isoformat(),
    }
    if quota is not None:
        usage["daily_used"] = quota.used
        usage["daily_remaining"] = quota.remaining
        usage["daily_reset"] = quota.reset_at.isoformat()
    return usage
