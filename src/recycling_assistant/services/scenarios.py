"""Canned detection scenarios for exercising the matcher without providers."""

from collections.abc import Sequence
from dataclasses import dataclass

from recycling_assistant.domain.catalog import RecyclableItem
from recycling_assistant.domain.vision import DetectionBundle, VisionLabel
from recycling_assistant.services.matching import (
    match_or_unknown,
    unidentified_objects,
)


def _labels(*pairs: tuple[str, float]) -> list[VisionLabel]:
    return [VisionLabel(name=name, confidence=score) for name, score in pairs]


@dataclass(frozen=True)
class Scenario:
    """A named mock detection."""

    description: str
    bundle: DetectionBundle


SCENARIOS: dict[str, Scenario] = {
    "plastic-bottle": Scenario(
        description="Clear plastic water bottle",
        bundle=DetectionBundle(
            labels=_labels(
                ("plastic bottle", 0.95),
                ("water bottle", 0.92),
                ("bottle", 0.90),
                ("plastic", 0.85),
                ("recyclable", 0.75),
            ),
            objects=_labels(("Bottle", 0.93)),
            ocr_texts=["DASANI", "PURE", "WATER", "PETE", "1"],
            web_entities=_labels(
                ("Dasani water bottle", 0.88), ("PET plastic recycling", 0.82)
            ),
            provider_used="test",
        ),
    ),
    "pizza-box": Scenario(
        description="Used pizza box with grease stains",
        bundle=DetectionBundle(
            labels=_labels(
                ("pizza box", 0.91),
                ("cardboard", 0.88),
                ("food container", 0.82),
                ("box", 0.80),
            ),
            objects=_labels(("Box", 0.85), ("Food", 0.65)),
            ocr_texts=["DOMINOS", "PIZZA", "LARGE"],
            web_entities=_labels(
                ("Pizza delivery box", 0.84), ("Cardboard food packaging", 0.76)
            ),
            provider_used="test",
        ),
    ),
    "battery": Scenario(
        description="AA alkaline battery",
        bundle=DetectionBundle(
            labels=_labels(
                ("battery", 0.96),
                ("AA battery", 0.92),
                ("alkaline battery", 0.88),
                ("electronic component", 0.72),
            ),
            objects=_labels(("Battery", 0.94)),
            ocr_texts=["DURACELL", "AA", "1.5V", "ALKALINE"],
            web_entities=_labels(
                ("Duracell AA battery", 0.90), ("Alkaline battery disposal", 0.78)
            ),
            provider_used="test",
        ),
    ),
    "styrofoam": Scenario(
        description="Styrofoam takeout container",
        bundle=DetectionBundle(
            labels=_labels(
                ("styrofoam", 0.89),
                ("foam container", 0.86),
                ("takeout container", 0.83),
                ("polystyrene", 0.78),
            ),
            objects=_labels(("Container", 0.82)),
            ocr_texts=["6", "PS"],
            web_entities=_labels(
                ("Polystyrene foam container", 0.81), ("Styrofoam recycling", 0.65)
            ),
            provider_used="test",
        ),
    ),
    "multiple-items": Scenario(
        description="Multiple items in one image",
        bundle=DetectionBundle(
            labels=_labels(
                ("plastic bottle", 0.88),
                ("aluminum can", 0.85),
                ("cardboard", 0.82),
                ("recyclables", 0.78),
            ),
            objects=_labels(("Bottle", 0.86), ("Can", 0.84), ("Box", 0.80)),
            ocr_texts=["COKE", "DASANI", "AMAZON"],
            web_entities=_labels(
                ("Mixed recyclables", 0.75), ("Recycling bin contents", 0.70)
            ),
            provider_used="test",
        ),
    ),
    "unknown-item": Scenario(
        description="Unrecognizable or blurry item",
        bundle=DetectionBundle(
            labels=_labels(("object", 0.52), ("material", 0.48)),
            provider_used="test",
        ),
    ),
}


def run_scenario(name: str, catalog: Sequence[RecyclableItem]) -> dict[str, object]:
    """Match a canned scenario against the catalog.

    Raises ``KeyError`` for unknown scenario names.
    """
    scenario = SCENARIOS[name]
    bundle = scenario.bundle
    matches = match_or_unknown(bundle, catalog)
    return {
        "success": True,
        "test_mode": True,
        "scenario": name,
        "scenario_description": scenario.description,
        "identified_items": [match.to_dict() for match in matches],
        "unidentified_objects": unidentified_objects(bundle, matches),
        "vision_result_summary": {
            "labels_count": len(bundle.labels),
            "objects_count": len(bundle.objects),
            "texts_found": bool(bundle.ocr_texts),
            "web_entities_count": len(bundle.web_entities),
        },
    }
