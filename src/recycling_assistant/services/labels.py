"""Label normalization across provider label shapes."""

from collections.abc import Iterable, Mapping

from recycling_assistant.domain.vision import (
    DescribedLabel,
    DetectionBundle,
    NamedLabel,
    RawLabel,
    VisionLabel,
)

OBJECT_SCORE_FACTOR = 0.9


def to_vision_label(raw: RawLabel) -> VisionLabel:
    """Map a raw provider label to the canonical shape."""
    if isinstance(raw, NamedLabel):
        return VisionLabel(name=raw.name or "", confidence=float(raw.value or 0.0))
    if isinstance(raw, DescribedLabel):
        return VisionLabel(
            name=raw.description or "", confidence=float(raw.score or 0.0)
        )
    raise TypeError(f"Unsupported label type: {type(raw).__name__}")


def raw_label_from_mapping(payload: Mapping[str, object]) -> RawLabel:
    """Build a raw label from a provider JSON object.

    Objects carrying ``description`` use the Google shape; everything else
    is read as ``{name, value}``.
    """
    if "description" in payload:
        return DescribedLabel(
            description=str(payload.get("description") or ""),
            score=_as_float(payload.get("score")),
        )
    return NamedLabel(
        name=str(payload.get("name") or ""),
        value=_as_float(payload.get("value")),
    )


def normalize(raw_labels: Iterable[RawLabel | VisionLabel]) -> list[VisionLabel]:
    """Return canonical labels, deduplicated by name and sorted by confidence."""
    best: dict[str, VisionLabel] = {}
    for raw in raw_labels:
        label = raw if isinstance(raw, VisionLabel) else to_vision_label(raw)
        if not label.name.strip():
            continue
        key = label.name.lower()
        current = best.get(key)
        if current is None or label.confidence > current.confidence:
            best[key] = label
    # dicts keep first-insertion order, so sorted() leaves ties first-seen
    return sorted(best.values(), key=lambda label: label.confidence, reverse=True)


def interpretation_labels(bundle: DetectionBundle) -> list[VisionLabel]:
    """Merge labels and discounted object detections for interpretation."""
    discounted = [
        VisionLabel(name=obj.name, confidence=obj.confidence * OBJECT_SCORE_FACTOR)
        for obj in bundle.objects
    ]
    return normalize([*bundle.labels, *discounted])


def _as_float(value: object) -> float:
    if isinstance(value, int | float):
        return float(value)
    return 0.0
