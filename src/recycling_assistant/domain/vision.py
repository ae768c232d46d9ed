"""Models for vision detection results."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class VisionLabel:
    """Canonical label with a confidence in [0, 1]."""

    name: str
    confidence: float


@dataclass(frozen=True)
class NamedLabel:
    """Raw label shaped as ``{name, value}`` (Clarifai concepts)."""

    name: str = ""
    value: float = 0.0


@dataclass(frozen=True)
class DescribedLabel:
    """Raw label shaped as ``{description, score}`` (Google annotations)."""

    description: str = ""
    score: float = 0.0


RawLabel = NamedLabel | DescribedLabel


@dataclass(frozen=True)
class DetectionBundle:
    """Normalized output of a single vision call."""

    labels: list[VisionLabel] = field(default_factory=list)
    objects: list[VisionLabel] = field(default_factory=list)
    ocr_texts: list[str] = field(default_factory=list)
    web_entities: list[VisionLabel] = field(default_factory=list)
    provider_used: str = ""
    error: str | None = None

    @property
    def is_empty(self) -> bool:
        """Return True when no labels or objects were detected."""
        return not self.labels and not self.objects
