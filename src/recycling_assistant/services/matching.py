"""Staged matching of detected labels against the item catalog.

Stages run cheapest and most precise first:

1. direct: known labels compared with every detected label;
2. category: keyword voting picks a category, items in it are scanned;
3. material: resin codes read from OCR text;
4. fuzzy: edit-distance against item names, only when nothing else matched.

Stage 1 stops at the first catalog item scoring above 90 rather than the
global best, and category ties go to the first-declared category. Both are
ordering-dependent on purpose and callers rely on them.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from rapidfuzz.distance import Levenshtein

from recycling_assistant.domain.catalog import BinType, RecyclableItem
from recycling_assistant.domain.matching import MatchMethod, MatchResult
from recycling_assistant.domain.vision import DetectionBundle
from recycling_assistant.services.materials import MATERIAL_CODES, extract_material_codes

_logger = logging.getLogger(__name__)

MAX_RESULTS = 3
DIRECT_SIMILARITY_THRESHOLD = 0.8
CONTAINMENT_SCORE = 0.9
DIRECT_STOP_CONFIDENCE = 90
CATEGORY_STAGE_BELOW = 70
CATEGORY_OVERLAP_SCORE = 0.6
CATEGORY_CONFIDENCE_CAP = 70
MATERIAL_CONFIDENCE = 75
FUZZY_THRESHOLD = 0.4
FUZZY_CONFIDENCE_CAP = 50

CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "Plastic": ["plastic", "bottle", "container", "cup", "packaging"],
    "Paper": ["paper", "cardboard", "newspaper", "magazine", "box"],
    "Metal": ["metal", "aluminum", "steel", "tin", "can"],
    "Glass": ["glass", "bottle", "jar", "container"],
    "Hazardous": ["battery", "paint", "chemical", "oil", "bulb"],
    "E-Waste": ["electronic", "computer", "phone", "device", "circuit"],
    "Organic": ["food", "compost", "yard waste", "organic"],
    "Textile": ["clothing", "fabric", "textile", "clothes"],
}


def similarity(first: str, second: str) -> float:
    """Case-insensitive normalized edit-distance similarity in [0, 1]."""
    a = first.lower()
    b = second.lower()
    if a == b:
        return 1.0
    longest = max(len(a), len(b))
    return 1.0 - Levenshtein.distance(a, b) / longest


def combined_labels(bundle: DetectionBundle) -> list[str]:
    """Lowercased label, object and web-entity names in detection order."""
    names = [
        *(label.name for label in bundle.labels),
        *(obj.name for obj in bundle.objects),
        *(entity.name for entity in bundle.web_entities),
    ]
    return [name.strip().lower() for name in names if name.strip()]


@dataclass
class _Candidate:
    result: MatchResult
    catalog_index: int


@dataclass
class _MatchState:
    catalog: Sequence[RecyclableItem]
    labels: list[str]
    candidates: list[_Candidate] = field(default_factory=list)
    matched: set[str] = field(default_factory=set)

    def add(  # noqa: PLR0913
        self,
        index: int,
        item: RecyclableItem,
        confidence: float,
        method: MatchMethod,
        matched_labels: list[str],
        *,
        is_recyclable: bool | None = None,
        bin_type: BinType | None = None,
    ) -> MatchResult:
        result = MatchResult(
            item_name=item.name,
            confidence=confidence,
            is_recyclable=item.is_recyclable if is_recyclable is None else is_recyclable,
            bin_type=bin_type or item.bin_type,
            category=item.category,
            special_instructions=item.special_instructions,
            contamination_notes=item.contamination_notes,
            match_method=method,
            matched_labels=matched_labels,
            alternative_disposal=alternative_disposal(item),
        )
        self.candidates.append(_Candidate(result=result, catalog_index=index))
        self.matched.add(item.name)
        return result


def find_matches(
    bundle: DetectionBundle, catalog: Sequence[RecyclableItem]
) -> list[MatchResult]:
    """Return up to three catalog matches, most confident first."""
    state = _MatchState(catalog=catalog, labels=combined_labels(bundle))

    best_direct = _match_direct(state)
    if best_direct < CATEGORY_STAGE_BELOW:
        _match_category(state)
    if bundle.ocr_texts:
        _match_material(state, bundle.ocr_texts)
    if not state.candidates:
        _match_fuzzy(state)

    ranked = sorted(
        state.candidates,
        key=lambda candidate: (-candidate.result.confidence, candidate.catalog_index),
    )
    return [candidate.result for candidate in ranked[:MAX_RESULTS]]


def match_or_unknown(
    bundle: DetectionBundle, catalog: Sequence[RecyclableItem]
) -> list[MatchResult]:
    """Return catalog matches, or the unknown-item sentinel when none match."""
    matches = find_matches(bundle, catalog)
    if matches:
        return matches
    return [unknown_item()]


def unknown_item() -> MatchResult:
    """Sentinel result for images nothing in the catalog could explain."""
    return MatchResult(
        item_name="Unknown Item",
        confidence=0.0,
        is_recyclable=False,
        bin_type="trash",
        category="Unknown",
        special_instructions="We could not identify this item.",
        contamination_notes="",
        match_method="none",
        matched_labels=[],
        alternative_disposal="When in doubt, throw it out.",
    )


def unidentified_objects(
    bundle: DetectionBundle, matches: Sequence[MatchResult]
) -> list[str]:
    """Detected labels and objects that no match accounted for."""
    identified = {label.lower() for match in matches for label in match.matched_labels}
    seen: set[str] = set()
    leftovers: list[str] = []
    detected = [*bundle.labels, *bundle.objects]
    for name in (label.name for label in detected):
        key = name.strip().lower()
        if not key or key in identified or key in seen:
            continue
        seen.add(key)
        leftovers.append(name.strip())
    return leftovers


def alternative_disposal(item: RecyclableItem) -> str | None:
    """Suggest another disposal route for non-recyclable items."""
    if item.is_recyclable:
        return None
    if item.bin_type == "special":
        return item.special_instructions
    if item.category == "Organic":
        return "Consider composting if you have a compost bin"
    if item.category == "Textile":
        return "Donate to charity or textile recycling program"
    if "plastic bag" in item.name.lower():
        return "Take to grocery store plastic bag recycling bin"
    return "Place in regular trash"


def infer_category(labels: list[str]) -> str | None:
    """Pick the category whose keywords hit the labels most often."""
    best_category: str | None = None
    best_score = 0
    for category, keywords in CATEGORY_KEYWORDS.items():
        score = sum(1 for label in labels for keyword in keywords if keyword in label)
        if score > best_score:
            best_category, best_score = category, score
    return best_category


def _match_direct(state: _MatchState) -> float:
    best = 0.0
    for index, item in enumerate(state.catalog):
        # item names count as known labels so an exact name scores 100
        item_labels = [item.name, *item.known_labels]
        item_labels = [label.strip().lower() for label in item_labels if label.strip()]
        score, hits = _direct_score(state.labels, item_labels)
        if not hits or item.name in state.matched:
            continue
        confidence = min(score * 100, 100)
        state.add(index, item, confidence, "direct", hits)
        best = max(best, confidence)
        if confidence > DIRECT_STOP_CONFIDENCE:
            _logger.info("High confidence match: %s (%.0f%%)", item.name, confidence)
            break
    return best


def _direct_score(
    detected: list[str], item_labels: list[str]
) -> tuple[float, list[str]]:
    best = 0.0
    hits: list[str] = []
    for detected_label in detected:
        for item_label in item_labels:
            score = similarity(detected_label, item_label)
            if score <= DIRECT_SIMILARITY_THRESHOLD:
                score = 0.0
            if detected_label in item_label or item_label in detected_label:
                score = max(score, CONTAINMENT_SCORE)
            if score > 0:
                best = max(best, score)
                if detected_label not in hits:
                    hits.append(detected_label)
    return best, hits


def _match_category(state: _MatchState) -> None:
    category = infer_category(state.labels)
    if category is None:
        return
    _logger.debug("Inferred category %s", category)
    for index, item in enumerate(state.catalog):
        if item.category != category or item.name in state.matched:
            continue
        keywords = [item.name.lower(), *(s.strip().lower() for s in item.similar_items)]
        hits = [
            label
            for label in state.labels
            if any(k and (k in label or label in k) for k in keywords)
        ]
        if hits:
            confidence = min(CATEGORY_OVERLAP_SCORE * 100, CATEGORY_CONFIDENCE_CAP)
            state.add(index, item, confidence, "category", list(dict.fromkeys(hits)))


def _match_material(state: _MatchState, ocr_texts: list[str]) -> None:
    for code in extract_material_codes(ocr_texts):
        info = MATERIAL_CODES[code]
        for index, item in enumerate(state.catalog):
            if code in item.material_codes and item.name not in state.matched:
                state.add(
                    index,
                    item,
                    MATERIAL_CONFIDENCE,
                    "material",
                    [code],
                    is_recyclable=info.recyclable,
                    bin_type=info.bin_type,
                )
                break


def _match_fuzzy(state: _MatchState) -> None:
    if not state.labels:
        return
    for index, item in enumerate(state.catalog):
        if item.name in state.matched:
            continue
        scored = [(similarity(item.name, label), label) for label in state.labels]
        best, best_label = max(scored, key=lambda pair: pair[0])
        if best > FUZZY_THRESHOLD:
            confidence = min(best * 100, FUZZY_CONFIDENCE_CAP)
            state.add(index, item, confidence, "fuzzy", [best_label])
