"""Plastic resin code detection from OCR text."""

import re
from dataclasses import dataclass

from recycling_assistant.domain.catalog import BinType


@dataclass(frozen=True)
class MaterialInfo:
    """Recyclability of a resin code."""

    recyclable: bool
    bin_type: BinType


MATERIAL_CODES: dict[str, MaterialInfo] = {
    "PETE 1": MaterialInfo(recyclable=True, bin_type="recycling"),
    "HDPE 2": MaterialInfo(recyclable=True, bin_type="recycling"),
    "PVC 3": MaterialInfo(recyclable=False, bin_type="trash"),
    "LDPE 4": MaterialInfo(recyclable=False, bin_type="special"),  # store drop-off
    "PP 5": MaterialInfo(recyclable=True, bin_type="recycling"),
    "PS 6": MaterialInfo(recyclable=False, bin_type="trash"),
    "OTHER 7": MaterialInfo(recyclable=False, bin_type="trash"),
}

_CODE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\bPETE?\s*#?\s*1\b", re.IGNORECASE), "PETE 1"),
    (re.compile(r"\bHDPE\s*#?\s*2\b", re.IGNORECASE), "HDPE 2"),
    (re.compile(r"\bPVC\s*#?\s*3\b", re.IGNORECASE), "PVC 3"),
    (re.compile(r"\bLDPE\s*#?\s*4\b", re.IGNORECASE), "LDPE 4"),
    (re.compile(r"\bPP\s*#?\s*5\b", re.IGNORECASE), "PP 5"),
    (re.compile(r"\bPS\s*#?\s*6\b", re.IGNORECASE), "PS 6"),
    (re.compile(r"\bOTHER\s*#?\s*7\b", re.IGNORECASE), "OTHER 7"),
]
_BARE_CODE = re.compile(r"#\s*([1-7])\b")
_CODES_BY_NUMBER = {code.split()[-1]: code for code in MATERIAL_CODES}


def extract_material_codes(texts: list[str]) -> list[str]:
    """Return canonical resin codes found in OCR tokens, in detection order.

    Each token is scanned on its own, then the tokens are scanned joined
    with spaces so codes split across tokens (``PETE`` / ``1``) are found.
    """
    candidates = [*texts, " ".join(texts)] if len(texts) > 1 else list(texts)
    found: list[str] = []
    for text in candidates:
        for pattern, code in _CODE_PATTERNS:
            if pattern.search(text) and code not in found:
                found.append(code)
        for number in _BARE_CODE.findall(text):
            code = _CODES_BY_NUMBER[number]
            if code not in found:
                found.append(code)
    return found


def canonical_material_code(raw: str) -> str:
    """Normalize a catalog material code such as ``pete #1`` to ``PETE 1``."""
    cleaned = re.sub(r"[#\s]+", " ", raw.upper()).strip()
    match = re.fullmatch(r"([A-Z]+)\s*([1-7])", cleaned)
    if match is None:
        return cleaned
    prefix, number = match.groups()
    if prefix == "PET":
        prefix = "PETE"
    return f"{prefix} {number}"
