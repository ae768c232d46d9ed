"""Reference data for disposal rules."""

from dataclasses import dataclass
from typing import Literal

BinType = Literal["recycling", "trash", "compost", "special"]

BIN_TYPES: frozenset[str] = frozenset({"recycling", "trash", "compost", "special"})


@dataclass(frozen=True)
class RecyclableItem:
    """One disposal rule from the item catalog."""

    name: str
    category: str
    is_recyclable: bool
    bin_type: BinType
    special_instructions: str = ""
    contamination_notes: str = ""
    material_codes: tuple[str, ...] = ()
    known_labels: tuple[str, ...] = ()
    similar_items: tuple[str, ...] = ()
