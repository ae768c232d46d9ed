"""CSV-backed item catalog."""

import csv
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from recycling_assistant.domain.catalog import BIN_TYPES, RecyclableItem
from recycling_assistant.services.catalog import CatalogRepository
from recycling_assistant.services.materials import canonical_material_code

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[1] / "data" / "recyclable_items.csv"

_logger = logging.getLogger(__name__)


@dataclass
class CsvCatalogRepository(CatalogRepository):
    """Loads the catalog from CSV once and serves the snapshot."""

    path: Path = DEFAULT_CATALOG_PATH
    _items: tuple[RecyclableItem, ...] | None = field(
        default=None, init=False, repr=False
    )

    def list_items(self) -> tuple[RecyclableItem, ...]:
        """Return the cached catalog snapshot, loading it on first use."""
        if self._items is None:
            self._items = load_catalog(self.path)
            _logger.info("Loaded %s catalog items from %s", len(self._items), self.path)
        return self._items


def load_catalog(path: Path) -> tuple[RecyclableItem, ...]:
    """Read catalog items from a CSV file."""
    with path.open(encoding="utf-8", newline="") as handle:
        return parse_catalog_rows(csv.DictReader(handle))


def parse_catalog_rows(
    rows: Iterable[Mapping[str, str | None]],
) -> tuple[RecyclableItem, ...]:
    """Convert CSV rows into catalog items, skipping rows without a name."""
    items: list[RecyclableItem] = []
    for row in rows:
        name = (row.get("item") or "").strip()
        if not name:
            continue
        bin_type = (row.get("bin_type") or "").strip().lower()
        if bin_type not in BIN_TYPES:
            _logger.warning("Unknown bin type %r for %s, using trash", bin_type, name)
            bin_type = "trash"
        items.append(
            RecyclableItem(
                name=name,
                category=(row.get("category") or "").strip(),
                is_recyclable=(row.get("recyclable") or "").strip().lower() == "yes",
                bin_type=bin_type,  # type: ignore[arg-type]
                special_instructions=(row.get("special_instructions") or "").strip(),
                contamination_notes=(row.get("contamination_notes") or "").strip(),
                material_codes=tuple(
                    canonical_material_code(code)
                    for code in _split_list(row.get("material_codes"))
                ),
                known_labels=_split_list(row.get("vision_labels")),
                similar_items=_split_list(row.get("similar_items")),
            )
        )
    return tuple(items)


def _split_list(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(";") if part.strip())
