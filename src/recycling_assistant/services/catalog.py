"""Item catalog lookups."""

from dataclasses import dataclass
from typing import Protocol

from recycling_assistant.domain.catalog import RecyclableItem

SEARCH_LIMIT = 10
FUZZY_SEARCH_LIMIT = 5


class CatalogRepository(Protocol):
    """Source of disposal rules."""

    def list_items(self) -> tuple[RecyclableItem, ...]:
        """Return an immutable snapshot of the catalog."""


@dataclass(frozen=True)
class SearchResult:
    """Catalog search outcome."""

    items: list[RecyclableItem]
    fuzzy: bool


@dataclass
class CatalogService:
    """Read-only access to the item catalog."""

    repository: CatalogRepository

    def items(self) -> tuple[RecyclableItem, ...]:
        """Return every catalog item."""
        return self.repository.list_items()

    def search(self, query: str) -> SearchResult:
        """Search by name or category, falling back to word overlap."""
        needle = query.strip().lower()
        items = self.items()
        exact = [
            item
            for item in items
            if needle in item.name.lower() or needle in item.category.lower()
        ]
        if exact:
            return SearchResult(items=exact[:SEARCH_LIMIT], fuzzy=False)

        query_words = needle.split()
        fuzzy = [
            item
            for item in items
            if _words_overlap(query_words, item.name.lower().split())
            or _words_overlap(query_words, item.category.lower().split())
        ]
        return SearchResult(items=fuzzy[:FUZZY_SEARCH_LIMIT], fuzzy=True)


def _words_overlap(query_words: list[str], words: list[str]) -> bool:
    return any(
        word in query_word or query_word in word
        for query_word in query_words
        for word in words
    )
