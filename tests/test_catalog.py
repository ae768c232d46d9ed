"""Tests for the CSV catalog and catalog search."""

import logging

from recycling_assistant.adapters.csv_catalog_repository import (
    CsvCatalogRepository,
    parse_catalog_rows,
)
from recycling_assistant.services.catalog import CatalogService

_HEADER = (
    "item,category,recyclable,bin_type,special_instructions,contamination_notes,"
    "vision_labels,material_codes,similar_items\n"
)


def test_default_catalog_loads(catalog) -> None:
    names = [item.name for item in catalog]

    assert len(catalog) >= 20
    assert names[0] == "Plastic Bottle (#1 or #2)"
    assert catalog[0].material_codes == ("PETE 1", "HDPE 2")
    assert "water bottle" in catalog[0].known_labels


def test_parse_catalog_rows_normalizes_fields(caplog) -> None:
    rows = [
        {
            "item": " Jar ",
            "category": "Glass",
            "recyclable": "YES",
            "bin_type": "Recycling",
            "vision_labels": "jar; glass jar ;",
            "material_codes": "",
            "similar_items": None,
        },
        {"item": "", "category": "Glass"},
        {"item": "Mystery", "recyclable": "no", "bin_type": "landfill"},
        {"item": "Tub", "bin_type": "recycling", "material_codes": "pp #5"},
    ]

    logger = logging.getLogger("recycling_assistant.adapters.csv_catalog_repository")
    logger.addHandler(caplog.handler)
    try:
        items = parse_catalog_rows(rows)
    finally:
        logger.removeHandler(caplog.handler)

    assert [item.name for item in items] == ["Jar", "Mystery", "Tub"]
    assert items[0].is_recyclable is True
    assert items[0].bin_type == "recycling"
    assert items[0].known_labels == ("jar", "glass jar")
    assert items[0].similar_items == ()
    assert items[1].bin_type == "trash"
    assert items[2].material_codes == ("PP 5",)
    assert "Unknown bin type" in caplog.text


def test_csv_repository_loads_once(tmp_path) -> None:
    path = tmp_path / "items.csv"
    path.write_text(_HEADER + "Can,Metal,yes,recycling,,,can,,\n", encoding="utf-8")
    repository = CsvCatalogRepository(path)

    first = repository.list_items()
    path.write_text(_HEADER, encoding="utf-8")

    assert repository.list_items() is first
    assert first[0].name == "Can"


def test_search_matches_name_or_category(catalog) -> None:
    service = CatalogService(CsvCatalogRepository())

    by_name = service.search("Bottle")
    by_category = service.search("hazardous")

    assert not by_name.fuzzy
    assert [item.name for item in by_name.items] == [
        "Plastic Bottle (#1 or #2)",
        "Glass Bottle",
    ]
    assert {item.category for item in by_category.items} == {"Hazardous"}


def test_search_falls_back_to_word_overlap() -> None:
    service = CatalogService(CsvCatalogRepository())

    result = service.search("bottles")

    assert result.fuzzy
    assert [item.name for item in result.items] == [
        "Plastic Bottle (#1 or #2)",
        "Glass Bottle",
    ]


def test_search_without_results() -> None:
    service = CatalogService(CsvCatalogRepository())

    result = service.search("qqqq")

    assert result.items == []
    assert result.fuzzy
