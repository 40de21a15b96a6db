from __future__ import annotations

import json
from pathlib import Path

import pytest

from hoursforecast.catalog import (
    KeywordCatalogMatcher,
    LookupCatalogMatcher,
    derive_base_name,
    find_entry,
    match_related,
    normalize_name,
    search_catalog,
)
from hoursforecast.io import catalog_from_records, load_catalog
from hoursforecast.synth import SynthSpec, generate_synthetic_catalog
from hoursforecast.types import CatalogEntry, RateCategory, RateEntry, RateSheet

SELF_CARE = "Assistance With Self-Care Activities - Standard"

CATALOG = [
    CatalogEntry("04_104_0125_6_1", "Group Activities In The Community - Saturday", 80.0),
    CatalogEntry("01_011_0107_1_1", f"{SELF_CARE} - Weekday Daytime", 70.23),
    CatalogEntry("01_015_0107_1_1", f"{SELF_CARE} - Weekday Evening", 77.38),
    CatalogEntry("01_002_0107_1_1", f"{SELF_CARE} - Weekday Night", 78.81),
    CatalogEntry("01_013_0107_1_1", f"{SELF_CARE} - Saturday", 98.83),
    CatalogEntry("01_014_0107_1_1", f"{SELF_CARE} - Sunday", 127.43),
    CatalogEntry("01_012_0107_1_1", f"{SELF_CARE} - Public Holiday", 156.03),
]


class TestSearch:
    def test_tokens_match_normalized_name(self):
        hits = search_catalog(CATALOG, "self care saturday")
        assert [e.code for e in hits] == ["01_013_0107_1_1"]

    def test_code_substring(self):
        hits = search_catalog(CATALOG, "01_01")
        assert {e.code for e in hits} == {
            "01_011_0107_1_1",
            "01_015_0107_1_1",
            "01_013_0107_1_1",
            "01_014_0107_1_1",
            "01_012_0107_1_1",
        }

    def test_empty_query_matches_nothing(self):
        assert search_catalog(CATALOG, "   ") == []

    def test_limit(self):
        assert len(search_catalog(CATALOG, "self-care", limit=2)) == 2


def test_normalize_name():
    assert normalize_name("Self-Care / Weekday  Daytime") == "self care weekday daytime"


@pytest.mark.parametrize(
    "name, expected",
    [
        (f"{SELF_CARE} - Weekday Daytime", SELF_CARE),
        ("Community Access - Public Holiday", "Community Access"),
        ("Night Shift Support - Weekday Night", "Night Shift Support"),
        ("Plain Item", "Plain Item"),
        ("Saturday", "Saturday"),
    ],
)
def test_derive_base_name(name, expected):
    assert derive_base_name(name) == expected


def test_match_related_finds_each_variant():
    base = find_entry(CATALOG, "01_011_0107_1_1")
    related = match_related(CATALOG, base)

    assert related[RateCategory.WEEKDAY_DAY].catalog_code == "01_011_0107_1_1"
    # Evening comes before Night in the catalog, first match wins
    assert related[RateCategory.WEEKDAY_EVENING].catalog_code == "01_015_0107_1_1"
    assert related[RateCategory.SATURDAY].catalog_code == "01_013_0107_1_1"
    assert related[RateCategory.SUNDAY].amount == 127.43
    assert related[RateCategory.PUBLIC_HOLIDAY].catalog_name == f"{SELF_CARE} - Public Holiday"


def test_missing_variant_is_left_for_the_caller():
    catalog = [e for e in CATALOG if "Public Holiday" not in e.name]
    related = KeywordCatalogMatcher().match_related(catalog, catalog[1])
    assert RateCategory.PUBLIC_HOLIDAY not in related

    sheet = RateSheet({RateCategory.PUBLIC_HOLIDAY: RateEntry(amount=150.0)}).merged(related)
    assert sheet.amount(RateCategory.PUBLIC_HOLIDAY) == 150.0
    assert sheet.amount(RateCategory.WEEKDAY_DAY) == 70.23


def test_lookup_matcher_uses_exact_codes():
    matcher = LookupCatalogMatcher({"01_011_0107_1_1": {RateCategory.SUNDAY: "01_014_0107_1_1"}})
    related = matcher.match_related(CATALOG, CATALOG[1])
    assert set(related) == {RateCategory.WEEKDAY_DAY, RateCategory.SUNDAY}
    assert related[RateCategory.SUNDAY].amount == 127.43


def test_all_rates_same_copies_weekday_rate():
    sheet = RateSheet({RateCategory.WEEKDAY_DAY: RateEntry(amount=55.0)}).with_all_rates_same()
    assert sheet.amount(RateCategory.SUNDAY) == 55.0
    assert sheet.amount(RateCategory.WEEKDAY_EVENING) == 0.0


class TestLoadCatalog:
    def test_records_coerce_bad_rates(self):
        entries = catalog_from_records(
            [
                {"Support Item Number": "A1", "Support Item Name": "Thing - Weekday Daytime", "QLD": "n/a"},
                {"Support Item Number": "A2", "Support Item Name": "Thing - Saturday", "QLD": 91.5},
            ],
            "QLD",
        )
        assert [e.amount for e in entries] == [0.0, 91.5]

    def test_missing_name_column(self):
        with pytest.raises(ValueError, match="Support Item Name"):
            catalog_from_records([{"Support Item Number": "A1", "QLD": 1}], "QLD")

    def test_json_file(self, tmp_path: Path):
        path = tmp_path / "catalog.json"
        path.write_text(
            json.dumps([{"Support Item Number": "B1", "Support Item Name": "Item", "NSW": 12.5}]), encoding="utf-8"
        )
        entries = load_catalog(path, "NSW")
        assert entries == [CatalogEntry("B1", "Item", 12.5)]

    def test_synthetic_csv_round_trip_matches_variants(self, tmp_path: Path):
        path = generate_synthetic_catalog(tmp_path / "catalog.csv", SynthSpec(items=2, seed=3))
        entries = load_catalog(path, "QLD")
        assert len(entries) == 12

        base = find_entry(entries, "01_001_0107_1_1")
        related = match_related(entries, base)
        assert related[RateCategory.WEEKDAY_EVENING].catalog_code == "01_001_0107_1_2"
        assert related[RateCategory.SATURDAY].catalog_code == "01_001_0107_1_4"
        assert related[RateCategory.SUNDAY].catalog_code == "01_001_0107_1_5"
        assert related[RateCategory.PUBLIC_HOLIDAY].catalog_code == "01_001_0107_1_6"
