from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest

from hoursforecast.config import EngineConfig, default_config
from hoursforecast.normalize import (
    build_inputs,
    coerce_amount,
    coerce_hours,
    parse_date_range,
    parse_holidays,
)
from hoursforecast.types import InvalidDateRange, RateCategory, RecurrencePolicy, Shift, TravelKind, Weekday


@pytest.mark.parametrize(
    "value, expected",
    [
        ("abc", 0.0),
        ("12.5", 12.5),
        (-3, 0.0),
        ("", 0.0),
        (None, 0.0),
        (7, 7.0),
        ("inf", 0.0),
        ("-Infinity", 0.0),
        ("1e400", 0.0),
    ],
)
def test_coerce_amount(value, expected):
    assert coerce_amount(value) == expected


def test_hours_above_a_day_are_clamped_with_warning():
    warnings: list[str] = []
    assert coerce_hours(30, warnings) == 24.0
    assert len(warnings) == 1


def test_parse_holidays_drops_blank_and_junk_tokens():
    holidays = parse_holidays("2025-01-01, , junk,2025-12-25 ,2025-02-30")
    assert holidays == frozenset({dt.date(2025, 1, 1), dt.date(2025, 12, 25)})


def test_parse_holidays_empty():
    assert parse_holidays("") == frozenset()
    assert parse_holidays(None) == frozenset()


class TestDateRange:
    def test_reversed_range_is_invalid(self):
        with pytest.raises(InvalidDateRange):
            parse_date_range("2025-02-01", "2025-01-01")

    def test_unparsable_date_is_invalid(self):
        with pytest.raises(InvalidDateRange):
            parse_date_range("not a date", "2025-01-01")

    def test_single_day_is_valid(self):
        rng = parse_date_range("2025-01-01", "2025-01-01")
        assert rng.days == 1


def test_build_inputs_from_form_values():
    raw = {
        "start": "2025-01-06",
        "end": "2025-01-12",
        "policy": "fortnightly",
        "days": {
            "monday": {"selected": True, "hours": "8"},
            "Tuesday": {"selected": True, "hours": "abc", "shift": "evening"},
            "Saturday": 4,
            "Funday": 3,
        },
        "rates": {"weekday": "50", "saturday": {"amount": 60, "catalog_code": "01_013"}, "bogus": 9},
        "holidays": "2025-01-08",
        "travel": [{"kind": "provider_travel", "distance": "12", "rate": 0.99}, {"kind": "teleport"}],
        "budget_mode": "lock",
        "budget": "3000",
    }
    inputs = build_inputs(raw, default_config())

    assert inputs.policy is RecurrencePolicy.FORTNIGHTLY
    assert inputs.pattern[Weekday.MONDAY].hours == 8.0
    assert inputs.pattern[Weekday.TUESDAY].hours == 0.0
    assert inputs.pattern[Weekday.TUESDAY].shift is Shift.EVENING
    assert inputs.pattern[Weekday.SATURDAY].selected
    assert not inputs.pattern[Weekday.SUNDAY].selected
    assert inputs.rate_sheet.amount(RateCategory.WEEKDAY_DAY) == 50.0
    assert inputs.rate_sheet[RateCategory.SATURDAY].catalog_code == "01_013"
    assert inputs.holidays == frozenset({dt.date(2025, 1, 8)})
    assert [line.kind for line in inputs.travel] == [TravelKind.PROVIDER_TRAVEL]
    assert inputs.budget_locked
    assert inputs.target_budget == 3000.0
    assert any("Funday" in w for w in inputs.warnings)


def test_unknown_policy_counts_every_day():
    inputs = build_inputs({"start": "2025-01-01", "end": "2025-01-02", "policy": "Yearly"})
    assert inputs.policy is None
    assert inputs.warnings


def test_holidays_default_from_settings_and_can_be_disabled():
    inputs = build_inputs({"start": "2025-01-01", "end": "2025-01-31"})
    assert dt.date(2025, 1, 27) in inputs.holidays

    disabled = build_inputs({"start": "2025-01-01", "end": "2025-01-31", "holidays_enabled": False})
    assert disabled.holidays == frozenset()


class TestConfig:
    def test_packaged_defaults(self):
        cfg = default_config()
        assert cfg.rate_field == "QLD"
        assert cfg.default_policy == "Weekly"
        assert len(cfg.holidays) == 13

    def test_from_yaml(self, tmp_path: Path):
        path = tmp_path / "settings.yaml"
        path.write_text("rate_field: NSW\nholidays: 2025-01-01, 2025-01-27\n", encoding="utf-8")
        cfg = EngineConfig.from_yaml(path)
        assert cfg.rate_field == "NSW"
        assert cfg.holidays == ["2025-01-01", "2025-01-27"]

    def test_non_mapping_yaml_is_rejected(self, tmp_path: Path):
        path = tmp_path / "settings.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ValueError):
            EngineConfig.from_yaml(path)


def test_all_rates_same_copies_weekday_rate_to_weekend_and_holidays():
    raw = {
        "start": "2025-01-01",
        "end": "2025-01-31",
        "rates": {"weekday": 55, "weekday_evening": 61, "saturday": 80, "sunday": 90},
        "all_rates_same": "yes",
    }
    sheet = build_inputs(raw).rate_sheet
    assert sheet.amount(RateCategory.SATURDAY) == 55.0
    assert sheet.amount(RateCategory.SUNDAY) == 55.0
    assert sheet.amount(RateCategory.PUBLIC_HOLIDAY) == 55.0
    assert sheet.amount(RateCategory.WEEKDAY_EVENING) == 61.0
