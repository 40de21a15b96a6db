from __future__ import annotations

import datetime as dt
import logging
import math
from typing import Any, Iterable, Mapping

import pandas as pd

from .config import EngineConfig, default_config
from .types import (
    DateRange,
    DayPattern,
    ForecastInputs,
    InvalidDateRange,
    RateCategory,
    RateEntry,
    RateSheet,
    RecurrencePolicy,
    Shift,
    TravelKind,
    TravelLine,
    Weekday,
    WeekdaySlot,
)

logger = logging.getLogger("hoursforecast.normalize")

MAX_DAILY_HOURS = 24.0


def coerce_amount(value: Any) -> float:
    """Non-numeric and non-finite values become 0; negatives clamp to 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str) and not value.strip():
        return 0.0
    num = pd.to_numeric(value, errors="coerce")
    if pd.isna(num) or not math.isfinite(float(num)):
        return 0.0
    return max(0.0, float(num))


def coerce_hours(value: Any, warnings: list[str] | None = None, label: str = "hours") -> float:
    hours = coerce_amount(value)
    if hours > MAX_DAILY_HOURS:
        if warnings is not None:
            warnings.append(f"{label} of {hours:g} exceeds {MAX_DAILY_HOURS:g}; clamped.")
        hours = MAX_DAILY_HOURS
    return hours


def coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return bool(value)


def parse_date(value: Any) -> dt.date | None:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    text = str(value or "").strip()
    if not text:
        return None
    ts = pd.to_datetime(text, format="%Y-%m-%d", errors="coerce")
    if pd.isna(ts):
        return None
    return ts.date()


def parse_date_range(start: Any, end: Any) -> DateRange:
    start_date = parse_date(start)
    end_date = parse_date(end)
    if start_date is None or end_date is None:
        raise InvalidDateRange(
            'Please enter valid "From" and "To" dates, with "From" date before or equal to "To" date.'
        )
    return DateRange(start_date, end_date)


def parse_holidays(text: str | Iterable[Any] | None) -> frozenset[dt.date]:
    """Parse a comma-separated list of ISO dates, dropping blanks and junk."""
    if text is None:
        return frozenset()
    if isinstance(text, str):
        tokens = [t.strip() for t in text.split(",")]
    else:
        tokens = [str(t).strip() for t in text]
    tokens = [t for t in tokens if t]
    if not tokens:
        return frozenset()

    parsed = pd.to_datetime(pd.Series(tokens), format="%Y-%m-%d", errors="coerce")
    dropped = [tok for tok, ts in zip(tokens, parsed) if pd.isna(ts)]
    if dropped:
        logger.debug("Ignoring unparsable holiday dates: %s", ", ".join(dropped))
    return frozenset(ts.date() for ts in parsed.dropna())


def normalize_day_pattern(raw: Mapping[str, Any] | None, warnings: list[str] | None = None) -> DayPattern:
    slots: dict[Weekday, WeekdaySlot] = {}
    for name, value in (raw or {}).items():
        try:
            day = Weekday(str(name).strip().capitalize())
        except ValueError:
            if warnings is not None:
                warnings.append(f"Unknown weekday '{name}' ignored.")
            continue
        if isinstance(value, Mapping):
            selected = coerce_bool(value.get("selected", True))
            hours = coerce_hours(value.get("hours"), warnings, label=f"{day.value} hours")
            shift_raw = str(value.get("shift") or Shift.DAY.value).strip().capitalize()
            shift = Shift.EVENING if shift_raw == Shift.EVENING.value else Shift.DAY
        else:
            # A bare number means "selected with these hours"
            hours = coerce_hours(value, warnings, label=f"{day.value} hours")
            selected = True
            shift = Shift.DAY
        slots[day] = WeekdaySlot(selected=selected, hours=hours, shift=shift)
    return DayPattern(slots)


def normalize_rate_sheet(raw: Mapping[str, Any] | None) -> RateSheet:
    entries: dict[RateCategory, RateEntry] = {}
    for key, value in (raw or {}).items():
        try:
            category = RateCategory(str(key).strip().lower())
        except ValueError:
            logger.debug("Ignoring unknown rate category %r", key)
            continue
        if isinstance(value, Mapping):
            entries[category] = RateEntry(
                amount=coerce_amount(value.get("amount")),
                catalog_name=value.get("catalog_name"),
                catalog_code=value.get("catalog_code"),
            )
        else:
            entries[category] = RateEntry(amount=coerce_amount(value))
    return RateSheet(entries)


def normalize_travel(raw: Iterable[Mapping[str, Any]] | None) -> tuple[TravelLine, ...]:
    lines: list[TravelLine] = []
    for item in raw or []:
        try:
            kind = TravelKind(str(item.get("kind", "")).strip().lower())
        except ValueError:
            logger.debug("Ignoring travel line with unknown kind %r", item.get("kind"))
            continue
        lines.append(
            TravelLine(
                kind=kind,
                distance=coerce_amount(item.get("distance")),
                rate=coerce_amount(item.get("rate")),
                flexible=coerce_bool(item.get("flexible", True)),
            )
        )
    return tuple(lines)


def build_inputs(raw: Mapping[str, Any], config: EngineConfig | None = None) -> ForecastInputs:
    """Build the immutable input struct from raw, form-like values.

    Raises InvalidDateRange when the dates are missing, unparsable or reversed.
    Everything else is coerced leniently.
    """
    cfg = config or default_config()
    warnings: list[str] = []

    date_range = parse_date_range(raw.get("start"), raw.get("end"))
    policy = RecurrencePolicy.coerce(raw.get("policy", cfg.default_policy))
    if policy is None:
        warnings.append(f"Unknown recurrence policy {raw.get('policy')!r}; every day is eligible.")

    holidays_enabled = coerce_bool(raw.get("holidays_enabled", cfg.holidays_enabled))
    holidays_raw = raw.get("holidays", cfg.holidays)
    holidays = parse_holidays(holidays_raw) if holidays_enabled else frozenset()

    budget_locked = coerce_bool(raw.get("budget_locked", False)) or raw.get("budget_mode") == "lock"

    rate_sheet = normalize_rate_sheet(raw.get("rates"))
    if coerce_bool(raw.get("all_rates_same", False)):
        rate_sheet = rate_sheet.with_all_rates_same()

    return ForecastInputs(
        date_range=date_range,
        pattern=normalize_day_pattern(raw.get("days"), warnings),
        policy=policy,
        holidays=holidays,
        holidays_enabled=holidays_enabled,
        rate_sheet=rate_sheet,
        travel=normalize_travel(raw.get("travel")),
        budget_locked=budget_locked,
        target_budget=coerce_amount(raw.get("budget")),
        warnings=tuple(warnings),
    )
