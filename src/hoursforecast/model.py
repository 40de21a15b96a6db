from __future__ import annotations

import logging
import math
from typing import Any, Iterable

import pandas as pd

from .recurrence import classify
from .types import (
    CategoryTallies,
    DateRange,
    ForecastInputs,
    ForecastResult,
    PeriodBreakdown,
    RateCategory,
    RateSheet,
    TravelKind,
    TravelLine,
)

logger = logging.getLogger("hoursforecast.model")

# Absorbs binary noise such as 1.1 * 100 == 110.00000000000001 before the ceiling.
_CENT_TOLERANCE_DIGITS = 9


def round_up(value: Any) -> float:
    """Round up to whole cents. Forecasts must never under-quote."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(num) or num <= 0:
        return 0.0
    return math.ceil(round(num * 100, _CENT_TOLERANCE_DIGITS)) / 100


def months_between(date_range: DateRange) -> int:
    """Whole calendar months from start to end, never negative."""
    start, end = date_range.start, date_range.end
    months = (end.year - start.year) * 12 - start.month + end.month
    if end.day < start.day and months > 0:
        months -= 1
    return max(0, months)


def travel_costs(lines: Iterable[TravelLine]) -> dict[TravelKind, float]:
    raw: dict[TravelKind, float] = {}
    for line in lines:
        raw[line.kind] = raw.get(line.kind, 0.0) + line.raw_cost
    return {kind: round_up(cost) for kind, cost in raw.items()}


def aggregate(
    tallies: CategoryTallies,
    rate_sheet: RateSheet,
    date_range: DateRange,
    travel: Iterable[TravelLine] = (),
    warnings: Iterable[str] = (),
) -> ForecastResult:
    raw_pay = {cat: tallies.hours[cat] * rate_sheet.amount(cat) for cat in RateCategory}
    pay = {cat: round_up(v) for cat, v in raw_pay.items()}
    hours = {cat: round_up(tallies.hours[cat]) for cat in RateCategory}

    # Summing rounded cents can still leave float noise; round_up clears it.
    total_pay = round_up(sum(pay.values()))
    total_hours = round_up(sum(tallies.hours.values()))

    counted = tallies.counted_days
    breakdown = PeriodBreakdown(
        counted_days=counted,
        counted_weekdays=tallies.days[RateCategory.WEEKDAY_DAY] + tallies.days[RateCategory.WEEKDAY_EVENING],
        counted_saturdays=tallies.days[RateCategory.SATURDAY],
        counted_sundays=tallies.days[RateCategory.SUNDAY],
        counted_holidays=tallies.days[RateCategory.PUBLIC_HOLIDAY],
        full_weeks=counted // 7,
        full_fortnights=counted // 14,
        full_months=months_between(date_range),
    )

    travel_by_kind = travel_costs(travel)
    travel_total = round_up(sum(travel_by_kind.values()))
    return ForecastResult(
        hours=hours,
        pay=pay,
        total_hours=total_hours,
        total_pay=total_pay,
        breakdown=breakdown,
        travel_costs=travel_by_kind,
        travel_total=travel_total,
        grand_total=round_up(total_pay + travel_total),
        warnings=tuple(warnings),
    )


def forecast(inputs: ForecastInputs) -> ForecastResult:
    tallies = classify(
        inputs.date_range,
        inputs.pattern,
        inputs.policy,
        inputs.holidays,
        inputs.holidays_enabled,
    )
    result = aggregate(tallies, inputs.rate_sheet, inputs.date_range, inputs.travel, inputs.warnings)
    logger.debug(
        "Forecast %s..%s policy=%s counted_days=%d total_hours=%.2f total_pay=%.2f",
        inputs.date_range.start,
        inputs.date_range.end,
        inputs.policy.value if inputs.policy else "none",
        result.breakdown.counted_days,
        result.total_hours,
        result.total_pay,
    )
    return result


def breakdown_frame(result: ForecastResult) -> pd.DataFrame:
    """Category table (Category, Hours, Pay) used by reports and the CLI."""
    rows = [[cat.label, result.hours[cat], result.pay[cat]] for cat in RateCategory]
    rows.append(["Total", result.total_hours, result.total_pay])
    return pd.DataFrame(rows, columns=["Category", "Hours", "Pay"])
