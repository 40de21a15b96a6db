"""Calendar recurrence classifier.

Walks every day of a date range, keeps the days that are selected in the
weekly pattern and live under the recurrence policy, and buckets each kept
day into exactly one pay category.
"""

from __future__ import annotations

import datetime as dt
from typing import AbstractSet

import numpy as np
import pandas as pd

from .types import (
    WEEKDAYS,
    CategoryTallies,
    DateRange,
    DayPattern,
    RateCategory,
    RecurrencePolicy,
    Shift,
)

QUARTER_START_MONTHS = (1, 4, 7, 10)
# Monthly and quarterly services fall in the first week of the period.
FIRST_WEEK_LAST_DAY = 7

SCHEDULE_COLUMNS = ["Date", "Weekday", "Hours", "Category"]


def recurrence_mask(dates: pd.Series, policy: RecurrencePolicy | None, start: dt.date) -> pd.Series:
    if policy is RecurrencePolicy.FORTNIGHTLY:
        offset = (dates - pd.Timestamp(start)).dt.days
        return (offset // 7) % 2 == 0
    if policy is RecurrencePolicy.MONTHLY:
        return dates.dt.day <= FIRST_WEEK_LAST_DAY
    if policy is RecurrencePolicy.QUARTERLY:
        return dates.dt.month.isin(QUARTER_START_MONTHS) & (dates.dt.day <= FIRST_WEEK_LAST_DAY)
    # Daily, Weekly and unknown policies
    return pd.Series(True, index=dates.index)


def classify_days(
    date_range: DateRange,
    pattern: DayPattern,
    policy: RecurrencePolicy | None,
    holidays: AbstractSet[dt.date],
    holidays_enabled: bool,
) -> pd.DataFrame:
    """Return one row per counted day: Date, Weekday, Hours, Category."""
    frame = pd.DataFrame({"Date": pd.date_range(date_range.start, date_range.end, freq="D")})
    dow = frame["Date"].dt.dayofweek
    slots = [pattern[day] for day in WEEKDAYS]

    frame["Weekday"] = dow.map(lambda i: WEEKDAYS[i].value)
    frame["Hours"] = dow.map(lambda i: slots[i].hours).astype(float)
    selected = dow.map(lambda i: slots[i].selected).astype(bool)
    evening = dow.map(lambda i: slots[i].shift is Shift.EVENING).astype(bool)
    live = recurrence_mask(frame["Date"], policy, date_range.start)

    keep = selected & (frame["Hours"] > 0) & live
    counted = frame[keep].copy()
    dow = dow[keep]
    evening = evening[keep]

    if holidays_enabled and holidays:
        is_holiday = counted["Date"].isin(pd.to_datetime(sorted(holidays)))
    else:
        is_holiday = pd.Series(False, index=counted.index)

    # Holiday beats weekend, weekend beats the weekday shift.
    counted["Category"] = np.select(
        [is_holiday.to_numpy(), (dow == 5).to_numpy(), (dow == 6).to_numpy(), evening.to_numpy()],
        [
            RateCategory.PUBLIC_HOLIDAY.value,
            RateCategory.SATURDAY.value,
            RateCategory.SUNDAY.value,
            RateCategory.WEEKDAY_EVENING.value,
        ],
        default=RateCategory.WEEKDAY_DAY.value,
    )
    return counted[SCHEDULE_COLUMNS].reset_index(drop=True)


def tally(schedule: pd.DataFrame) -> CategoryTallies:
    if len(schedule.index) == 0:
        return CategoryTallies.empty()
    grouped = schedule.groupby("Category")["Hours"].agg(["sum", "count"])
    hours = {cat: float(grouped["sum"].get(cat.value, 0.0)) for cat in RateCategory}
    days = {cat: int(grouped["count"].get(cat.value, 0)) for cat in RateCategory}
    return CategoryTallies(hours=hours, days=days, counted_days=int(len(schedule.index)))


def classify(
    date_range: DateRange,
    pattern: DayPattern,
    policy: RecurrencePolicy | None,
    holidays: AbstractSet[dt.date],
    holidays_enabled: bool,
) -> CategoryTallies:
    return tally(classify_days(date_range, pattern, policy, holidays, holidays_enabled))
