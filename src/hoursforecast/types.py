from __future__ import annotations

import datetime as dt
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class InvalidDateRange(ValueError):
    """Raised when a date range is unparsable or runs backwards."""


class Weekday(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @staticmethod
    def of(day: dt.date) -> "Weekday":
        return WEEKDAYS[day.weekday()]

    @property
    def is_weekend(self) -> bool:
        return self in (Weekday.SATURDAY, Weekday.SUNDAY)


# Indexed by date.weekday(): Monday == 0
WEEKDAYS: tuple[Weekday, ...] = tuple(Weekday)


class Shift(str, Enum):
    DAY = "Day"
    EVENING = "Evening"


class RecurrencePolicy(str, Enum):
    DAILY = "Daily"
    WEEKLY = "Weekly"
    FORTNIGHTLY = "Fortnightly"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"

    @staticmethod
    def coerce(value: Any) -> "RecurrencePolicy | None":
        """Case-insensitive lookup; unknown names give None (always live)."""
        if isinstance(value, RecurrencePolicy):
            return value
        text = str(value or "").strip().lower()
        for policy in RecurrencePolicy:
            if policy.value.lower() == text:
                return policy
        return None


class RateCategory(str, Enum):
    WEEKDAY_DAY = "weekday"
    WEEKDAY_EVENING = "weekday_evening"
    SATURDAY = "saturday"
    SUNDAY = "sunday"
    PUBLIC_HOLIDAY = "public_holiday"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS = {
    RateCategory.WEEKDAY_DAY: "Weekday",
    RateCategory.WEEKDAY_EVENING: "Weekday Evening",
    RateCategory.SATURDAY: "Saturday",
    RateCategory.SUNDAY: "Sunday",
    RateCategory.PUBLIC_HOLIDAY: "Public Holiday",
}


class TravelKind(str, Enum):
    PROVIDER_TRAVEL = "provider_travel"
    ACTIVITY_TRANSPORT = "activity_transport"


@dataclass(frozen=True)
class DateRange:
    start: dt.date
    end: dt.date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidDateRange(
                f"'From' date {self.start.isoformat()} is after 'To' date {self.end.isoformat()}."
            )

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class WeekdaySlot:
    selected: bool = False
    hours: float = 0.0
    shift: Shift = Shift.DAY

    @property
    def counts(self) -> bool:
        return self.selected and self.hours > 0


class DayPattern(Mapping[Weekday, WeekdaySlot]):
    """Read-only mapping holding a slot for each of the seven weekdays."""

    def __init__(self, slots: Mapping[Weekday, WeekdaySlot] | None = None) -> None:
        slots = dict(slots or {})
        self._slots = {day: slots.get(day, WeekdaySlot()) for day in WEEKDAYS}

    def __getitem__(self, day: Weekday) -> WeekdaySlot:
        try:
            return self._slots[Weekday(day)]
        except ValueError:
            raise KeyError(day) from None

    def __iter__(self) -> Iterator[Weekday]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DayPattern):
            return self._slots == other._slots
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._slots.items()))

    def __repr__(self) -> str:
        selected = {d.value: s.hours for d, s in self._slots.items() if s.selected}
        return f"DayPattern({selected})"

    def with_hours(self, hours: Mapping[Weekday, float]) -> "DayPattern":
        return DayPattern(
            {
                day: WeekdaySlot(selected=slot.selected, hours=float(hours.get(day, slot.hours)), shift=slot.shift)
                for day, slot in self._slots.items()
            }
        )


@dataclass(frozen=True)
class RateEntry:
    amount: float = 0.0
    catalog_name: str | None = None
    catalog_code: str | None = None


@dataclass(frozen=True)
class RateSheet:
    entries: Mapping[RateCategory, RateEntry] = field(default_factory=dict)

    def __post_init__(self) -> None:
        full = {cat: self.entries.get(cat, RateEntry()) for cat in RateCategory}
        object.__setattr__(self, "entries", full)

    def __getitem__(self, category: RateCategory) -> RateEntry:
        return self.entries[category]

    def amount(self, category: RateCategory) -> float:
        return self.entries[category].amount

    def merged(self, partial: Mapping[RateCategory, RateEntry]) -> "RateSheet":
        """Overlay matched entries, keeping current values for anything missing."""
        return RateSheet({**self.entries, **partial})

    def with_all_rates_same(self) -> "RateSheet":
        """Copy the weekday day rate to the weekend and holiday categories."""
        base = self.entries[RateCategory.WEEKDAY_DAY]
        return self.merged(
            {
                RateCategory.SATURDAY: base,
                RateCategory.SUNDAY: base,
                RateCategory.PUBLIC_HOLIDAY: base,
            }
        )

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {
            cat.value: {"amount": e.amount, "catalog_name": e.catalog_name, "catalog_code": e.catalog_code}
            for cat, e in self.entries.items()
        }


@dataclass(frozen=True)
class CatalogEntry:
    code: str
    name: str
    amount: float

    def as_rate(self) -> RateEntry:
        return RateEntry(amount=self.amount, catalog_name=self.name, catalog_code=self.code)


@dataclass(frozen=True)
class TravelLine:
    kind: TravelKind
    distance: float = 0.0
    rate: float = 0.0
    flexible: bool = True

    @property
    def raw_cost(self) -> float:
        return self.distance * self.rate


@dataclass(frozen=True)
class CategoryTallies:
    hours: Mapping[RateCategory, float]
    days: Mapping[RateCategory, int]
    counted_days: int

    @staticmethod
    def empty() -> "CategoryTallies":
        return CategoryTallies(
            hours={cat: 0.0 for cat in RateCategory},
            days={cat: 0 for cat in RateCategory},
            counted_days=0,
        )


@dataclass(frozen=True)
class PeriodBreakdown:
    counted_days: int = 0
    counted_weekdays: int = 0
    counted_saturdays: int = 0
    counted_sundays: int = 0
    counted_holidays: int = 0
    full_weeks: int = 0
    full_fortnights: int = 0
    full_months: int = 0


@dataclass(frozen=True)
class ForecastResult:
    hours: Mapping[RateCategory, float]
    pay: Mapping[RateCategory, float]
    total_hours: float
    total_pay: float
    breakdown: PeriodBreakdown
    travel_costs: Mapping[TravelKind, float] = field(default_factory=dict)
    travel_total: float = 0.0
    grand_total: float = 0.0
    error: str | None = None
    warnings: tuple[str, ...] = ()

    @staticmethod
    def invalid(message: str) -> "ForecastResult":
        """Zeroed result tagged with a validation error."""
        return ForecastResult(
            hours={cat: 0.0 for cat in RateCategory},
            pay={cat: 0.0 for cat in RateCategory},
            total_hours=0.0,
            total_pay=0.0,
            breakdown=PeriodBreakdown(),
            error=message,
        )

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        b = self.breakdown
        return {
            "hours": {cat.value: v for cat, v in self.hours.items()},
            "pay": {cat.value: v for cat, v in self.pay.items()},
            "total_hours": self.total_hours,
            "total_pay": self.total_pay,
            "travel_costs": {kind.value: v for kind, v in self.travel_costs.items()},
            "travel_total": self.travel_total,
            "grand_total": self.grand_total,
            "breakdown": {
                "counted_days": b.counted_days,
                "counted_weekdays": b.counted_weekdays,
                "counted_saturdays": b.counted_saturdays,
                "counted_sundays": b.counted_sundays,
                "counted_holidays": b.counted_holidays,
                "full_weeks": b.full_weeks,
                "full_fortnights": b.full_fortnights,
                "full_months": b.full_months,
            },
            "error": self.error,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class BudgetSuggestion:
    scaling_factor: float
    suggested_hours: Mapping[Weekday, float]
    suggested_travel: Mapping[TravelKind, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scaling_factor": self.scaling_factor,
            "suggested_hours": {day.value: v for day, v in self.suggested_hours.items()},
            "suggested_travel": {kind.value: v for kind, v in self.suggested_travel.items()},
        }


@dataclass(frozen=True)
class ForecastInputs:
    date_range: DateRange
    pattern: DayPattern
    policy: RecurrencePolicy | None = RecurrencePolicy.WEEKLY
    holidays: frozenset[dt.date] = frozenset()
    holidays_enabled: bool = True
    rate_sheet: RateSheet = field(default_factory=RateSheet)
    travel: tuple[TravelLine, ...] = ()
    budget_locked: bool = False
    target_budget: float = 0.0
    warnings: tuple[str, ...] = ()


class BudgetStatus(str, Enum):
    OVER = "over"
    UNDER = "under"
    ON_BUDGET = "on_budget"
    # Budget set but nothing projected yet (no rates or hours)
    INCOMPLETE = "incomplete"


@dataclass(frozen=True)
class BudgetVariance:
    target_budget: float
    projected: float
    difference: float
    status: BudgetStatus

    @property
    def label(self) -> str:
        if self.status is BudgetStatus.OVER:
            return f"OVER by ${-self.difference:,.2f}"
        if self.status is BudgetStatus.UNDER:
            return f"UNDER by ${self.difference:,.2f}"
        if self.status is BudgetStatus.ON_BUDGET:
            return "ON BUDGET"
        return "Please set rates and hours to calculate."

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_budget": self.target_budget,
            "projected": self.projected,
            "difference": self.difference,
            "status": self.status.value,
            "label": self.label,
        }
