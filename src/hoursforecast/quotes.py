from __future__ import annotations

import datetime as dt
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping

from .types import DateRange, ForecastResult, RateSheet, RecurrencePolicy


@dataclass(frozen=True)
class QuoteSnapshot:
    """Archived forecast. Never edited once built."""

    id: str
    description: str
    date_range: DateRange
    policy: str
    rate_sheet: dict[str, Any]
    forecast: dict[str, Any]
    created_at: str = field(default_factory=lambda: dt.datetime.now(dt.timezone.utc).isoformat())

    @property
    def total_pay(self) -> float:
        return float(self.forecast.get("total_pay", 0.0))

    @property
    def total_hours(self) -> float:
        return float(self.forecast.get("total_hours", 0.0))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "date_range": {"start": self.date_range.start.isoformat(), "end": self.date_range.end.isoformat()},
            "policy": self.policy,
            "rate_sheet": self.rate_sheet,
            "forecast": self.forecast,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> "QuoteSnapshot":
        rng = raw["date_range"]
        return QuoteSnapshot(
            id=str(raw["id"]),
            description=str(raw["description"]),
            date_range=DateRange(dt.date.fromisoformat(rng["start"]), dt.date.fromisoformat(rng["end"])),
            policy=str(raw.get("policy", "")),
            rate_sheet=dict(raw.get("rate_sheet", {})),
            forecast=dict(raw.get("forecast", {})),
            created_at=str(raw.get("created_at", "")),
        )


def build_snapshot(
    description: str,
    rate_sheet: RateSheet,
    result: ForecastResult,
    date_range: DateRange,
    policy: RecurrencePolicy | None = None,
) -> QuoteSnapshot:
    description = (description or "").strip()
    if not description:
        raise ValueError("Please enter a description for the quote.")
    if not result.ok:
        raise ValueError(f"Cannot save a quote for an invalid forecast: {result.error}")
    return QuoteSnapshot(
        id=str(uuid.uuid4()),
        description=description,
        date_range=date_range,
        policy=policy.value if policy else "",
        rate_sheet=rate_sheet.to_dict(),
        forecast=result.to_dict(),
    )
