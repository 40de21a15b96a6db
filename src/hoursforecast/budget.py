"""Budget lock: suggest a uniform scaling of hours and travel to hit a target spend."""

from __future__ import annotations

import dataclasses
import logging
from typing import Iterable, Mapping

from .model import round_up
from .types import (
    BudgetStatus,
    BudgetSuggestion,
    BudgetVariance,
    ForecastInputs,
    ForecastResult,
    TravelKind,
    TravelLine,
    Weekday,
    WeekdaySlot,
)

logger = logging.getLogger("hoursforecast.budget")


def solve(
    flexible_pay: float,
    target_budget: float,
    fixed_costs: float,
    day_hours: Mapping[Weekday, WeekdaySlot],
    travel_distances: Mapping[TravelKind, float] | None = None,
) -> BudgetSuggestion | None:
    """Return the scaling that brings flexible spend to ``target - fixed``.

    None means there is nothing to suggest yet: no positive target, or no
    flexible spend to scale.
    """
    if target_budget <= 0 or flexible_pay <= 0:
        return None

    factor = (target_budget - fixed_costs) / flexible_pay
    suggested_hours = {
        day: (slot.hours * factor if slot.selected else 0.0) for day, slot in day_hours.items()
    }
    suggested_travel = {kind: distance * factor for kind, distance in (travel_distances or {}).items()}
    return BudgetSuggestion(
        scaling_factor=factor,
        suggested_hours=suggested_hours,
        suggested_travel=suggested_travel,
    )


def _split_travel(lines: Iterable[TravelLine]) -> tuple[float, float, dict[TravelKind, float]]:
    flexible_cost = 0.0
    fixed_cost = 0.0
    distances: dict[TravelKind, float] = {}
    for line in lines:
        if line.flexible:
            flexible_cost += round_up(line.raw_cost)
            distances[line.kind] = distances.get(line.kind, 0.0) + line.distance
        else:
            fixed_cost += round_up(line.raw_cost)
    return flexible_cost, fixed_cost, distances


def suggest(inputs: ForecastInputs, result: ForecastResult) -> BudgetSuggestion | None:
    if not inputs.budget_locked or not result.ok:
        return None
    flexible_travel, fixed_costs, distances = _split_travel(inputs.travel)
    flexible_pay = result.total_pay + flexible_travel
    suggestion = solve(flexible_pay, inputs.target_budget, fixed_costs, inputs.pattern, distances)
    if suggestion is None:
        logger.debug(
            "No budget suggestion: target=%.2f flexible_pay=%.2f", inputs.target_budget, flexible_pay
        )
    else:
        logger.debug("Budget scaling factor %.6f for target %.2f", suggestion.scaling_factor, inputs.target_budget)
    return suggestion


def compare(inputs: ForecastInputs, result: ForecastResult) -> BudgetVariance | None:
    """Budget vs. projected spend; positive difference means under budget."""
    if not inputs.budget_locked or not result.ok or inputs.target_budget <= 0:
        return None
    projected = result.grand_total
    if projected <= 0:
        return BudgetVariance(inputs.target_budget, 0.0, inputs.target_budget, BudgetStatus.INCOMPLETE)
    difference = round(inputs.target_budget - projected, 2)
    if difference > 0:
        status = BudgetStatus.UNDER
    elif difference < 0:
        status = BudgetStatus.OVER
    else:
        status = BudgetStatus.ON_BUDGET
    return BudgetVariance(inputs.target_budget, projected, difference, status)


def apply_suggestion(
    inputs: ForecastInputs,
    suggestion: BudgetSuggestion,
    round_values: bool = True,
) -> ForecastInputs:
    """Copy suggested hours and distances into a new set of inputs."""

    def _value(v: float) -> float:
        return round_up(v) if round_values else v

    hours = {day: _value(h) for day, h in suggestion.suggested_hours.items() if inputs.pattern[day].selected}
    travel = tuple(
        dataclasses.replace(line, distance=_value(line.distance * suggestion.scaling_factor))
        if line.flexible and line.kind in suggestion.suggested_travel
        else line
        for line in inputs.travel
    )
    return dataclasses.replace(inputs, pattern=inputs.pattern.with_hours(hours), travel=travel)
