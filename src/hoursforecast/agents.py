from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .budget import compare, suggest
from .config import EngineConfig, default_config
from .model import forecast
from .normalize import build_inputs
from .quotes import QuoteSnapshot
from .reporting import save_pay_chart, write_agreement, write_assumptions, write_quote_pack
from .types import BudgetSuggestion, BudgetVariance, ForecastInputs, ForecastResult, InvalidDateRange

logger = logging.getLogger("hoursforecast.agents")


@dataclass(frozen=True)
class Analysis:
    inputs: ForecastInputs | None
    result: ForecastResult
    suggestion: BudgetSuggestion | None
    variance: BudgetVariance | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "forecast": self.result.to_dict(),
            "suggestion": self.suggestion.to_dict() if self.suggestion else None,
            "variance": self.variance.to_dict() if self.variance else None,
        }


class AnalystAgent:
    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or default_config()

    def run(self, raw: Mapping[str, Any]) -> Analysis:
        """Forecast from raw values; an invalid range gives a zeroed, error-tagged result."""
        try:
            inputs = build_inputs(raw, self.config)
        except InvalidDateRange as exc:
            logger.debug("Forecast not computed: %s", exc)
            return Analysis(inputs=None, result=ForecastResult.invalid(str(exc)), suggestion=None)
        return self.run_inputs(inputs)

    def run_inputs(self, inputs: ForecastInputs) -> Analysis:
        result = forecast(inputs)
        return Analysis(
            inputs=inputs,
            result=result,
            suggestion=suggest(inputs, result),
            variance=compare(inputs, result),
        )


class ReporterAgent:
    def package(self, out_dir: Path, quotes: list[QuoteSnapshot]) -> None:
        out_dir.mkdir(parents=True, exist_ok=True)
        save_pay_chart(out_dir / "charts", quotes)
        write_quote_pack(out_dir / "quote_pack.xlsx", quotes)
        write_agreement(out_dir / "agreement.md", quotes)
        write_assumptions(out_dir / "quotes.json", {"quotes": [q.to_dict() for q in quotes]})
