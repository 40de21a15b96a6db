from __future__ import annotations

from dataclasses import dataclass, field, replace
import importlib.resources
import os
from pathlib import Path
from typing import Any, Mapping

import yaml


@dataclass(frozen=True)
class EngineConfig:
    rate_field: str = "QLD"
    default_policy: str = "Weekly"
    holidays_enabled: bool = True
    holidays: list[str] = field(default_factory=list)
    db_path: str = "data/quotes.db"

    @staticmethod
    def from_mapping(raw: Mapping[str, Any]) -> "EngineConfig":
        holidays_raw = raw.get("holidays", []) or []
        if isinstance(holidays_raw, str):
            holidays = [h.strip() for h in holidays_raw.split(",") if h.strip()]
        else:
            holidays = [str(h) for h in holidays_raw]
        return EngineConfig(
            rate_field=str(raw.get("rate_field", "QLD")),
            default_policy=str(raw.get("default_policy", "Weekly")),
            holidays_enabled=bool(raw.get("holidays_enabled", True)),
            holidays=holidays,
            db_path=str(raw.get("db_path", "data/quotes.db")),
        )

    @staticmethod
    def from_yaml(path: str | Path) -> "EngineConfig":
        path = Path(path)
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, Mapping):
            raise ValueError(f"{path} must define a YAML mapping at top level")
        return EngineConfig.from_mapping(raw)


def default_config() -> EngineConfig:
    """Packaged settings; HOURSFORECAST_DB overrides the quote database path."""
    text = (
        importlib.resources.files("hoursforecast.resources")
        .joinpath("default_settings.yaml")
        .read_text(encoding="utf-8")
    )
    cfg = EngineConfig.from_mapping(yaml.safe_load(text))
    db_override = os.environ.get("HOURSFORECAST_DB")
    return replace(cfg, db_path=db_override) if db_override else cfg
