from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd

from .io import CODE_FIELD, NAME_FIELD

SUPPORT_ITEMS = [
    "Assistance With Self-Care Activities - Standard",
    "Access Community Social and Rec Activities - Standard",
    "Assistance In Supported Independent Living - Standard",
    "Group Activities In The Community - 1:3",
]

VARIANTS = [
    ("Weekday Daytime", 1.0),
    ("Weekday Evening", 1.1),
    ("Weekday Night", 1.12),
    ("Saturday", 1.4),
    ("Sunday", 1.8),
    ("Public Holiday", 2.2),
]

JURISDICTIONS = ["ACT", "NSW", "NT", "QLD", "SA", "TAS", "VIC", "WA"]


@dataclass(frozen=True)
class SynthSpec:
    items: int = len(SUPPORT_ITEMS)
    seed: int = 42


def synthetic_catalog(spec: SynthSpec) -> pd.DataFrame:
    """Catalog with one row per support item and day variant, priced per jurisdiction."""
    rng = np.random.default_rng(spec.seed)
    rows = []
    for item_idx, item in enumerate(SUPPORT_ITEMS[: spec.items], start=1):
        base = round(float(rng.normal(67.0, 6.0)), 2)
        for var_idx, (variant, loading) in enumerate(VARIANTS, start=1):
            row = {
                CODE_FIELD: f"01_{item_idx:03d}_0107_1_{var_idx}",
                NAME_FIELD: f"{item} - {variant}",
            }
            for state in JURISDICTIONS:
                remote = 1.0 if state not in ("NT", "WA") else 1.05
                row[state] = round(base * loading * remote, 2)
            rows.append(row)
    return pd.DataFrame(rows, columns=[CODE_FIELD, NAME_FIELD, *JURISDICTIONS])


def generate_synthetic_catalog(out: str | Path, spec: SynthSpec) -> Path:
    out = Path(out)
    out.parent.mkdir(parents=True, exist_ok=True)
    df = synthetic_catalog(spec)
    if out.suffix.lower() == ".json":
        df.to_json(out, orient="records", indent=2)
    else:
        df.to_csv(out, index=False)
    return out
