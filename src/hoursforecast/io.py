from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Mapping

import pandas as pd
import yaml

from .types import CatalogEntry

CODE_FIELD = "Support Item Number"
NAME_FIELD = "Support Item Name"


def catalog_from_records(records: Iterable[Mapping[str, Any]], rate_field: str) -> list[CatalogEntry]:
    return catalog_from_frame(pd.DataFrame(list(records)), rate_field)


def catalog_from_frame(df: pd.DataFrame, rate_field: str) -> list[CatalogEntry]:
    if df.empty:
        return []
    for required in [CODE_FIELD, NAME_FIELD]:
        if required not in df.columns:
            raise ValueError(f"Rate catalog missing required column: {required}")
    if rate_field in df.columns:
        amounts = pd.to_numeric(df[rate_field], errors="coerce").fillna(0.0).clip(lower=0.0)
    else:
        amounts = pd.Series(0.0, index=df.index)
    codes = df[CODE_FIELD].fillna("").astype(str).str.strip()
    names = df[NAME_FIELD].fillna("").astype(str).str.strip()
    return [
        CatalogEntry(code=code, name=name, amount=float(amount))
        for code, name, amount in zip(codes, names, amounts)
        if code or name
    ]


def load_catalog(path: str | Path, rate_field: str) -> list[CatalogEntry]:
    """Read a rate catalog from a .json list of records or a .csv file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing rate catalog: {path}")
    if path.suffix.lower() == ".json":
        records = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(records, list):
            raise ValueError(f"{path} must contain a JSON list of catalog records")
        return catalog_from_records(records, rate_field)
    # Keep codes like "01_011_0107_1_1" as text
    return catalog_from_frame(pd.read_csv(path, dtype={CODE_FIELD: str}), rate_field)


def load_inputs(path: str | Path) -> dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing inputs file: {path}")
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must define a YAML mapping at top level")
    return raw
