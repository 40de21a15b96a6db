"""FastAPI APIRouter with endpoints for saved quotes."""

from __future__ import annotations

import io
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Optional, Union

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field

from . import db
from .agents import AnalystAgent, ReporterAgent
from .quotes import build_snapshot

router = APIRouter(prefix="/api")

DB_PATH: Path = db.default_db_path()

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _conn():
    return db.get_connection(DB_PATH)


def _404(item: str):
    raise HTTPException(status_code=404, detail=f"{item} not found")


def _zip_dir_bytes(src_dir: Path) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in src_dir.rglob("*"):
            if path.is_file():
                zf.write(path, arcname=str(path.relative_to(src_dir)))
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Pydantic request models
# ---------------------------------------------------------------------------


class ForecastRequest(BaseModel):
    # Numbers stay loosely typed: partially filled forms coerce to zero.
    start: Optional[str] = None
    end: Optional[str] = None
    policy: Optional[str] = None
    days: dict[str, Any] = Field(default_factory=dict)
    rates: dict[str, Any] = Field(default_factory=dict)
    holidays: Union[str, list[str], None] = None
    holidays_enabled: Optional[bool] = None
    travel: list[dict[str, Any]] = Field(default_factory=list)
    budget_locked: bool = False
    all_rates_same: bool = False
    budget: Any = None

    def raw(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class QuoteCreate(BaseModel):
    description: str
    inputs: ForecastRequest


# ---------------------------------------------------------------------------
# Saved quotes
# ---------------------------------------------------------------------------


@router.get("/quotes")
def list_quotes():
    conn = _conn()
    try:
        return [q.to_dict() for q in db.list_quotes(conn)]
    finally:
        conn.close()


@router.post("/quotes", status_code=201)
def create_quote(body: QuoteCreate):
    analysis = AnalystAgent().run(body.inputs.raw())
    if analysis.inputs is None:
        raise HTTPException(status_code=400, detail=analysis.result.error)
    try:
        quote = build_snapshot(
            body.description,
            analysis.inputs.rate_sheet,
            analysis.result,
            analysis.inputs.date_range,
            analysis.inputs.policy,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    conn = _conn()
    try:
        db.save_quote(conn, quote)
        return quote.to_dict()
    finally:
        conn.close()


@router.get("/quotes/{quote_id}")
def get_quote(quote_id: str):
    conn = _conn()
    try:
        quote = db.get_quote(conn, quote_id)
        if quote is None:
            _404("Quote")
        return quote.to_dict()
    finally:
        conn.close()


@router.delete("/quotes/{quote_id}")
def delete_quote(quote_id: str):
    conn = _conn()
    try:
        if not db.delete_quote(conn, quote_id):
            _404("Quote")
        return {"ok": True}
    finally:
        conn.close()


@router.post("/quotes/pack")
def quote_pack():
    """Zip of the agreement summary, workbook and chart for all saved quotes."""
    conn = _conn()
    try:
        quotes = db.list_quotes(conn)
    finally:
        conn.close()
    if not quotes:
        raise HTTPException(status_code=400, detail="No saved quotes to package")

    with tempfile.TemporaryDirectory() as tmp:
        out_dir = Path(tmp) / "out"
        ReporterAgent().package(out_dir=out_dir, quotes=quotes)
        payload = _zip_dir_bytes(out_dir)

    return Response(
        content=payload,
        media_type="application/zip",
        headers={"Content-Disposition": 'attachment; filename="quote_pack.zip"'},
    )
