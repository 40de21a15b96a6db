import logging
import os
import time
import uuid
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from . import api_crud
from .agents import AnalystAgent
from .api_crud import ForecastRequest, router as crud_router
from .catalog import find_entry, match_related, search_catalog
from .config import default_config
from .db import init_db
from .io import catalog_from_records

limiter = Limiter(key_func=get_remote_address)
logger = logging.getLogger("hoursforecast.api")

app = FastAPI(title="Hours Forecast API", version="0.1.0")
app.state.limiter = limiter


def _request_id_from_request(request: Request) -> str:
    return getattr(request.state, "request_id", "") or request.headers.get("X-Request-ID", "")


# Status codes this service raises; anything else reports as "http_error".
_ERROR_CODES = {
    400: "bad_request",
    404: "not_found",
    422: "validation_error",
    429: "rate_limited",
}


def _error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    detail: object,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": detail,
            "error": {
                "code": code,
                "message": message,
                "request_id": _request_id_from_request(request),
            },
        },
    )


@app.exception_handler(RateLimitExceeded)
async def _rate_limit_exception_handler(request: Request, _: RateLimitExceeded) -> JSONResponse:
    return _error_response(
        request,
        status_code=429,
        code="rate_limited",
        message="Rate limit exceeded",
        detail="Rate limit exceeded",
    )


@app.exception_handler(HTTPException)
async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict):
        message = str(detail.get("message") or detail.get("detail") or "Request failed")
    else:
        message = str(detail)
    return _error_response(
        request,
        status_code=exc.status_code,
        code=_ERROR_CODES.get(exc.status_code, "http_error"),
        message=message,
        detail=detail,
    )


@app.exception_handler(RequestValidationError)
async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(
        request,
        status_code=422,
        code="validation_error",
        message="Request validation failed",
        detail=exc.errors(),
    )


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled server exception rid=%s method=%s path=%s",
        _request_id_from_request(request),
        request.method,
        request.url.path,
    )
    return _error_response(
        request,
        status_code=500,
        code="internal_error",
        message="Internal server error",
        detail="Internal server error",
    )


@app.middleware("http")
async def _request_context_middleware(request: Request, call_next):
    request.state.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000.0
    response.headers["X-Request-ID"] = request.state.request_id
    logger.info(
        "%s %s -> %s in %.2fms rid=%s",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request.state.request_id,
    )
    return response


@app.on_event("startup")
def startup():
    """Create the saved-quote table on startup."""
    try:
        init_db(api_crud.DB_PATH)
    except Exception:
        logger.exception("DB init failed during startup; quote endpoints may fail")


# ALLOWED_ORIGINS: comma-separated list of allowed origins.
_default_origins = "http://localhost:3000,http://127.0.0.1:3000"
_origins_env = os.environ.get("ALLOWED_ORIGINS", _default_origins)
_allowed_origins = [o.strip() for o in _origins_env.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(crud_router)


@app.get("/")
def root():
    return {"ok": True}


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.post("/forecast")
@limiter.limit("60/minute")
def forecast(request: Request, body: ForecastRequest):
    """Forecast result plus a budget suggestion when budget lock is on.

    An invalid date range is not an HTTP error: the zeroed result carries it.
    """
    return AnalystAgent().run(body.raw()).to_dict()


class CatalogSearchRequest(BaseModel):
    catalog: list[dict[str, Any]] = Field(default_factory=list)
    query: str = ""
    rate_field: Optional[str] = None
    limit: Optional[int] = None


class CatalogMatchRequest(BaseModel):
    catalog: list[dict[str, Any]] = Field(default_factory=list)
    base_code: str
    rate_field: Optional[str] = None


def _entries(records: list[dict[str, Any]], rate_field: Optional[str]):
    try:
        return catalog_from_records(records, rate_field or default_config().rate_field)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/catalog/search")
def catalog_search(body: CatalogSearchRequest):
    hits = search_catalog(_entries(body.catalog, body.rate_field), body.query, limit=body.limit)
    return [{"code": e.code, "name": e.name, "amount": e.amount} for e in hits]


@app.post("/catalog/match")
def catalog_match(body: CatalogMatchRequest):
    entries = _entries(body.catalog, body.rate_field)
    base = find_entry(entries, body.base_code)
    if base is None:
        raise HTTPException(status_code=404, detail=f"Catalog item {body.base_code} not found")
    related = match_related(entries, base)
    return {
        cat.value: {"amount": e.amount, "catalog_name": e.catalog_name, "catalog_code": e.catalog_code}
        for cat, e in related.items()
    }
