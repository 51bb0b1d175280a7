from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import time
import uuid
from datetime import datetime, timezone
from .config import settings
from .jsonlog import json_log
from .routers.catalog import router as catalog_router
from .routers.intake import router as intake_router
from .upstream.client import UpstreamError

app = FastAPI(title="StockDesk Intake API", version=settings.api_version)
STARTED_AT_UTC = datetime.now(timezone.utc)


def _current_request_id(req: Request) -> str:
    return getattr(req.state, "request_id", "") or req.headers.get("x-request-id") or "startup"


@app.exception_handler(RequestValidationError)
def _request_validation_error(_req: Request, exc: Exception):
    content = {"detail": "validation failed"}
    if settings.is_dev and hasattr(exc, "errors"):
        content["errors"] = exc.errors()
    return JSONResponse(status_code=422, content=content)


# The POS API owns catalog and inventory; its failures surface as a gateway error.
@app.exception_handler(UpstreamError)
def _upstream_error(req: Request, exc: UpstreamError):
    rid = _current_request_id(req)
    json_log(
        "warning",
        "http.request.upstream_failed",
        request_id=rid,
        path=req.url.path,
        upstream_path=exc.path,
        upstream_status=exc.status_code,
        error=str(exc),
    )
    content = {"detail": "upstream error", "request_id": rid}
    if settings.is_dev:
        content["error"] = exc.user_message
    return JSONResponse(status_code=502, content=content)


@app.exception_handler(Exception)
def _unhandled_exception(req: Request, exc: Exception):
    rid = _current_request_id(req)
    json_log(
        "error",
        "http.request.unhandled",
        request_id=rid,
        method=req.method,
        path=req.url.path,
        error=str(exc),
    )
    content = {"detail": "internal error", "request_id": rid}
    if settings.is_dev:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# Correlation id + basic structured request logging.
@app.middleware("http")
async def _request_logging(request: Request, call_next):
    rid = (request.headers.get("X-Request-Id") or "").strip() or uuid.uuid4().hex
    request.state.request_id = rid
    started = time.time()
    path = request.url.path
    method = request.method

    try:
        response = await call_next(request)
    except Exception as exc:
        json_log(
            "error",
            "http.request.error",
            request_id=rid,
            method=method,
            path=path,
            duration_ms=int((time.time() - started) * 1000),
            error=str(exc),
        )
        raise

    response.headers["X-Request-Id"] = rid
    response.headers["X-Content-Type-Options"] = "nosniff"
    if path != "/health":
        json_log(
            "info",
            "http.request",
            request_id=rid,
            method=method,
            path=path,
            status_code=response.status_code,
            duration_ms=int((time.time() - started) * 1000),
        )
    return response


# The intake UI is served from a different origin during development.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(catalog_router)
app.include_router(intake_router)


@app.on_event("startup")
def _startup():
    json_log("info", "startup", env=settings.env, version=settings.api_version, pos_api_url=settings.pos_api_url)


@app.get("/health")
def health(req: Request):
    return {
        "status": "ok",
        "env": settings.env,
        "service": "stockdesk-intake",
        "version": settings.api_version,
        "started_at": STARTED_AT_UTC.isoformat(),
        "request_id": _current_request_id(req),
    }
