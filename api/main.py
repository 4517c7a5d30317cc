"""
api/main.py -- FastAPI application entry point for BuildTrack.

Serves the JSON API consumed by the web dashboard and the mobile client.

Run with:  python main.py serve
           uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan handles startup (stores, credential manager, session authority,
default company, session purge task) and shutdown (cancel purge task, close
DB connections) symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.company import router as company_router
from api.routes.v1.projects import router as projects_router
from auth.credentials import CredentialManager
from auth.sessions import SessionAuthority
from auth.store import AuthStore
from core.config import get_settings
from tracker.store import TrackerStore

API_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("buildtrack.api")

# Status -> stable machine-readable code for errors raised with a plain
# string detail (e.g. the 401 from auth.dependencies).
_ERROR_CODES: dict[int, str] = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
}

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI, interval_seconds: int) -> None:
    """Delete expired sessions every interval_seconds.

    Lookups already evict expired sessions lazily; this sweep only bounds
    growth from tokens that are never presented again. The DELETE runs in a
    worker thread to keep the event loop free. CancelledError from
    task.cancel() during shutdown propagates out of asyncio.sleep and unwinds
    the coroutine cleanly.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        removed = await asyncio.to_thread(app.state.sessions.purge_expired)
        if removed:
            logger.info("Purged %d expired session(s)", removed)


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.

    Startup order matters:
      1. Auth store first -- the session authority needs it.
      2. Credential manager -- computes its timing-equalization hash once,
         so the first login is not slower than later ones.
      3. Tracker store, default company, and demo seed.
      4. Purge task last -- references app.state.sessions.
    """
    settings = get_settings()
    logger.info("BuildTrack API starting up")
    app.state.auth_store = AuthStore(settings.database_url)
    app.state.credentials = CredentialManager.from_settings(settings)
    app.state.sessions = SessionAuthority(app.state.auth_store, ttl_seconds=settings.session_ttl_seconds)
    logger.info("Auth initialized (session_ttl=%ds, kdf_rounds=%d)", settings.session_ttl_seconds, settings.kdf_rounds)
    app.state.tracker = TrackerStore(settings.tracker_database_url)
    app.state.tracker.ensure_company()
    app.state.tracker.seed()
    logger.info("Tracker initialized")
    app.state.purge_task = asyncio.create_task(_purge_loop(app, settings.session_purge_interval_seconds))

    yield

    # Shutdown
    app.state.purge_task.cancel()
    app.state.tracker.close()
    app.state.auth_store.close()
    logger.info("BuildTrack API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="BuildTrack API",
    description="Construction project tracking: accounts, projects, tasks, and expenses.",
    version=API_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

_settings = get_settings()

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PATCH"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Latency is measured around call_next.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(projects_router, prefix="/api/v1", tags=["Projects"])
app.include_router(company_router, prefix="/api/v1", tags=["Company"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so clients can read
# body.error without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded.

    Sync on purpose: SlowAPIMiddleware calls this handler directly, outside
    Starlette's exception middleware, and does not await it.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error="Too many requests",
            code="rate_limited",
            detail=str(exc.detail),
        ).model_dump(exclude_none=True),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with field-level detail when the body or query params fail validation."""
    fields = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error="Validation failed",
            code="validation_error",
            detail=fields,
        ).model_dump(exclude_none=True),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Registered on the Starlette base class so router-level 404 and 405
    responses (which never pass through FastAPI) get the same envelope.

    Route handlers that need a specific code raise HTTPException with
    detail=ErrorResponse(...).model_dump(). That dict is already the
    envelope and is sent as-is. A plain string detail becomes the error
    message, with the code derived from the status.
    """
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = ErrorResponse(
            error=str(exc.detail),
            code=_ERROR_CODES.get(exc.status_code, f"http_{exc.status_code}"),
        ).model_dump(exclude_none=True)
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="An unexpected error occurred",
            code="internal_error",
        ).model_dump(exclude_none=True),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No rate limit and no auth --
# load balancer probes must not be throttled or rejected.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=API_VERSION)
