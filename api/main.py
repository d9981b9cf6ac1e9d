"""
api/main.py -- FastAPI application entry point for the Oil Union API.

Run with:  python main.py serve
           uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces default and per-route rate limits from api.limiter

Lifespan owns the Database handle: it is built on startup, shared with every
store and service through app.state, and disposed on shutdown. When
AUDIT_RETENTION_DAYS is set, a background task prunes old audit entries.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, FieldError, HealthResponse
from api.routes.v1.admin import router as admin_router
from api.routes.v1.auth import router as auth_router
from api.routes.v1.customers import router as customers_router
from api.routes.v1.dealer import router as dealer_router
from api.routes.v1.dealers import router as dealers_router
from api.routes.v1.employees import router as employees_router
from api.routes.v1.search import router as search_router
from api.routes.v1.users import router as users_router
from core.config import get_settings
from core.database import Database
from core.errors import AppError
from services import Services

API_VERSION = "1.0.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.DEBUG if _settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("oilunion.api")

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------

_PURGE_INTERVAL_SECONDS = 6 * 60 * 60


async def _purge_loop(app: FastAPI, retention_days: int) -> None:
    """Prune audit entries older than retention_days every 6 hours.

    The prune itself is a blocking DB call, so it runs in a worker thread.
    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine cleanly. Any other failure is
    logged and the loop keeps going.
    """
    while True:
        await asyncio.sleep(_PURGE_INTERVAL_SECONDS)
        try:
            await asyncio.to_thread(app.state.services.audit.prune, retention_days)
        except Exception:
            logger.exception("Audit retention purge failed")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the Database and services on startup; tear them down on shutdown.

    Tests replace this with their own lifespan that injects an in-memory
    Database (see tests/conftest.py).
    """
    logger.info("Oil Union API starting up")
    db = Database.from_settings(_settings)
    app.state.db = db
    app.state.services = Services.build(db)
    app.state.user_store = app.state.services.users
    if not app.state.user_store.has_admin():
        logger.warning("No admin account exists -- create one with: python main.py create-admin")

    app.state.purge_task = None
    if _settings.audit_retention_days > 0:
        app.state.purge_task = asyncio.create_task(_purge_loop(app, _settings.audit_retention_days))
        logger.info("Audit retention enabled (%d days)", _settings.audit_retention_days)

    yield

    if app.state.purge_task is not None:
        app.state.purge_task.cancel()
    db.close()
    logger.info("Oil Union API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Oil Union API",
    description="Dealer, employee, and customer management for the oil-distribution union.",
    version=API_VERSION,
    lifespan=lifespan,
    # Interactive docs only in development.
    docs_url="/docs" if _settings.debug else None,
    redoc_url="/redoc" if _settings.debug else None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_host_list,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPIMiddleware looks for app.state.limiter by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Request logging middleware
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
#
# search_router goes before employees_router: it owns
# GET /employees/check-aadhar, which would otherwise be captured by
# GET /employees/{employee_id}.
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(dealers_router, prefix="/api/v1", tags=["Dealers"])
app.include_router(admin_router, prefix="/api/v1", tags=["Admin"])
app.include_router(search_router, prefix="/api/v1", tags=["Search"])
app.include_router(employees_router, prefix="/api/v1", tags=["Employees"])
app.include_router(customers_router, prefix="/api/v1", tags=["Customers"])
app.include_router(dealer_router, prefix="/api/v1", tags=["Dealer"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str, code: str, details: list[FieldError] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message, code=code, details=details).model_dump(exclude_none=True),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map a service-layer error to its status code."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    details = [FieldError(**d) for d in exc.details] if exc.details else None
    return _error(exc.status_code, exc.message, exc.code, details)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded.

    Retry-After tells clients how many seconds to wait before retrying.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "Too many requests from this IP, please try again later.", "rate_limited")
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with one {field, message} entry per failed constraint."""
    details = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path", "header"):
            loc = loc[1:]
        details.append(FieldError(field=".".join(loc) or "body", message=err.get("msg", "Invalid value")))
    return _error(400, "Validation failed", "validation_error", details)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods, and any HTTPException raised by a dependency."""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error(exc.status_code, message, f"http_{exc.status_code}")


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback goes to the log. The response carries the exception text
    only when DEBUG is on; otherwise the client gets a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    message = str(exc) if _settings.debug else "Internal server error"
    return _error(500, message, "internal_error")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. Exempt from rate limiting.
# ---------------------------------------------------------------------------


@limiter.exempt
@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> JSONResponse:
    """Report liveness and database reachability. 503 when the database is down."""
    db_ok = request.app.state.db.ping()
    body = HealthResponse(
        success=db_ok,
        version=API_VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        components={"database": "ok" if db_ok else "unavailable"},
    )
    return JSONResponse(status_code=200 if db_ok else 503, content=body.model_dump())
