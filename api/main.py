"""
api/main.py -- FastAPI application entry point for the credential service.

Run with:      python main.py
               uvicorn asgi:app --reload

Lifespan creates the credential store on startup (empty, or backed by
STORE_URL) and closes it on shutdown. Route handlers reach it through
request.app.state.store -- there is no module-level user map.

Every error response, whatever raised it, uses the ErrorResponse envelope
so clients can parse failures without choosing a schema per status code.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from auth.store import build_store
from core.config import get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("credsvc.api")


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the credential store for the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. With the default in-memory backend, every record is gone once
    the process exits.
    """
    settings = get_settings()
    app.state.store = build_store(settings.store_url)
    logger.info(
        "Credential store initialized (%s, bcrypt_rounds=%d)",
        type(app.state.store).__name__,
        settings.bcrypt_rounds,
    )

    yield

    app.state.store.close()
    logger.info("Credential service shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Credential Service",
    description="User registration and password login backed by salted bcrypt hashes.",
    version=__version__,
    lifespan=lifespan,
)

# slowapi looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Bodies are never logged -- they carry plaintext passwords.
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

app.include_router(auth_router, tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc.detail),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def malformed_request_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the body does not decode into the expected shape.

    Covers truncated JSON, non-object bodies, and missing, empty or non-string
    username/password fields. The route function is never called, so the
    store sees no traffic from malformed requests.
    """
    logger.info("Malformed request body on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=ErrorDetail(
                code="malformed_request",
                message="Invalid request body.",
                detail=_describe_errors(exc),
            )
        ).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap routing errors (404, 405) and explicit HTTPExceptions in the envelope.

    Headers are carried over so 405 responses keep their Allow header.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


def _describe_errors(exc: RequestValidationError) -> str:
    # Field locations and messages only. The default str(exc.errors()) would
    # echo the submitted input, and that input may be a password.
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg', 'invalid')}" if loc else err.get("msg", "invalid"))
    return "; ".join(parts)


# ---------------------------------------------------------------------------
# Health endpoint
#
# No rate limit applied -- health checks from load balancers and monitoring
# systems must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return liveness, version and which store backend is serving requests."""
    store = getattr(request.app.state, "store", None)
    return HealthResponse(
        version=__version__,
        components={
            "app": "ok",
            "store": type(store).__name__ if store is not None else "unavailable",
        },
    )
