#  Voice Tutor - FastAPI Application
#
#  Main app setup: lifespan, exception handlers, CORS, router includes.
#  Creates the DI container and manages service lifecycle.
#
#  Depends on: config.py, container.py, routes/*.py
#  Used by:    run.py

import logging
import uuid
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime, timedelta, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from backend.config import CORS_ORIGINS, DB_PATH, RATE_LIMIT_SWEEP, validate_config
from backend.container import Container
from backend.exceptions import (
    DailyLimitExceededError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    RateLimitExceededError,
    TutorError,
    UpstreamServiceError,
)
from backend.logging_config import clear_request_context, set_request_id
from backend.models.enums import SweepStrategy
from backend.routes.auth import router as auth_router
from backend.routes.conversations import router as conversations_router
from backend.routes.health import router as health_router
from backend.routes.profile import router as profile_router
from backend.routes.voices import router as voices_router

logger = logging.getLogger("tutor.app")

# Create and wire the DI container
container = Container()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle.

    Uses AsyncExitStack so that if any startup step fails, all previously
    initialized resources are cleaned up in reverse order.
    """
    logger.info("Voice Tutor starting...")

    # Validate critical config before anything else
    validate_config()

    # Build the token service now so a missing secret fails startup, not a request
    container.tokens()

    db = container.db()
    http_client = container.http_client()
    rate_limiter = container.rate_limiter()

    async with AsyncExitStack() as stack:
        await db.init(DB_PATH, run_migrations=True)
        stack.push_async_callback(db.close)

        stack.push_async_callback(http_client.aclose)

        if RATE_LIMIT_SWEEP.get("strategy") == SweepStrategy.INTERVAL.value:
            await rate_limiter.start_background(
                float(RATE_LIMIT_SWEEP.get("interval_seconds", 60))
            )
            stack.push_async_callback(rate_limiter.stop_background)
            logger.info("Rate-limit sweeper started")

        yield

    logger.info("Voice Tutor shutting down")


app = FastAPI(
    title="Voice Tutor",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(RateLimitExceededError)
async def rate_limit_handler(request: Request, exc: RateLimitExceededError):
    reset = datetime.now(timezone.utc) + timedelta(seconds=exc.retry_after)
    return JSONResponse(
        status_code=429,
        content={
            "detail": str(exc),
            "retry_after": exc.retry_after,
        },
        headers={
            "Retry-After": str(exc.retry_after),
            "X-RateLimit-Limit": str(exc.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": reset.isoformat(),
        },
    )


@app.exception_handler(DailyLimitExceededError)
async def daily_limit_handler(request: Request, exc: DailyLimitExceededError):
    return JSONResponse(
        status_code=429,
        content={
            "detail": str(exc),
            "limit_type": "daily",
            "limit": exc.limit,
            "used": exc.used,
            "reset_at": datetime.fromtimestamp(exc.reset_at, tz=timezone.utc).isoformat(),
        },
    )


# Global exception handlers, safety net for uncaught business errors
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ForbiddenError)
async def forbidden_handler(request: Request, exc: ForbiddenError):
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(InvalidStateError)
async def invalid_state_handler(request: Request, exc: InvalidStateError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(UpstreamServiceError)
async def upstream_handler(request: Request, exc: UpstreamServiceError):
    # Upstream details stay in the logs
    return JSONResponse(
        status_code=502,
        content={"detail": "Failed to create conversation session"},
    )


@app.exception_handler(TutorError)
async def tutor_handler(request: Request, exc: TutorError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unhandled_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Request ID tracing
class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        rid = uuid.uuid4().hex[:12]
        set_request_id(rid)
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = rid
            return response
        finally:
            clear_request_context()

app.add_middleware(RequestIDMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
    expose_headers=["Retry-After", "X-Request-ID"],
)

# Health check (public, unauthenticated, not rate limited)
app.include_router(health_router, prefix="/api")

# Every other router applies its own RateLimit and auth dependencies
app.include_router(auth_router, prefix="/api")
app.include_router(profile_router, prefix="/api")
app.include_router(voices_router, prefix="/api")
app.include_router(conversations_router, prefix="/api")
