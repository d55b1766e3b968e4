"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (schema, Redis, engine).
Middleware, CORS, error handlers, and routers are all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from strengths import __version__
from strengths.api import api_router
from strengths.cache import close_redis, init_redis
from strengths.config import settings
from strengths.db.engine import create_schema, engine
from strengths.middleware.rate_limit import RateLimitMiddleware
from strengths.middleware.request_id import RequestIdMiddleware
from strengths.middleware.security import SecurityHeadersMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "strengths.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    if settings.create_schema_on_startup:
        await create_schema()
        logger.info("strengths.schema_ready")

    try:
        await init_redis()
        logger.info("strengths.redis_connected", url=settings.redis_url)
    except (RedisError, OSError) as e:
        # Redis is optional — app works without rate limiting
        logger.warning("strengths.redis_unavailable", error=str(e))

    if not settings.google_oauth_enabled:
        logger.info("strengths.google_oauth_disabled")

    yield

    logger.info("strengths.shutdown")
    await close_redis()
    await engine.dispose()


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Missing or malformed request fields are a 400, not FastAPI's 422."""
    return JSONResponse(
        status_code=400,
        content={"error": "ValidationError", "detail": jsonable_encoder(exc.errors())},
    )


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Strengths",
        description="Accounts, sessions, and capability lists for the strengths self-assessment",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → RateLimit → CORS → handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: strengths.main:app)
app = create_app()
