"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (schema, Redis, engine).
Middleware, CORS, error handlers and routers are all registered here.

Error mapping:
- request validation (bad JSON, missing fields, bad params) → 400
- HTTPException from routes → its own status (401/404/409/...)
- anything else → 500 with a generic message; details go to the log
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from deepresearch import __version__
from deepresearch.api import api_router
from deepresearch.config import settings

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info(
        "deepresearch.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from deepresearch.db.engine import create_schema, engine

    if settings.auto_create_schema:
        await create_schema()
        logger.info("deepresearch.schema_ready")

    from deepresearch.cache import close_redis, init_redis
    try:
        await init_redis()
        logger.info("deepresearch.redis_connected", url=settings.redis_url)
    except Exception as e:
        await close_redis()
        logger.warning("deepresearch.redis_unavailable", error=str(e))
        # Redis is optional — rate limiting is skipped without it

    yield

    logger.info("deepresearch.shutdown")
    await close_redis()
    await engine.dispose()


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_encoder(exc.errors())},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("http.unhandled_error", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="DeepResearch API",
        description="Research sessions, JWT auth and a research progress stream",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from deepresearch.middleware.rate_limit import RateLimitMiddleware
    from deepresearch.middleware.request_id import RequestIdMiddleware
    from deepresearch.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: deepresearch.main:app)
app = create_app()
