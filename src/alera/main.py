"""FastAPI application factory.

create_app() returns a configured FastAPI instance. The lifespan opens
the optional Redis pool and disposes of the database engine on shutdown.
Middleware, error handlers and routers are all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from alera import __version__
from alera.api import api_router
from alera.config import settings
from alera.db.engine import engine
from alera.db.redis import close_redis, init_redis
from alera.errors import install_error_handlers
from alera.middleware.rate_limit import RateLimitMiddleware
from alera.middleware.request_id import RequestIdMiddleware
from alera.middleware.security import SecurityHeadersMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "alera.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    try:
        await init_redis()
        logger.info("alera.redis_connected")
    except Exception as e:
        # Redis is optional; without it requests are not rate limited
        logger.warning("alera.redis_unavailable", error=str(e))

    yield

    logger.info("alera.shutdown")
    await close_redis()
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Alera Artist Portal",
        description="Music distribution portal for artists: earnings, payouts, fans and plans",
        version=__version__,
        lifespan=lifespan,
    )

    install_error_handlers(app)

    # ── Middleware stack ──────────────────────────────────────
    # Starlette runs middleware in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler
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

    app.include_router(api_router)
    return app


# Default app instance (used by uvicorn: alera.main:app)
app = create_app()
