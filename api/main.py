"""
FastAPI application initialization and configuration.
"""

from contextlib import asynccontextmanager
from typing import Optional
import logging

import redis.asyncio as redis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import Settings, get_settings
from database.engine import close_db, create_db_engine, create_session_factory, init_db
from api.routes import health
from api.routes.v1 import (
    auth,
    problem_tags,
    problems,
    questions,
    sessions,
    stats,
    submissions,
    users,
)

# Import middleware components
from core.middleware import (
    AuthenticationMiddleware,
    ErrorHandlingMiddleware,
    RateLimitMiddleware,
    StructuredLoggingMiddleware,
    setup_error_handlers,
    setup_logging,
)

logger = logging.getLogger(__name__)

V1_ROUTERS = (
    auth.router,
    users.router,
    problems.router,
    problem_tags.router,
    sessions.router,
    questions.router,
    submissions.router,
    stats.router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    settings: Settings = app.state.settings

    # Startup
    logger.info(f"Starting {settings.app_name} in {settings.app_env} environment")
    await init_db(app.state.engine)

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")

    # Close rate limiter Redis connection if enabled
    if app.state.redis is not None:
        await app.state.redis.aclose()

    await close_db(app.state.engine)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    The engine and session factory hang off ``app.state`` so the
    authentication middleware, the readiness check and ``get_db`` all share
    one pool.
    """
    settings = settings or get_settings()

    # Setup structured logging (do this first, before anything else)
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    app = FastAPI(
        title=settings.app_name,
        description="Interview preparation API: problems, mock interviews, submissions and progress",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    engine = create_db_engine(settings.database_url, echo=settings.database_echo)
    session_factory = create_session_factory(engine)
    redis_client = (
        redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            health_check_interval=30,
        )
        if settings.rate_limit_enabled
        else None
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.redis = redis_client

    # Route-level handlers for typed errors (before middleware)
    setup_error_handlers(app)

    # Add middleware (order matters - the last one added is the outermost)
    # 1. Rate limiting (innermost - runs after identity is known)
    if redis_client is not None:
        app.add_middleware(
            RateLimitMiddleware,
            settings=settings,
            redis_client=redis_client,
            key_prefix="interview:ratelimit",
        )

    # 2. Authentication (resolves the caller from cookie / bearer token)
    app.add_middleware(
        AuthenticationMiddleware,
        settings=settings,
        session_factory=session_factory,
    )

    # 3. Error handling (catches everything the handlers did not map)
    app.add_middleware(ErrorHandlingMiddleware, debug=settings.debug)

    # 4. Structured logging (outside error handling, so it logs the mapped status)
    app.add_middleware(
        StructuredLoggingMiddleware,
        log_request_body=settings.log_request_body,
        max_body_size=settings.log_max_body_size,
    )

    # 5. CORS (outermost so error responses carry the headers too)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check routes
    app.include_router(health.router)

    # API v1 routes
    for router in V1_ROUTERS:
        app.include_router(router, prefix=settings.api_v1_prefix)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=_settings.debug,
        log_level=_settings.log_level.lower(),
    )
