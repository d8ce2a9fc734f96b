"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from certflow import __version__
from certflow.api.middleware import (
    ErrorHandlingMiddleware,
    InMemoryRateLimitStore,
    RateLimiterMiddleware,
    RequestLoggingMiddleware,
)
from certflow.api.routers import health_router, v1_router
from certflow.config.settings import Settings, get_settings
from certflow.config.validation import get_configuration_summary, validate_or_raise
from certflow.core.logging import get_logger, setup_logging
from certflow.db.config import close_db, create_engine, create_session_factory, init_db
from certflow.fraud import BackgroundDispatcher, create_fraud_service

logger = get_logger("certflow.api")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    This is the application factory that assembles all components:
    - Database engine and session factory
    - Fraud detection service and its background dispatcher
    - Verification rate limit counters
    - Middleware (in correct order)
    - Routers
    - Lifespan management

    Everything the routes need is placed on ``app.state`` here rather than
    in the lifespan, so the app also works when driven without lifespan
    events (e.g. through an ASGI test transport).

    Args:
        settings: Optional settings override (useful for testing)

    Returns:
        Configured FastAPI application

    Example:
        # Production
        app = create_app()

        # Testing
        test_settings = Settings(ENVIRONMENT="test", API_SECRET_KEY=SecretStr("test"))
        app = create_app(settings=test_settings)

        # Run with uvicorn
        uvicorn certflow.api.app:create_app --factory
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Certflow API",
        description="Certificate verification, fraud detection and smart search",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=_lifespan,
    )

    engine = create_engine(settings)
    session_factory = create_session_factory(engine)
    dispatcher = BackgroundDispatcher()

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.dispatcher = dispatcher
    app.state.fraud_service = create_fraud_service(session_factory, settings, dispatcher)
    app.state.rate_limit_store = InMemoryRateLimitStore(
        settings.rate_limit.cleanup_interval_seconds
    )

    _configure_middleware(app, settings, app.state.rate_limit_store)
    _configure_routers(app)

    return app


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup configures logging, validates configuration and checks the
    database (creating tables outside production). Shutdown lets in-flight
    analyses finish before the engine is disposed.
    """
    settings: Settings = app.state.settings
    setup_logging(
        log_level=settings.log_level,
        json_format=settings.ENVIRONMENT == "production",
    )
    validate_or_raise(settings)
    logger.info(
        "certflow_api_starting",
        version=__version__,
        **get_configuration_summary(settings),
    )

    await init_db(app.state.engine, create_tables=settings.ENVIRONMENT != "production")
    logger.info("database_initialized")

    yield

    logger.info("certflow_api_stopping")
    await app.state.dispatcher.shutdown()
    await close_db(app.state.engine)
    logger.info("database_connections_closed")


def _configure_middleware(
    app: FastAPI, settings: Settings, rate_limit_store: InMemoryRateLimitStore
) -> None:
    """Configure middleware stack.

    Middleware order (outermost to innermost execution):
    1. RequestLoggingMiddleware - Assigns request ID, logs all requests
    2. ErrorHandlingMiddleware - Converts exceptions to HTTP responses
    3. RateLimiterMiddleware - Limits public verification per client
    4. CORSMiddleware - Handles CORS (if configured)

    Note: Middleware is added in reverse order because Starlette
    processes them from last-added to first-added.
    """
    if settings.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Raises RateLimitExceededError for the error handler to render
    app.add_middleware(
        RateLimiterMiddleware,
        config=settings.rate_limit,
        trusted_proxies=settings.TRUSTED_PROXIES,
        store=rate_limit_store,
    )

    # Error handling (catches exceptions from routes and dependencies)
    app.add_middleware(ErrorHandlingMiddleware)

    # Outermost: request logging, so error responses are logged too
    app.add_middleware(RequestLoggingMiddleware)


def _configure_routers(app: FastAPI) -> None:
    """Configure API routers."""
    # Health check endpoints (no prefix - at root level)
    app.include_router(health_router)

    app.include_router(v1_router)
