"""FastAPI application entry point with lifespan management."""

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api import (
    admin_router,
    assessments_router,
    clients_router,
    health_router,
    library_router,
    portal_router,
    products_router,
    resources_router,
    verification_router,
)
from src.api.middleware import RequestContextMiddleware
from src.assessments.autosave import AutosaveScheduler
from src.assessments.drafts import DraftStore
from src.assessments.service import make_flush_callback
from src.core.config import settings
from src.core.database import create_engine, create_session_factory
from src.core.logging import configure_logging, get_logger
from src.core.redis import create_redis_pool
from src.core.sentry import init_sentry

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle resources.

    Startup:
        - Configure structured logging
        - Initialize Sentry error tracking
        - Create database engine and session factory
        - Establish Redis connection pool
        - Start the autosave scheduler

    Shutdown:
        - Flush pending autosaves
        - Close Redis connections
        - Dispose database engine
    """
    # Configure logging first
    configure_logging()
    logger.info("application_starting", environment=settings.environment)

    # Initialize error tracking
    init_sentry()

    # Create database engine and session factory
    app.state.db_engine = create_engine()
    app.state.async_session = create_session_factory(app.state.db_engine)
    logger.info("database_engine_created")

    # Create Redis connection pool
    app.state.redis = await create_redis_pool()
    logger.info("redis_pool_created")

    # Debounced draft flushes share the app's session factory
    app.state.autosave = AutosaveScheduler(
        make_flush_callback(lambda: app.state.async_session, DraftStore(app.state.redis))
    )

    yield

    # Shutdown
    logger.info("application_stopping")

    await app.state.autosave.shutdown()

    # Close Redis connections
    await app.state.redis.aclose()
    logger.info("redis_pool_closed")

    # Dispose database engine
    await app.state.db_engine.dispose()
    logger.info("database_engine_disposed")


app = FastAPI(
    title="ElderCare Core",
    description="Case management for elder-care organizations",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request context middleware
app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health_router)
app.include_router(clients_router)
app.include_router(assessments_router)
app.include_router(resources_router)
app.include_router(products_router)
app.include_router(library_router)
app.include_router(admin_router)
app.include_router(verification_router)
app.include_router(portal_router)
