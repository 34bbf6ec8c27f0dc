import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from engagement.config import settings
from engagement.database import Base, engine
from engagement.exception_handlers import register_exception_handlers
from engagement.middleware.logging import StructuredLoggingMiddleware, setup_structured_logging
from engagement.middleware.rate_limit import configure_rate_limiting
from engagement.routes import admin, monitoring, trending
from engagement.routes.posts import community_router, editorial_router
from engagement.scheduler import schedule_stats_reconciliation, scheduler
from engagement.utils.background import drain_background_tasks
from engagement.utils.cache import cache_manager
from engagement.utils.metrics import set_app_info

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    setup_structured_logging(log_level=settings.log_level, json_format=settings.log_json)
    set_app_info(version=settings.app_version, environment=settings.environment)

    app = FastAPI(
        title=settings.app_name,
        description="View, like and engagement tracking for editorial and community blog posts",
        debug=settings.debug,
        version=settings.app_version,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(StructuredLoggingMiddleware)

    register_exception_handlers(app)
    configure_rate_limiting(app)

    app.include_router(editorial_router)
    app.include_router(community_router)
    app.include_router(trending.router)
    app.include_router(admin.router)
    app.include_router(monitoring.router)

    @app.on_event("startup")
    async def startup_event():
        logger.info(f"Starting {settings.app_name} ({settings.environment})")
        if settings.debug:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created (if not existing).")

        await cache_manager.connect()

        if schedule_stats_reconciliation() and not scheduler.running:
            scheduler.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Shutting down...")
        if scheduler.running:
            scheduler.shutdown(wait=False)
        await drain_background_tasks(timeout=settings.store_timeout_seconds)
        await cache_manager.disconnect()

    return app


app = create_app()
