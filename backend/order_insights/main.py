"""FastAPI application entrypoint.

Configures CORS, includes routers, and exposes a healthcheck endpoint.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from .database import DATABASE_URL, init_db
from .deps import get_settings
from .routers import ai_insights as ai_insights_router
from .routers import customer_data as customer_data_router
from .telemetry import init_observability, shutdown_observability
from . import schemas

# Import models so Alembic can discover metadata
from . import models  # noqa: F401


def create_app() -> FastAPI:
    """Build the ingestion service application."""
    settings = get_settings()

    # Sentry must be configured before the app is created
    status = init_observability(runtime="api")
    logger.info(f"[STARTUP] Observability: {status}")

    app = FastAPI(
        title="Order Insights Ingestion API",
        version="1.0.0",
        description="Receives AI order insights and serves customer history to the order-event processing function.",
    )

    logger.info(f"[CORS] Allowed origins: {settings.cors_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(ai_insights_router.router)
    app.include_router(customer_data_router.router)

    @app.get(
        "/health",
        response_model=schemas.HealthResponse,
        tags=["Health"],
        summary="Health check",
        description="""
        Simple health check endpoint to verify the API is running.

        This endpoint:
        - Does not require a signature
        - Can be used for load balancer health checks
        """
    )
    def health():
        return schemas.HealthResponse(status="ok")

    @app.on_event("startup")
    async def startup_event():
        # Alembic owns the Postgres schema; SQLite (dev/tests) is bootstrapped here
        if DATABASE_URL.startswith("sqlite"):
            init_db()
            logger.info("[STARTUP] SQLite tables created")

    @app.on_event("shutdown")
    async def shutdown_event():
        shutdown_observability()

    return app


app = create_app()
