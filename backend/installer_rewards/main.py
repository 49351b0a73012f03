"""
FastAPI application
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog

from installer_rewards.api.v1.api import api_router
from installer_rewards.core.config import settings
from installer_rewards.core.database import close_database
from installer_rewards.core.error_handlers import register_exception_handlers
from installer_rewards.monitoring.tracing import setup_tracing

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application",
                environment=settings.ENVIRONMENT,
                storage=settings.STORAGE_BACKEND)
    yield
    await close_database()


def create_app() -> FastAPI:
    app = FastAPI(title=settings.PROJECT_NAME, debug=settings.DEBUG, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_V1_STR)

    if settings.TRACING_ENABLED:
        setup_tracing(app)
    return app


app = create_app()
