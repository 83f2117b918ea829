from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging
from contextlib import asynccontextmanager
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from app.core.config import Settings, get_settings
from app.api.api_v1.api import api_router
from app.api.api_v1.endpoints import health
from app.core.database import Database
from app.core.errors import register_exception_handlers
from app.core.rate_limit import create_redis_client, rate_limit
from app.core.s3 import S3Service
from app.services.ai_service import AIService
from app.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting application...")

    await app.state.database.initialize()
    logger.info("Database connection initialized")

    yield

    # Shutdown
    logger.info("Shutting down application...")

    await app.state.database.close()
    logger.info("Database connection closed")

    await app.state.redis.aclose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application around one settings object and the services
    derived from it.
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = Database(settings)
    app.state.s3 = S3Service(settings)
    app.state.ai_service = AIService(settings)
    app.state.redis = create_redis_client(settings)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add compression middleware if enabled
    if settings.ENABLE_RESPONSE_COMPRESSION:
        app.add_middleware(GZipMiddleware, minimum_size=1000)

    register_exception_handlers(app)

    # Include API router; every /api route counts against the caller's rate limit
    app.include_router(api_router, prefix=settings.API_V1_STR, dependencies=[Depends(rate_limit)])
    app.include_router(health.router, prefix="/health", tags=["health"])

    @app.get("/")
    async def root():
        """
        Root endpoint that returns basic API information.
        """
        return {
            "message": f"Welcome to {settings.PROJECT_NAME}",
            "version": settings.VERSION,
            "documentation": "/docs"
        }

    logger.info(f"Application created ({settings.ENVIRONMENT})")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=get_settings().ENVIRONMENT == "development")
