from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.core.config import Settings
from app.core.database import Database, get_database
from app.core.dependencies import get_app_settings
from app.core.s3 import S3Service, get_s3_service
from app.services.ai_service import AIService, get_ai_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def health_check(settings: Settings = Depends(get_app_settings)):
    return {
        "success": True,
        "message": "API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.ENVIRONMENT,
    }


@router.get("/services")
async def services_health(
    settings: Settings = Depends(get_app_settings),
    database: Database = Depends(get_database),
    s3: S3Service = Depends(get_s3_service),
    ai_service: AIService = Depends(get_ai_service),
):
    """
    Report on each external dependency.
    """
    try:
        await database.ping()
        db_status = "connected"
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "error"

    if settings.storage_configured:
        storage_status = "connected" if await s3.check_connection() else "error"
    else:
        storage_status = "not configured"

    services = {
        "database": db_status,
        "storage": storage_status,
        "ai": "configured" if await ai_service.check_connection() else "not configured",
        "email": "configured" if settings.smtp_configured else "not configured",
    }
    return {
        "success": db_status == "connected",
        "message": "Service status",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": services,
    }
