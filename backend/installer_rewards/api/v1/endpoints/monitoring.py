"""
Monitoring and Health Check Endpoints
"""

from fastapi import APIRouter
from datetime import datetime, timezone
import structlog

from installer_rewards import __version__
from installer_rewards.core.config import settings
from installer_rewards.monitoring.metrics import metrics_collector

router = APIRouter()
logger = structlog.get_logger()


@router.get("/health")
async def health_check():
    """Basic health check endpoint"""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "storage": settings.STORAGE_BACKEND
    }


@router.get("/metrics")
async def get_metrics():
    """Get application metrics"""
    return {
        "metrics": metrics_collector.get_metrics_summary(),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
