# WORKFLOW: Health check endpoints for the parcel ingestion service.
# Used by: Load balancers, monitoring systems
# Endpoints:
# 1. /healthz - Process is up (always healthy)
# 2. /readyz - Uploads can be accepted: database reachable, parcel tables present,
#              upload directory writable
#
# Readiness flow: Database ping -> Schema check -> Upload dir check -> Ready/Not ready

from datetime import datetime, timezone
from pathlib import Path
import logging
import os

from fastapi import APIRouter

from core.config import settings
from db.session import check_db_connection, missing_tables

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _upload_dir_writable() -> bool:
    upload_dir = Path(settings.upload_dir)
    try:
        upload_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Upload directory {upload_dir} unavailable: {e}")
        return False
    return os.access(upload_dir, os.W_OK)


def _schema_ready() -> bool:
    try:
        missing = missing_tables()
    except Exception as e:
        logger.error(f"Schema check failed: {e}")
        return False
    if missing:
        logger.warning(f"Parcel tables missing: {missing}")
    return not missing


@router.get("/healthz")
async def health_check():
    """
    Basic health check endpoint.

    Returns:
        Health status of the API
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "environment": settings.environment
    }


@router.get("/readyz")
async def readiness_check():
    """
    Readiness check endpoint.

    Returns:
        Readiness status with the database, schema and upload directory checks
    """
    database = check_db_connection()
    checks = {
        "database": database,
        "schema": database and _schema_ready(),
        "upload_dir": _upload_dir_writable(),
    }
    is_ready = all(checks.values())
    if not is_ready:
        logger.warning(f"Readiness check failed: {checks}")

    return {
        "status": "ready" if is_ready else "not_ready",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
        "version": settings.version
    }
