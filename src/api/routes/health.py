"""
Health check API routes
"""

from datetime import datetime
from fastapi import APIRouter

from database.connection import get_db_pool
from services.drive_gateway import is_drive_ready

router = APIRouter()

SERVICE_NAME = "drive-case-api"


@router.get("/")
@router.get("/healthz")
async def health_check():
    """Liveness probe; reports which backends were initialized without calling them"""
    return {
        "ok": True,
        "service": SERVICE_NAME,
        "ts": datetime.utcnow().isoformat() + "Z",
        "drive": "initialized" if is_drive_ready() else "not_initialized",
        "database": "connected" if get_db_pool() is not None else "not_configured",
    }
