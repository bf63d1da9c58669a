# app/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + live alert subscribers.
"""

from fastapi import APIRouter, Depends
from datetime import datetime, timezone

from app.database import get_data_access
from app.errors import DataAccessError

router = APIRouter()


@router.get("/health", summary="System health check")
async def health_check(data_access=Depends(get_data_access)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Number of live dashboard subscriptions
    """
    result = {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "backend": "ok",
        "database": "unknown",
        "realtime_subscribers": data_access.channel.subscriber_count,
    }

    try:
        await data_access.ping()
        result["database"] = "ok"
    except DataAccessError:
        result["database"] = "error"
        result["status"] = "degraded"

    return result
