# app/routers/alerts.py
"""Dashboard alert endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from typing import Optional

from app.database import get_data_access
from app.errors import DataAccessError
from app.schemas.emergency_alert import AcknowledgeOut, AlertSummary, AlertType, EmergencyAlertOut
from app.services import alert_service
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _unavailable(e: DataAccessError, detail: str) -> HTTPException:
    logger.error(f"{detail}: {e}")
    return HTTPException(status_code=503, detail=detail)


@router.get("/alerts", response_model=list[EmergencyAlertOut], summary="Emergency alerts, newest first")
async def get_all_alerts(
    acknowledged: Optional[bool] = None,
    type: Optional[AlertType] = None,
    limit: int = 100,
    data_access=Depends(get_data_access),
):
    """Filter by acknowledged and/or type. Each alert carries its site's name and contact."""
    try:
        return await alert_service.list_alerts(data_access, acknowledged, type, limit)
    except DataAccessError as e:
        raise _unavailable(e, "Failed to fetch alerts")


@router.get("/alerts/summary", response_model=AlertSummary, summary="Open alert counters")
async def get_alert_summary(data_access=Depends(get_data_access)):
    try:
        return await alert_service.summarize_alerts(data_access)
    except DataAccessError as e:
        raise _unavailable(e, "Failed to fetch alerts")


@router.get("/alerts/{alert_id}", response_model=EmergencyAlertOut)
async def get_alert(alert_id: str, data_access=Depends(get_data_access)):
    try:
        alert = await alert_service.get_alert(data_access, alert_id)
    except DataAccessError as e:
        raise _unavailable(e, "Failed to fetch alert")
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    return alert


@router.put("/alerts/{alert_id}/acknowledge", response_model=AcknowledgeOut, summary="Acknowledge an alert")
async def acknowledge_alert(alert_id: str, data_access=Depends(get_data_access)):
    """Mark an alert as handled. Calling it again is a no-op that still succeeds."""
    try:
        alert = await alert_service.acknowledge_alert(data_access, alert_id)
    except DataAccessError as e:
        raise _unavailable(e, "Failed to acknowledge alert")
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    return {"id": alert_id, "acknowledged": alert["acknowledged"]}
