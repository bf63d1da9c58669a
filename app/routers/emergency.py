# app/routers/emergency.py
"""
Public emergency endpoints: no API key, callable from any origin.
POST /emergency              portal submission (query: site_id, type, lat, lng)
GET  /emergency/sites/{token} resolve an emergency link for the portal page

Errors are always {"error": "..."} with a generic message; data-store
details only go to the log.
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.database import get_data_access
from app.errors import DataAccessError
from app.schemas.emergency_alert import AlertSubmission, SitePortalInfo, EmergencyNumber
from app.services.alert_service import create_emergency_alert, resolve_emergency_link
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/emergency", summary="Public emergency submission (danger / contact)")
async def submit_emergency_alert(request: Request, data_access=Depends(get_data_access)):
    """
    Creates exactly one alert per accepted call. Coordinates are kept only
    when both lat and lng are supplied; missing ones never block the alert.
    """
    params = request.query_params
    site_ref = params.get("site_id")
    alert_type = params.get("type")
    if not site_ref or not alert_type:
        return _error(status.HTTP_400_BAD_REQUEST, "Site ID and type are required")

    lat, lng = params.get("lat"), params.get("lng")
    if not (lat and lng):
        lat = lng = None

    try:
        submission = AlertSubmission(site_id=site_ref, type=alert_type, latitude=lat, longitude=lng)
    except ValidationError as e:
        logger.info(f"Rejected emergency submission: {e.error_count()} invalid field(s)")
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid alert submission")

    try:
        site = await resolve_emergency_link(data_access, submission.site_id)
        if site is None:
            logger.warning("Emergency submission for an unknown or inactive link")
            return _error(status.HTTP_404_NOT_FOUND, "Unknown emergency link")
        await create_emergency_alert(data_access, site, submission)
    except DataAccessError as e:
        logger.error(f"Emergency alert could not be stored: {e}", exc_info=True)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create emergency alert")
    except Exception as e:
        logger.error(f"Unexpected error while creating emergency alert: {e!r}", exc_info=True)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create emergency alert")

    return {"message": "Emergency alert created successfully"}


@router.get("/emergency/sites/{token}", response_model=SitePortalInfo, summary="Resolve an emergency link")
async def get_emergency_site(token: str, request: Request, data_access=Depends(get_data_access)):
    """Site display info for the portal page, plus the emergency numbers to show."""
    try:
        site = await resolve_emergency_link(data_access, token)
    except Exception as e:
        logger.error(f"Emergency link lookup failed: {e!r}", exc_info=True)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to load emergency link")
    if site is None:
        return _error(status.HTTP_404_NOT_FOUND, "Invalid emergency link")

    numbers = request.app.state.settings.EMERGENCY_NUMBERS
    return SitePortalInfo(
        site_name=site.get("site_name"),
        contact_name=site.get("contact_name"),
        emergency_numbers=[EmergencyNumber(name=n, number=v) for n, v in numbers.items()],
    )
