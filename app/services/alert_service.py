# app/services/alert_service.py
"""
Shared emergency-alert operations.
Used by the public emergency router, the dashboard alert routes, and the
dashboard alert controller. All persistence goes through the injected
DataAccess object.
"""

from datetime import datetime, timezone
from typing import Optional

from app.schemas.emergency_alert import AlertSubmission, AlertType
from app.services.data_access import DataAccess
from app.utils.logger import get_audit_logger

audit = get_audit_logger()

ALERTS_TABLE = "emergency_alerts"
SITES_TABLE = "sites"


async def resolve_emergency_link(data_access: DataAccess, token: str) -> Optional[dict]:
    """Map an opaque emergency link token to its site. Inactive sites do not resolve."""
    if not token:
        return None
    sites = await data_access.select(SITES_TABLE, {"emergency_link_id": token}, limit=1)
    if not sites or sites[0].get("status") != "active":
        return None
    return sites[0]


async def create_emergency_alert(data_access: DataAccess, site: dict, submission: AlertSubmission) -> dict:
    """
    Persist exactly one alert for `site`. The timestamp is taken here, never
    from the submitter, and every alert starts unacknowledged.
    """
    record = {
        "site_id": site["id"],
        "type": submission.type.value,
        "latitude": submission.latitude,
        "longitude": submission.longitude,
        "timestamp": datetime.now(timezone.utc),
        "acknowledged": False,
    }
    alert = await data_access.insert(ALERTS_TABLE, record)
    location = (f"({submission.latitude}, {submission.longitude})"
                if submission.latitude is not None else "no location")
    audit.warning(f"[ALERT][{submission.type.value.upper()}] {site.get('site_name') or site['id']} | {location}")
    return alert


async def list_alerts(
    data_access: DataAccess,
    acknowledged: Optional[bool] = None,
    alert_type: Optional[AlertType] = None,
    limit: Optional[int] = None,
) -> list[dict]:
    """Alerts newest first, with the site's display fields attached."""
    filters = {}
    if acknowledged is not None:
        filters["acknowledged"] = acknowledged
    if alert_type is not None:
        filters["type"] = alert_type.value
    return await data_access.select(
        ALERTS_TABLE, filters, order_by="timestamp", descending=True, expand=("site",), limit=limit,
    )


async def get_alert(data_access: DataAccess, alert_id: str) -> Optional[dict]:
    alerts = await data_access.select(ALERTS_TABLE, {"id": alert_id}, expand=("site",), limit=1)
    return alerts[0] if alerts else None


async def acknowledge_alert(data_access: DataAccess, alert_id: str) -> Optional[dict]:
    """
    Set acknowledged = true. Repeating the call, or two operators calling it
    at once, leaves the same single end state. Returns None for unknown ids.
    """
    updated = await data_access.update(ALERTS_TABLE, {"id": alert_id}, {"acknowledged": True})
    if not updated:
        return None
    audit.info(f"[ACK] Alert {alert_id} acknowledged")
    return updated[0]


async def summarize_alerts(data_access: DataAccess) -> dict:
    alerts = await data_access.select(ALERTS_TABLE)
    open_alerts = [a for a in alerts if not a["acknowledged"]]
    return {
        "total": len(alerts),
        "open": len(open_alerts),
        "open_danger": sum(1 for a in open_alerts if a["type"] == AlertType.DANGER.value),
    }
