# app/services/emergency_portal.py
"""
Site emergency portal, the public side of the pipeline.

Resolves an emergency link token to the site's display info, then sends a
single danger / contact alert through the ingestion endpoint. Location is
best-effort: a slow, denied or failed position fix never blocks the alert.

    portal = EmergencyPortal(client, token, locate=device_position)
    await portal.load()
    await portal.press(AlertType.DANGER)
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

import httpx

from app.config import settings
from app.errors import GeolocationError
from app.schemas.emergency_alert import AlertType, SitePortalInfo
from app.utils.logger import get_logger

logger = get_logger(__name__)

SITE_PATH = "/api/v1/emergency/sites/{token}"
SUBMIT_PATH = "/api/v1/emergency"

Locator = Callable[[], Awaitable[tuple[float, float]]]


class PortalState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    INVALID_LINK = "invalid_link"    # terminal
    SUBMITTING = "submitting"
    SENT = "sent"                    # terminal
    FAILED = "failed"                # a human may press again


class EmergencyPortal:
    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str,
        locate: Optional[Locator] = None,
        geolocation_timeout: float = settings.GEOLOCATION_TIMEOUT_SECONDS,
    ):
        self._client = client
        self.token = token
        self._locate = locate
        self._geolocation_timeout = geolocation_timeout
        self.state = PortalState.LOADING
        self.site: Optional[SitePortalInfo] = None
        self.error: Optional[str] = None

    @property
    def can_press(self) -> bool:
        return self.state in (PortalState.READY, PortalState.FAILED)

    async def load(self) -> PortalState:
        """Resolve the link. Any failure is final: a dead link is a setup problem."""
        if not self.token:
            return self._invalid("Site not found")
        try:
            resp = await self._client.get(SITE_PATH.format(token=self.token))
        except httpx.HTTPError as e:
            logger.warning(f"Emergency link lookup failed: {e}")
            return self._invalid("Site not found")
        if resp.status_code != 200:
            return self._invalid("Site not found")

        try:
            self.site = SitePortalInfo.model_validate(resp.json())
        except ValueError as e:
            logger.warning(f"Emergency link lookup returned an unreadable body: {e}")
            return self._invalid("Site not found")
        self.state = PortalState.READY
        return self.state

    async def press(self, alert_type: AlertType) -> PortalState:
        """
        Send one alert. Ignored unless the portal is ready or the previous
        attempt failed, so a double tap can never produce a second alert.
        """
        if not self.can_press:
            logger.info(f"Ignoring {AlertType(alert_type).value} press in state {self.state.value}")
            return self.state
        self.state = PortalState.SUBMITTING
        self.error = None

        try:
            return await self._submit(AlertType(alert_type))
        except Exception as e:
            # Never leave the portal stuck in SUBMITTING
            logger.error(f"Emergency alert submission aborted: {e!r}", exc_info=True)
            return self._failed("Failed to send emergency alert")

    async def _submit(self, alert_type: AlertType) -> PortalState:
        params = {"site_id": self.token, "type": alert_type.value}
        position = await self.current_position()
        if position is not None:
            params["lat"], params["lng"] = str(position[0]), str(position[1])

        try:
            resp = await self._client.post(SUBMIT_PATH, params=params)
        except httpx.HTTPError as e:
            logger.error(f"Emergency alert submission failed: {e}")
            return self._failed("Failed to send emergency alert")

        if not resp.is_success:
            return self._failed(self._error_text(resp))

        self.state = PortalState.SENT
        return self.state

    async def current_position(self) -> Optional[tuple[float, float]]:
        """Best-effort position fix. Any failure or unusable result means no coordinates."""
        if self._locate is None:
            return None
        try:
            latitude, longitude = await asyncio.wait_for(self._locate(), timeout=self._geolocation_timeout)
            return float(latitude), float(longitude)
        except asyncio.TimeoutError:
            logger.warning("Location not available: timed out")
        except (GeolocationError, PermissionError) as e:
            logger.warning(f"Location not available: {e}")
        except Exception as e:
            logger.warning(f"Location not available: {e!r}")
        return None

    def _invalid(self, message: str) -> PortalState:
        self.error = message
        self.state = PortalState.INVALID_LINK
        return self.state

    def _failed(self, message: str) -> PortalState:
        self.error = message
        self.state = PortalState.FAILED
        return self.state

    @staticmethod
    def _error_text(resp: httpx.Response) -> str:
        try:
            return resp.json().get("error") or "Failed to send emergency alert"
        except ValueError:
            return "Failed to send emergency alert"
