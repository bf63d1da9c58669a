# app/services/alert_controller.py
"""
Dashboard alert controller, one instance per operator session.

Lifecycle:
    mount()     ping the store, load history, then subscribe (never the reverse)
    acknowledge(alert_id)
    teardown()  release the subscription; late results are dropped

Every await is followed by a generation check: teardown() bumps the
generation, so work started before it can finish but cannot touch state.
"""

import inspect
from typing import Awaitable, Callable, Optional, Union

from pydantic import ValidationError

from app.errors import DataAccessError
from app.schemas.emergency_alert import AlertType, EmergencyAlertOut
from app.services import alert_service
from app.services.data_access import DataAccess
from app.services.notification_channel import Subscription
from app.utils.logger import get_logger

logger = get_logger(__name__)

AlertHook = Callable[[EmergencyAlertOut], Union[Awaitable[None], None]]

CONNECTIVITY_MESSAGE = "Unable to reach the alert service. Check your connection and retry."
ACKNOWLEDGE_FAILED_MESSAGE = "Failed to acknowledge alert"
ALERT_NOT_FOUND_MESSAGE = "Alert not found"


async def _call(hook: Optional[AlertHook], alert: EmergencyAlertOut) -> None:
    if hook is None:
        return
    result = hook(alert)
    if inspect.isawaitable(result):
        await result


class DashboardAlertController:
    def __init__(
        self,
        data_access: DataAccess,
        play_cue: Optional[AlertHook] = None,
        on_alert: Optional[AlertHook] = None,
        history_limit: Optional[int] = None,
    ):
        self._data_access = data_access
        self._play_cue = play_cue
        self._on_alert = on_alert
        self._history_limit = history_limit
        self._generation = 0
        self._subscription: Optional[Subscription] = None
        self._cued: set[str] = set()
        self.alerts: list[EmergencyAlertOut] = []
        self.error: Optional[str] = None
        self.loading = True

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None

    @property
    def open_count(self) -> int:
        return sum(1 for a in self.alerts if not a.acknowledged)

    async def mount(self) -> bool:
        """
        Load history and, only if that worked, subscribe to live inserts.
        Returns False (with `error` set) when the store is unreachable.
        """
        generation = self._generation
        try:
            await self._data_access.ping()
            await self.load_history()
        except DataAccessError as e:
            logger.error(f"Dashboard could not load alert history: {e}")
            if generation == self._generation:
                self.error = CONNECTIVITY_MESSAGE
                self.loading = False
            return False

        if generation != self._generation:
            return False
        self.subscribe()
        return True

    async def load_history(self) -> list[EmergencyAlertOut]:
        """
        All alerts newest first. With a history limit, every open alert is
        still loaded; the limit only trims acknowledged ones.
        """
        generation = self._generation
        if self._history_limit is None:
            records = await alert_service.list_alerts(self._data_access)
        else:
            open_records = await alert_service.list_alerts(self._data_access, acknowledged=False)
            handled = await alert_service.list_alerts(
                self._data_access, acknowledged=True, limit=self._history_limit,
            )
            records = sorted(open_records + handled, key=lambda r: r["timestamp"], reverse=True)
        alerts = [a for a in (self._validate(r) for r in records) if a is not None]
        if generation == self._generation:
            self.alerts = alerts
            self.error = None
            self.loading = False
        return alerts

    def subscribe(self) -> None:
        if self._subscription is not None:
            return
        self._subscription = self._data_access.subscribe_to_inserts(
            alert_service.ALERTS_TABLE, self._make_insert_handler(self._generation),
        )

    def _make_insert_handler(self, generation: int):
        async def handle_insert(record: dict) -> None:
            if generation != self._generation:
                return
            notified = self._validate(record)
            if notified is None:
                return

            if (notified.type == AlertType.DANGER and notified.id not in self._cued
                    and not self._listed(notified.id)):
                self._cued.add(notified.id)
                try:
                    await _call(self._play_cue, notified)
                except Exception as e:
                    logger.error(f"Alert cue failed for {notified.id}: {e!r}")

            try:
                full = await alert_service.get_alert(self._data_access, notified.id)
            except DataAccessError as e:
                logger.error(f"Could not fetch new alert {notified.id}: {e}")
                return
            if generation != self._generation or full is None:
                return
            alert = self._validate(full)
            if alert is None or self._listed(alert.id):
                return

            self.alerts = [alert] + self.alerts
            # Once listed, the list itself guards against a second cue
            self._cued.discard(alert.id)
            await _call(self._on_alert, alert)

        return handle_insert

    def _listed(self, alert_id: str) -> bool:
        return any(a.id == alert_id for a in self.alerts)

    async def acknowledge(self, alert_id: str) -> bool:
        """
        Persist acknowledged = true, then mirror it locally. A failed write
        leaves local state untouched and sets `error`.
        """
        generation = self._generation
        try:
            updated = await alert_service.acknowledge_alert(self._data_access, alert_id)
        except DataAccessError as e:
            logger.error(f"Acknowledge failed for alert {alert_id}: {e}")
            if generation == self._generation:
                self.error = ACKNOWLEDGE_FAILED_MESSAGE
            return False

        if generation != self._generation:
            return updated is not None
        if updated is None:
            self.error = ALERT_NOT_FOUND_MESSAGE
            return False

        self.alerts = [
            a.model_copy(update={"acknowledged": True}) if a.id == alert_id else a
            for a in self.alerts
        ]
        self.error = None
        return True

    def teardown(self) -> None:
        self._generation += 1
        if self._subscription is not None:
            self._data_access.unsubscribe(self._subscription)
            self._subscription = None

    @staticmethod
    def _validate(record: dict) -> Optional[EmergencyAlertOut]:
        try:
            return EmergencyAlertOut.model_validate(record)
        except ValidationError as e:
            logger.warning(f"Dropping malformed alert record {record.get('id')!r}: {e.error_count()} error(s)")
            return None
