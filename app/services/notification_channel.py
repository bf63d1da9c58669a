# app/services/notification_channel.py
"""
In-process publish/subscribe for newly inserted rows.

SqlDataAccess publishes a row only after its insert has committed, so a
subscriber can always re-read what it was told about. Delivery is
at-most-once and nothing is buffered: a subscriber that attaches late gets
no history and must load it separately.

The channel is global across sites; subscribers filter for themselves.
"""

import asyncio
import inspect
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

from app.utils.logger import get_logger

logger = get_logger(__name__)

InsertCallback = Callable[[dict], Union[Awaitable[None], None]]


@dataclass
class Subscription:
    table: str
    callback: InsertCallback
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    active: bool = True


class NotificationChannel:
    def __init__(self):
        self._subscriptions: dict[str, Subscription] = {}
        self._pending: set[asyncio.Task] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, table: str, callback: InsertCallback) -> Subscription:
        subscription = Subscription(table=table, callback=callback)
        self._subscriptions[subscription.id] = subscription
        logger.debug(f"Subscribed {subscription.id} to inserts on {table}")
        return subscription

    def unsubscribe(self, subscription: Optional[Subscription]) -> None:
        """Release a subscription. Safe to call more than once."""
        if subscription is None:
            return
        subscription.active = False
        if self._subscriptions.pop(subscription.id, None) is not None:
            logger.debug(f"Unsubscribed {subscription.id} from {subscription.table}")

    async def publish(self, table: str, record: dict[str, Any]) -> int:
        """
        Schedule delivery of `record` to every active subscriber of `table`.
        Returns the number of deliveries scheduled. Each delivery runs as its
        own task so a slow or failing subscriber never holds up the publisher.
        """
        scheduled = 0
        for subscription in list(self._subscriptions.values()):
            if subscription.table != table:
                continue
            task = asyncio.create_task(self._deliver(subscription, dict(record)))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            scheduled += 1
        return scheduled

    async def drain(self) -> None:
        """Wait until every scheduled delivery has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _deliver(self, subscription: Subscription, record: dict) -> None:
        if not subscription.active:
            return
        try:
            result = subscription.callback(record)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Subscriber {subscription.id} failed on {subscription.table} insert: {e}", exc_info=True)
