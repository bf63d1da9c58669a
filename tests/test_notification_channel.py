# tests/test_notification_channel.py
"""Unit tests for the in-process insert notification channel."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import MagicMock, AsyncMock
from app.services.notification_channel import NotificationChannel


class TestNotificationChannel:
    @pytest.mark.asyncio
    async def test_delivers_to_subscribers_of_the_table_only(self):
        channel = NotificationChannel()
        alerts_cb = AsyncMock()
        sites_cb = AsyncMock()
        channel.subscribe("emergency_alerts", alerts_cb)
        channel.subscribe("sites", sites_cb)

        await channel.publish("emergency_alerts", {"id": "a1", "type": "danger"})
        await channel.drain()

        alerts_cb.assert_awaited_once_with({"id": "a1", "type": "danger"})
        sites_cb.assert_not_called()

    @pytest.mark.asyncio
    async def test_sync_callbacks_are_supported(self):
        channel = NotificationChannel()
        cb = MagicMock()
        channel.subscribe("emergency_alerts", cb)

        await channel.publish("emergency_alerts", {"id": "a1"})
        await channel.drain()

        cb.assert_called_once_with({"id": "a1"})

    @pytest.mark.asyncio
    async def test_unsubscribed_callback_is_not_called(self):
        channel = NotificationChannel()
        cb = AsyncMock()
        sub = channel.subscribe("emergency_alerts", cb)
        channel.unsubscribe(sub)
        channel.unsubscribe(sub)  # second release is harmless

        scheduled = await channel.publish("emergency_alerts", {"id": "a1"})
        await channel.drain()

        assert scheduled == 0
        assert channel.subscriber_count == 0
        cb.assert_not_called()

    @pytest.mark.asyncio
    async def test_unsubscribe_before_delivery_runs_drops_it(self):
        channel = NotificationChannel()
        cb = AsyncMock()
        sub = channel.subscribe("emergency_alerts", cb)

        await channel.publish("emergency_alerts", {"id": "a1"})
        channel.unsubscribe(sub)   # task scheduled but not yet run
        await channel.drain()

        cb.assert_not_called()

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_affect_others(self):
        channel = NotificationChannel()
        broken = AsyncMock(side_effect=RuntimeError("socket closed"))
        healthy = AsyncMock()
        channel.subscribe("emergency_alerts", broken)
        channel.subscribe("emergency_alerts", healthy)

        await channel.publish("emergency_alerts", {"id": "a1"})
        await channel.drain()

        healthy.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_late_subscriber_gets_no_history(self):
        channel = NotificationChannel()
        await channel.publish("emergency_alerts", {"id": "a1"})
        await channel.drain()

        cb = AsyncMock()
        channel.subscribe("emergency_alerts", cb)
        await channel.drain()

        cb.assert_not_called()

    @pytest.mark.asyncio
    async def test_each_subscriber_gets_its_own_copy(self):
        channel = NotificationChannel()
        seen = []

        def mutate(record):
            record["type"] = "tampered"

        channel.subscribe("emergency_alerts", mutate)
        channel.subscribe("emergency_alerts", lambda r: seen.append(r["type"]))

        await channel.publish("emergency_alerts", {"id": "a1", "type": "danger"})
        await channel.drain()

        assert seen == ["danger"]
