# tests/test_alert_stream.py
"""Tests for the dashboard WebSocket stream."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect
from app.config import Settings
from app.main import create_app

STREAM = "/api/v1/alerts/stream"


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


class TestStream:
    def test_snapshot_on_connect(self, client, make_site, make_alert):
        alert = make_alert(make_site())

        with client.websocket_connect(STREAM) as ws:
            message = ws.receive_json()

        assert message["type"] == "snapshot"
        assert [a["id"] for a in message["alerts"]] == [alert.id]
        assert message["alerts"][0]["site"]["site_name"] == "Entrepôt Nord"

    def test_danger_alert_rings_then_arrives(self, client, make_site):
        make_site(token="S1")

        with client.websocket_connect(STREAM) as ws:
            assert ws.receive_json()["alerts"] == []
            client.post("/api/v1/emergency", params={"site_id": "S1", "type": "danger"})

            cue = ws.receive_json()
            pushed = ws.receive_json()

        assert cue["type"] == "cue"
        assert cue["sound_url"] == "/alert.mp3"
        assert pushed["type"] == "alert"
        assert pushed["alert"]["id"] == cue["alert_id"]
        assert pushed["alert"]["type"] == "danger"
        assert pushed["alert"]["acknowledged"] is False

    def test_contact_alert_arrives_without_cue(self, client, make_site):
        make_site(token="S1")

        with client.websocket_connect(STREAM) as ws:
            ws.receive_json()
            client.post("/api/v1/emergency", params={"site_id": "S1", "type": "contact", "lat": "5.3", "lng": "-4"})
            pushed = ws.receive_json()

        assert pushed["type"] == "alert"
        assert pushed["alert"]["type"] == "contact"
        assert pushed["alert"]["map_url"] == "https://www.google.com/maps?q=5.3,-4.0"

    def test_acknowledge_over_stream(self, client, make_site, make_alert, stored_alerts):
        alert = make_alert(make_site())

        with client.websocket_connect(STREAM) as ws:
            ws.receive_json()
            ws.send_json({"action": "acknowledge", "id": alert.id})
            reply = ws.receive_json()

        assert reply == {"type": "acknowledged", "id": alert.id}
        assert stored_alerts()[0].acknowledged is True

    def test_bad_messages(self, client):
        with client.websocket_connect(STREAM) as ws:
            ws.receive_json()
            ws.send_text("not json")
            malformed = ws.receive_json()
            ws.send_json({"action": "delete", "id": "a1"})
            unsupported = ws.receive_json()
            ws.send_json({"action": "acknowledge", "id": "missing"})
            missing = ws.receive_json()

        assert malformed == {"type": "error", "message": "Malformed message"}
        assert unsupported == {"type": "error", "message": "Unsupported action"}
        assert missing == {"type": "error", "message": "Alert not found"}


class TestStreamAuth:
    @pytest.fixture
    def secured(self, data_access):
        settings = Settings(DATABASE_URL="sqlite://", API_KEY="secret", _env_file=None)
        with TestClient(create_app(settings, data_access)) as c:
            yield c

    def test_missing_key_is_refused(self, secured):
        with pytest.raises(WebSocketDisconnect):
            with secured.websocket_connect(STREAM) as ws:
                ws.receive_json()

    def test_key_in_query(self, secured):
        with secured.websocket_connect(f"{STREAM}?api_key=secret") as ws:
            assert ws.receive_json()["type"] == "snapshot"
