# tests/conftest.py
"""Shared fixtures: an in-memory SQLite store, site seeding, and an app factory."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timezone

from app.config import Settings
from app.main import create_app
from app.models.emergency_alert import EmergencyAlert
from app.models.site import Site
from app.services.data_access import SqlDataAccess


@pytest.fixture
def data_access():
    return SqlDataAccess.from_url("sqlite://")


@pytest.fixture
def make_site(data_access):
    def _make(token="S1", site_name="Entrepôt Nord", contact_name="Awa Kouassi", status="active"):
        db = data_access.session_factory()
        try:
            site = Site(site_name=site_name, contact_name=contact_name,
                        emergency_link_id=token, status=status)
            db.add(site)
            db.commit()
            return site
        finally:
            db.close()
    return _make


@pytest.fixture
def make_alert(data_access):
    def _make(site, alert_type="danger", timestamp=None, acknowledged=False, latitude=None, longitude=None):
        db = data_access.session_factory()
        try:
            alert = EmergencyAlert(site_id=site.id, type=alert_type, latitude=latitude, longitude=longitude,
                                   timestamp=timestamp or datetime.now(timezone.utc),
                                   acknowledged=acknowledged)
            db.add(alert)
            db.commit()
            return alert
        finally:
            db.close()
    return _make


@pytest.fixture
def stored_alerts(data_access):
    def _fetch():
        db = data_access.session_factory()
        try:
            return db.query(EmergencyAlert).order_by(EmergencyAlert.timestamp.desc()).all()
        finally:
            db.close()
    return _fetch


@pytest.fixture
def test_settings():
    return Settings(DATABASE_URL="sqlite://", API_KEY=None, _env_file=None)


@pytest.fixture
def app(test_settings, data_access):
    return create_app(test_settings, data_access)
