"""Integration tests for the client lifecycle webhook."""
import pytest

from app.db.models import NotificationToken


@pytest.mark.integration
class TestWebhook:
    """POST /api/v1/webhook"""

    def test_enable_then_disable(self, client, db_session):
        enabled = client.post("/api/v1/webhook", json={
            "event": "notifications_enabled",
            "fid": 4021,
            "notificationDetails": {"url": "https://relay.test/notify", "token": "tkn"},
        })

        assert enabled.status_code == 200
        assert enabled.json()["success"] is True
        row = db_session.query(NotificationToken).one()
        assert row.recipient_key == "4021"
        assert row.enabled is True

        client.post("/api/v1/webhook", json={"event": "notifications_disabled", "fid": 4021})

        db_session.expire_all()
        assert db_session.query(NotificationToken).one().enabled is False

    def test_frame_removed(self, client, db_session):
        client.post("/api/v1/webhook", json={
            "event": "notifications_enabled",
            "fid": "4021",
            "notificationDetails": {"url": "https://relay.test/notify", "token": "tkn"},
        })

        response = client.post("/api/v1/webhook", json={"event": "frame_removed", "fid": "4021"})

        assert response.status_code == 200
        assert db_session.query(NotificationToken).count() == 0

    def test_unknown_event_rejected(self, client):
        response = client.post("/api/v1/webhook", json={"event": "frame_exploded", "fid": 1})
        assert response.status_code == 422
