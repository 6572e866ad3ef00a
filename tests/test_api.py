from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from shalat_alarm.core.clock import get_alarm_clock
from shalat_alarm.main import create_app
from shalat_alarm.reminders.bookings import Booking, BookingSourceError
from shalat_alarm.reminders.service import H1ReminderService, init_h1_reminder_service
from shalat_alarm.runtime import event_stream


TOKEN = "secret-token"
AUTH = {"Authorization": f"Bearer {TOKEN}"}


class _StaticSource:
    def __init__(self, bookings=None, error=None):
        self._bookings = bookings or []
        self._error = error
        self.days = []

    def fetch_for_date(self, day):
        self.days.append(day)
        if self._error is not None:
            raise self._error
        return list(self._bookings)


class _RecordingWhatsApp:
    def __init__(self):
        self.sent = []

    def send_text(self, *, number, message):
        self.sent.append(number)
        return True


@pytest.fixture
def client(make_config):
    app = create_app(make_config(tick_interval_seconds=3600))
    with TestClient(app) as c:
        yield c
    get_alarm_clock().reset()
    init_h1_reminder_service(None)


def test_health_needs_no_auth(client):
    assert client.get("/api/health").json() == {"status": "healthy"}


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer wrong"}, {"Authorization": TOKEN}])
def test_api_requires_bearer(client, headers):
    resp = client.get("/api/alarm/status", headers=headers)
    assert resp.status_code == 401


def test_status_lists_default_targets(client):
    body = client.get("/api/alarm/status", headers=AUTH).json()

    assert [t["label"] for t in body["targets"]] == ["Subuh", "Zuhur", "Asar", "Magrib", "Isya"]
    assert body["location_name"] == "Tangerang Selatan"
    assert body["next"]["label"] in {"Subuh", "Zuhur", "Asar", "Magrib", "Isya"}
    assert len(body["next"]["time_left"]) == 5
    assert sum(1 for t in body["targets"] if t["is_next"]) == 1
    assert body["sound_enabled"] is True
    assert body["storage_degraded"] is False


def test_sound_toggle(client):
    resp = client.put("/api/alarm/sound", json={"enabled": False}, headers=AUTH)
    assert resp.status_code == 200
    assert resp.json()["sound_enabled"] is False

    assert client.put("/api/alarm/sound", json={"enabled": True, "volume": 3}, headers=AUTH).status_code == 422


def test_test_alert_without_client_is_deferrable(client):
    body = client.post("/api/alarm/test", headers=AUTH).json()
    assert body["ok"] is False
    assert body["deferrable"] is True


def test_interaction_without_pending_retry(client):
    assert client.post("/api/alarm/interaction", headers=AUTH).json() == {"retried": False}


def test_control_time_advance_and_reset(client):
    advanced = client.post("/api/control/time/advance", json={"seconds": 3600}, headers=AUTH).json()
    assert advanced["offset_seconds"] == 3600
    assert advanced["alarm_now_utc_ts"] - advanced["real_now_utc_ts"] == 3600
    assert advanced["local_date"] == get_alarm_clock().today().isoformat()

    assert client.get("/api/control/time", headers=AUTH).json()["offset_seconds"] == 3600
    assert client.post("/api/control/time/reset", headers=AUTH).json()["offset_seconds"] == 0
    assert client.post("/api/control/time/advance", json={"seconds": 0}, headers=AUTH).status_code == 422


def test_h1_endpoints_unavailable_when_not_configured(client):
    assert client.get("/api/reminders/h1/preview", headers=AUTH).status_code == 503
    assert client.post("/api/reminders/h1/send", headers=AUTH).status_code == 503


def test_h1_preview_and_send(client):
    source = _StaticSource([Booking(id="1", nama="Budi", no_hp="0811", tanggal_kunjungan="02/01/2024")])
    whatsapp = _RecordingWhatsApp()
    init_h1_reminder_service(H1ReminderService(source=source, whatsapp=whatsapp, sleep=lambda s: None))

    preview = client.get("/api/reminders/h1/preview", params={"day": "2024-01-02"}, headers=AUTH).json()
    assert preview["day"] == "2024-01-02"
    assert [b["nama"] for b in preview["bookings"]] == ["Budi"]

    summary = client.post("/api/reminders/h1/send", json={"day": "2024-01-02"}, headers=AUTH).json()
    assert summary == {"day": "2024-01-02", "total": 1, "sent": 1, "failed": 0, "skipped": 0}
    assert whatsapp.sent == ["62811"]

    # --- day 省略時は翌日 ---
    client.post("/api/reminders/h1/send", json={}, headers=AUTH)
    assert source.days[-1] == get_alarm_clock().tomorrow()

    assert client.get("/api/reminders/h1/preview", params={"day": "02-01-2024"}, headers=AUTH).status_code == 400


def test_h1_preview_reports_source_errors(client):
    source = _StaticSource(error=BookingSourceError("offline"))
    init_h1_reminder_service(H1ReminderService(source=source, whatsapp=_RecordingWhatsApp()))

    assert client.get("/api/reminders/h1/preview", headers=AUTH).status_code == 502


def test_events_stream_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/api/events/stream?token=wrong") as ws:
            ws.receive_text()
    assert exc_info.value.code == 1008


def test_events_stream_delivers_play_sound(client):
    with client.websocket_connect("/api/events/stream", headers=AUTH) as ws:
        for _ in range(100):
            if event_stream.has_any_client_connected():
                break
            time.sleep(0.02)

        assert client.post("/api/alarm/test", headers=AUTH).json()["ok"] is True

        for _ in range(10):
            message = ws.receive_json()
            if message["type"] == "alarm.play_sound":
                break
        assert message == {"type": "alarm.play_sound", "data": {"sound_id": "adhan"}}


def test_events_stream_requests_permission_on_connect(client):
    with client.websocket_connect("/api/events/stream", headers=AUTH) as ws:
        assert ws.receive_json() == {"type": "alarm.permission_request", "data": {}}

    # --- 再接続ごとに依頼する ---
    with client.websocket_connect(f"/api/events/stream?token={TOKEN}") as ws:
        assert ws.receive_json()["type"] == "alarm.permission_request"
