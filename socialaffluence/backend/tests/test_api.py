"""
tests/test_api.py

FastAPI route and WebSocket tests using TestClient (synchronous).
Each test gets a fresh in-memory AlertEngine and DetectionFeed.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from socialaffluence.backend.api.main import (
    create_app,
    set_engine,
    set_feed,
    set_pipeline_stats,
)
from socialaffluence.backend.capture.feed import DetectionFeed
from socialaffluence.backend.engine.engine import AlertEngine
from socialaffluence.backend.engine.ids import SequentialIdFactory


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def client():
    engine = AlertEngine(id_factory=SequentialIdFactory(), clock=lambda: 1_000.0)
    feed = DetectionFeed(engine)
    set_engine(engine)
    set_feed(feed)
    set_pipeline_stats({"engine": engine.stats})

    app = create_app()
    with TestClient(app) as c:
        yield c, engine


def create_rule(c: TestClient, **overrides) -> dict:
    body = {
        "name": "Crowd at entrance",
        "class_types": ["person"],
        "time_window_seconds": 30,
        "detection_threshold": 5,
        "reactivation_cooldown_seconds": 60,
    }
    body.update(overrides)
    resp = c.post("/api/rules", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def post_snapshot(c: TestClient, timestamp: float, **counts: int):
    return c.post("/api/detections", json={"timestamp": timestamp, "per_class_counts": counts})


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

def test_health(client):
    c, _ = client
    resp = c.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ---------------------------------------------------------------------------
# /api/rules
# ---------------------------------------------------------------------------

class TestRules:

    def test_create_returns_rule(self, client):
        c, _ = client
        rule = create_rule(c)
        assert rule["id"] == "rule_1"
        assert rule["enabled"] is True
        assert rule["class_types"] == ["person"]
        assert rule["created_at"] == 1_000.0

    def test_create_defaults_cooldown(self, client):
        c, _ = client
        rule = create_rule(c, reactivation_cooldown_seconds=None)
        assert rule["reactivation_cooldown_seconds"] == 60

    @pytest.mark.parametrize("overrides", [
        {"class_types": []},
        {"time_window_seconds": 0},
        {"detection_threshold": 0},
        {"reactivation_cooldown_seconds": -1},
        {"name": ""},
    ])
    def test_create_invalid_returns_422(self, client, overrides):
        c, engine = client
        body = {"name": "r", "class_types": ["person"]}
        body.update(overrides)
        resp = c.post("/api/rules", json=body)
        assert resp.status_code == 422
        assert engine.list_rules() == []

    def test_list_in_insertion_order(self, client):
        c, _ = client
        create_rule(c, name="b")
        create_rule(c, name="a")
        names = [r["name"] for r in c.get("/api/rules").json()]
        assert names == ["b", "a"]

    def test_get_unknown_returns_404(self, client):
        c, _ = client
        assert c.get("/api/rules/rule_missing").status_code == 404

    def test_patch_updates_given_fields_only(self, client):
        c, _ = client
        rule = create_rule(c)
        resp = c.patch(f"/api/rules/{rule['id']}", json={"detection_threshold": 9})
        assert resp.status_code == 200
        body = resp.json()
        assert body["detection_threshold"] == 9
        assert body["name"] == rule["name"]

    def test_patch_invalid_returns_422(self, client):
        c, _ = client
        rule = create_rule(c)
        resp = c.patch(f"/api/rules/{rule['id']}", json={"time_window_seconds": 1000})
        assert resp.status_code == 422

    def test_patch_unknown_returns_404(self, client):
        c, _ = client
        assert c.patch("/api/rules/rule_missing", json={"name": "x"}).status_code == 404

    def test_toggle(self, client):
        c, _ = client
        rule = create_rule(c)
        resp = c.post(f"/api/rules/{rule['id']}/toggle")
        assert resp.status_code == 200
        assert resp.json()["enabled"] is False

    def test_toggle_unknown_returns_404(self, client):
        c, _ = client
        assert c.post("/api/rules/rule_missing/toggle").status_code == 404

    def test_delete_is_idempotent(self, client):
        c, _ = client
        rule = create_rule(c)
        assert c.delete(f"/api/rules/{rule['id']}").status_code == 204
        assert c.delete(f"/api/rules/{rule['id']}").status_code == 204
        assert c.get("/api/rules").json() == []


# ---------------------------------------------------------------------------
# /api/detections and /api/alerts
# ---------------------------------------------------------------------------

class TestDetections:

    def test_ingest_fires_alert(self, client):
        c, _ = client
        rule = create_rule(c)
        assert post_snapshot(c, 100, person=3).json()["fired"] == []

        resp = post_snapshot(c, 110, person=3)
        assert resp.status_code == 200
        body = resp.json()
        assert body["accepted"] is True
        assert body["total"] == 3
        assert len(body["fired"]) == 1
        assert body["fired"][0]["rule_id"] == rule["id"]
        assert body["fired"][0]["detection_count"] == 6

    def test_millisecond_timestamp_normalised(self, client):
        c, _ = client
        resp = post_snapshot(c, 1_718_000_000_000, person=1)
        assert resp.json()["timestamp"] == 1_718_000_000.0

    def test_negative_count_returns_422(self, client):
        c, _ = client
        assert post_snapshot(c, 100, person=-1).status_code == 422

    def test_out_of_order_returns_422(self, client):
        c, _ = client
        post_snapshot(c, 100, person=1)
        assert post_snapshot(c, 50, person=1).status_code == 422

    def test_totals_and_timeline(self, client):
        c, _ = client
        post_snapshot(c, 60, person=2, car=1)
        post_snapshot(c, 130, person=1)

        totals = c.get("/api/detections/totals").json()
        assert totals == {"total": 4, "people": 3, "class_counts": {"person": 3, "car": 1}}

        timeline = c.get("/api/detections/timeline").json()
        assert [b["timestamp"] for b in timeline] == [60.0, 120.0]
        sealed_only = c.get("/api/detections/timeline", params={"include_current": False}).json()
        assert [b["total"] for b in sealed_only] == [3]


class TestAlerts:

    def test_list_and_dismiss(self, client):
        c, _ = client
        create_rule(c, detection_threshold=1)
        post_snapshot(c, 100, person=1)

        alerts = c.get("/api/alerts").json()
        assert len(alerts) == 1
        assert alerts[0]["rule_name"] == "Crowd at entrance"

        assert c.delete(f"/api/alerts/{alerts[0]['id']}").status_code == 204
        assert c.get("/api/alerts").json() == []

    def test_dismiss_does_not_rearm(self, client):
        c, _ = client
        create_rule(c, detection_threshold=1)
        post_snapshot(c, 100, person=1)
        alert_id = c.get("/api/alerts").json()[0]["id"]
        c.delete(f"/api/alerts/{alert_id}")
        assert post_snapshot(c, 110, person=1).json()["fired"] == []


# ---------------------------------------------------------------------------
# /api/stats
# ---------------------------------------------------------------------------

def test_stats(client):
    c, _ = client
    create_rule(c, detection_threshold=1)
    post_snapshot(c, 100, person=1)
    body = c.get("/api/stats").json()
    assert body["rules_total"] == 1
    assert body["rules_enabled"] == 1
    assert body["history_size"] == 1
    assert body["triggered_alerts"] == 1
    assert body["engine"]["alerts_fired"] == 1
    assert "snapshots_received" in body["metrics"]
    assert "engine" in body["pipeline_stats"]


# ---------------------------------------------------------------------------
# WebSocket /ws
# ---------------------------------------------------------------------------

class TestDashboardSocket:

    def test_connect_sends_status_then_totals(self, client):
        c, _ = client
        with c.websocket_connect("/ws") as ws:
            status = ws.receive_json()
            assert status["type"] == "system_status"
            assert status["status"]["cameraConnected"] is False
            totals = ws.receive_json()
            assert totals["type"] == "total_metrics"
            assert totals["total"] == 0

    def test_camera_connected_after_client_detections(self, client):
        c, _ = client
        post_snapshot(c, 100, person=1)
        with c.websocket_connect("/ws") as ws:
            assert ws.receive_json()["status"]["cameraConnected"] is True

    def test_ping_pong(self, client):
        c, _ = client
        with c.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.receive_json()
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_detection_update_is_ingested(self, client):
        c, engine = client
        rule = create_rule(c, detection_threshold=2)
        with c.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.receive_json()
            ws.send_json({
                "type": "detection_update",
                "timestamp": 100_000,
                "counts": {"total": 2, "people": 2, "classCounts": {"person": 2}},
            })
            ack = ws.receive_json()
        assert ack["type"] == "ack"
        assert ack["timestamp"] == 100_000.0
        assert len(ack["fired"]) == 1
        assert engine.list_triggered_alerts()[0].rule_id == rule["id"]

    def test_invalid_json_gets_error(self, client):
        c, _ = client
        with c.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.receive_json()
            ws.send_text("{not json")
            assert ws.receive_json()["type"] == "error"

    def test_malformed_detection_update_gets_error(self, client):
        c, _ = client
        with c.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.receive_json()
            ws.send_json({"type": "detection_update", "counts": {}})
            reply = ws.receive_json()
            assert reply["type"] == "error"
            assert "classCounts" in reply["message"]
