"""
Integration Tests for BowSense API
Tests the live flow from session creation through frames to the diagnostic report.
"""

import pytest

from fastapi.testclient import TestClient

from main import app, registry
from middleware.rate_limiter import limiter


@pytest.fixture
def client():
    """Create test client"""
    return TestClient(app)


@pytest.fixture(autouse=True)
def clean_state():
    registry.clear()
    limiter.reset()
    yield
    registry.clear()


@pytest.fixture
def session_id(client):
    response = client.post("/api/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


def _post_frames(client, session_id, frames):
    responses = []
    for ts, landmarks in frames:
        response = client.post(
            f"/api/sessions/{session_id}/frames",
            json={"timestamp": ts, "landmarks": landmarks}
        )
        assert response.status_code == 200, response.text
        responses.append(response.json())
    return responses


class TestHealthEndpoints:
    """Test health check endpoints"""

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "BowSense" in data["service"]

    def test_health_endpoint(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_live_endpoint(self, client):
        response = client.get("/health/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_health_ready_endpoint(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_metrics_endpoint(self, client, session_id):
        response = client.get("/metrics")
        assert response.status_code == 200
        data = response.json()
        assert data["sessions_count"] == 1
        assert data["sessions_running"] == 1
        assert "memory_mb" in data

    def test_correlation_id_echoed(self, client):
        response = client.get("/", headers={"X-Correlation-ID": "abc123"})
        assert response.headers["X-Correlation-ID"] == "abc123"
        assert "X-Process-Time-Ms" in response.headers


class TestSessionEndpoints:

    def test_create_and_list(self, client, session_id):
        response = client.get("/api/sessions")
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["sessions"][0]["session_id"] == session_id
        assert data["sessions"][0]["running"] is True

    def test_create_without_starting(self, client):
        response = client.post("/api/sessions", json={"start": False})
        assert response.status_code == 201
        assert response.json()["running"] is False

    def test_stop_and_restart(self, client, session_id, make_pose):
        _post_frames(client, session_id, [(0.0, make_pose()), (33.0, make_pose())])

        response = client.post(f"/api/sessions/{session_id}/stop")
        assert response.json()["running"] is False

        response = client.post(
            f"/api/sessions/{session_id}/frames",
            json={"timestamp": 66.0, "landmarks": make_pose()}
        )
        assert response.status_code == 409
        assert response.json()["error"] == "SESSION_NOT_RUNNING"

        response = client.post(f"/api/sessions/{session_id}/start")
        data = response.json()
        assert data["running"] is True
        assert data["frames_processed"] == 0
        assert data["shoulder_baseline"] is None

    def test_delete(self, client, session_id):
        response = client.delete(f"/api/sessions/{session_id}")
        assert response.status_code == 200

        response = client.get(f"/api/sessions/{session_id}")
        assert response.status_code == 404

    def test_unknown_session(self, client):
        response = client.post("/api/sessions/nope/start")
        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "SESSION_NOT_FOUND"
        assert data["path"] == "/api/sessions/nope/start"
        assert data["details"]["session_id"] == "nope"

    def test_capacity_limit(self, client, monkeypatch):
        monkeypatch.setattr(registry, "max_sessions", 1)
        client.post("/api/sessions")

        response = client.post("/api/sessions")
        assert response.status_code == 507
        assert response.json()["error"] == "RESOURCE_EXHAUSTED"

        response = client.get("/health/ready")
        assert response.status_code == 503


class TestFrameEndpoint:

    def test_frame_returns_metrics_and_advice(self, client, session_id, make_pose):
        data = _post_frames(client, session_id, [(0.0, make_pose())])[0]

        assert data["skipped"] is False
        assert data["metrics"]["shoulder"]["label"] == "calibration pending"
        assert data["metrics"]["elbow"]["status"] == "good"
        assert data["metrics"]["straightness"]["score"] is None
        assert isinstance(data["advice"], str)
        assert data["capture"]["active"] is False

    def test_duplicate_frame_skipped(self, client, session_id, make_pose):
        responses = _post_frames(client, session_id, [(10.0, make_pose()), (10.0, make_pose())])

        assert responses[0]["skipped"] is False
        assert responses[1]["skipped"] is True

    def test_straight_bowing(self, client, session_id, bowing_frames):
        responses = _post_frames(client, session_id, bowing_frames(20))

        assert responses[-1]["metrics"]["straightness"]["score"] == 100
        distribution = responses[-1]["metrics"]["distribution"]
        assert distribution["tip"] + distribution["middle"] + distribution["frog"] == 100

    def test_missing_landmarks(self, client, session_id, make_pose):
        response = client.post(
            f"/api/sessions/{session_id}/frames",
            json={"timestamp": 0.0, "landmarks": make_pose(omit=("right_wrist", "left_ear"))}
        )

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "INVALID_LANDMARKS"
        assert set(data["details"]["missing"]) == {"right_wrist", "left_ear"}

    def test_nan_coordinate_rejected(self, client, session_id, make_pose):
        import json

        pose = make_pose(right_wrist=(float("nan"), 0.5))
        response = client.post(
            f"/api/sessions/{session_id}/frames",
            content=json.dumps({"timestamp": 0.0, "landmarks": pose}),
            headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

        # The session did not move on
        session = client.get(f"/api/sessions/{session_id}").json()
        assert session["frames_processed"] == 0
        data = _post_frames(client, session_id, [(0.0, make_pose())])[0]
        assert data["skipped"] is False

    def test_malformed_body(self, client, session_id, make_pose):
        pose = make_pose()
        pose[0]["visibility"] = 2.0
        response = client.post(
            f"/api/sessions/{session_id}/frames",
            json={"timestamp": 0.0, "landmarks": pose}
        )

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "VALIDATION_ERROR"
        assert data["validation_errors"]


class TestDiagnosticEndpoints:

    def test_full_capture_flow(self, client, session_id, bowing_frames):
        response = client.post(f"/api/sessions/{session_id}/capture")
        assert response.status_code == 201
        assert response.json()["active"] is True

        _post_frames(client, session_id, bowing_frames(40))

        response = client.get(f"/api/sessions/{session_id}/capture")
        assert response.json()["frames_recorded"] == 40

        response = client.post(f"/api/sessions/{session_id}/capture/finish")
        assert response.status_code == 200
        report = response.json()
        assert report["session_id"] == session_id
        assert report["frames_analyzed"] == 40
        assert report["pose_detected"] is True
        assert 0 <= report["overall_score"] <= 100

        response = client.get(f"/api/sessions/{session_id}/report")
        assert response.status_code == 200
        assert response.json()["overall_score"] == report["overall_score"]

    def test_capture_expires(self, client, monkeypatch, clock, make_pose):
        monkeypatch.setattr(registry, "clock", clock)
        session_id = client.post("/api/sessions").json()["session_id"]

        client.post(f"/api/sessions/{session_id}/capture")
        _post_frames(client, session_id, [(0.0, make_pose())])
        clock.advance(30.0)

        response = client.get(f"/api/sessions/{session_id}/capture")
        data = response.json()
        assert data["active"] is False
        assert data["report"]["frames_analyzed"] == 1

    def test_cancel(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/capture")

        response = client.delete(f"/api/sessions/{session_id}/capture")
        assert response.status_code == 200
        assert response.json()["active"] is False

        response = client.get(f"/api/sessions/{session_id}/report")
        assert response.status_code == 404
        assert response.json()["error"] == "REPORT_NOT_FOUND"

    def test_finish_without_capture(self, client, session_id):
        response = client.post(f"/api/sessions/{session_id}/capture/finish")
        assert response.status_code == 409
        assert response.json()["error"] == "CAPTURE_NOT_ACTIVE"

    def test_double_start(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/capture")

        response = client.post(f"/api/sessions/{session_id}/capture")
        assert response.status_code == 409
        assert response.json()["error"] == "CAPTURE_ALREADY_ACTIVE"

    def test_empty_capture_report(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/capture")

        response = client.post(f"/api/sessions/{session_id}/capture/finish")
        data = response.json()
        assert data["pose_detected"] is False
        assert data["overall_status"] == "no_data"


class TestRateLimiting:

    def test_capture_start_limited(self, client, session_id):
        from config.settings import get_settings

        allowed = int(get_settings().RATE_LIMIT_CAPTURE.split("/")[0])
        for _ in range(allowed):
            response = client.post(f"/api/sessions/{session_id}/capture")
            assert response.status_code in (201, 409)

        response = client.post(f"/api/sessions/{session_id}/capture")
        assert response.status_code == 429
        assert response.json()["error"] == "RATE_LIMIT_EXCEEDED"
        assert response.headers["Retry-After"] == "60"
