import pytest
from unittest.mock import patch, MagicMock
from fastapi.testclient import TestClient
from leadform.main import app
from leadform.api.admin_routes import require_admin
from leadform.settings import settings
import leadform.observability.metrics as metrics

client = TestClient(app)


@pytest.fixture
def skip_auth():
    app.dependency_overrides[require_admin] = lambda: None
    yield
    app.dependency_overrides = {}


@patch("leadform.observability.metrics.get_redis")
def test_metrics_snapshot(mock_get_redis, skip_auth):
    mr = MagicMock()
    mock_get_redis.return_value = mr
    mr.get.side_effect = lambda k: {
        "metrics:submit:total": "10",
        "metrics:submit:tier:Hot": "3",
        "metrics:submit:tier:Warm": "5",
        "metrics:notify:attempts": "8",
        "metrics:notify:delivered": "6",
        "metrics:notify:failed": "2",
    }.get(k)
    mr.lrange.return_value = ["100", "200", "300"]

    resp = client.get("/admin/metrics")
    assert resp.status_code == 200
    data = resp.json()
    assert data["submissions"] == 10
    assert data["submissionsByTier"] == {"Hot": 3, "Warm": 5, "Nurture": 0}
    assert data["notifySuccessRate"] == 75.0
    assert data["notifyFailed"] == 2
    assert data["notifyLatencyP50Ms"] == 200.0
    assert data["notifyLatencyP95Ms"] == 300.0


def test_admin_rejected_without_configured_key():
    with patch.object(settings, "ADMIN_RBAC_ENABLED", True), patch.object(settings, "ADMIN_API_KEY", ""):
        assert client.get("/admin/metrics").status_code == 403


def test_admin_key_accepted():
    with patch.object(settings, "ADMIN_RBAC_ENABLED", True), patch.object(settings, "ADMIN_API_KEY", "adm"), \
         patch("leadform.observability.metrics.get_metrics_snapshot", return_value={"submissions": 0}):
        resp = client.get("/admin/metrics", headers={"x-admin-key": "adm"})
    assert resp.status_code == 200
    assert resp.json() == {"submissions": 0}


@patch("leadform.observability.metrics.get_redis")
def test_counters_noop_when_disabled(mock_get_redis):
    with patch.object(settings, "ENABLE_METRICS", False):
        metrics.increment_submission("Hot")
        metrics.record_notify_latency(120)
    mock_get_redis.assert_not_called()


@patch("leadform.observability.metrics.get_redis")
def test_submission_counter_per_tier(mock_get_redis):
    mr = MagicMock()
    mock_get_redis.return_value = mr
    with patch.object(settings, "ENABLE_METRICS", True):
        metrics.increment_submission("Warm")
        metrics.increment_submission("Lukewarm")
    mr.incr.assert_any_call("metrics:submit:tier:Warm", 1)
    assert mr.incr.call_count == 3
