import json
from contextlib import nullcontext
import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch, MagicMock
from leadform.main import app
from leadform.settings import settings
from leadform.api.auth import require_api_key
from leadform.form import handoff
from leadform.notify.emailjs_client import NotifierError
from leadform.store.kv import MemoryStore

client = TestClient(app)

ANSWERS = {
    "first": "Ana", "last": "Lima", "email": "ana@example.com",
    "risk_window": "24/7", "night_lighting": "Pretty dark",
    "priority_areas": ["Front door", "Back door", "Garage"],
    "timeline": "ASAP", "decision_makers": "Me",
}


@pytest.fixture(autouse=True)
def skip_auth():
    app.dependency_overrides[require_api_key] = lambda: None
    yield
    app.dependency_overrides = {}


@pytest.fixture
def stores():
    """In-memory session/device stores keyed by id, in place of redis."""
    data = {}

    def _get(kind):
        return lambda ident: data.setdefault((kind, ident), MemoryStore())

    with patch("leadform.api.routes.session_store", side_effect=_get("session")), \
         patch("leadform.api.routes.durable_store", side_effect=_get("device")), \
         patch("leadform.api.routes.session_lock", side_effect=lambda *a, **k: nullcontext()), \
         patch.object(settings, "ENABLE_METRICS", False):
        yield data


def _submit(sid="s1", did="d1"):
    return client.post("/api/submit", json={"answers": ANSWERS}, headers={"x-session-id": sid, "x-device-id": did})


def test_health():
    assert client.get("/health").json() == {"status": "ok"}


def test_submit_scores_and_publishes(stores):
    resp = _submit()
    assert resp.status_code == 200
    data = resp.json()
    assert data["sessionId"] == "s1"
    assert data["lead_score"] == 13
    assert data["lead_tier"] == "Hot"
    assert data["breakdown"]["timeline_asap"] == 4
    assert data["confirmUrl"] == settings.CONFIRM_URL
    assert data["resultsUrl"].startswith(settings.RESULTS_URL + "#p=")

    stored = json.loads(stores[("session", "s1")].get(settings.SESSION_PAYLOAD_KEY))
    assert stored["to_name"] == "Ana Lima"
    assert stored["cameraCount"] == 3
    assert stores[("device", "d1")].get(settings.DURABLE_PAYLOAD_KEY) is not None


def test_submit_without_session_header_generates_one(stores):
    resp = client.post("/api/submit", json={"first_name": "Bo", "emailAddress": "bo@example.com"})
    data = resp.json()
    assert data["sessionId"]
    assert data["lead_tier"] == "Nurture"
    stored = json.loads(stores[("session", data["sessionId"])].get(settings.SESSION_PAYLOAD_KEY))
    assert stored["first"] == "Bo"
    assert stored["email"] == "bo@example.com"


@patch("leadform.notify.emailjs_client.send_email")
def test_confirm_sends_once(mock_send, stores):
    _submit()
    first = client.post("/api/confirm", headers={"x-session-id": "s1", "x-device-id": "d1"}).json()
    assert first["notified"] is True
    assert first["redirectUrl"].startswith(settings.RESULTS_URL + "#p=")
    assert first["delayMs"] == settings.REDIRECT_DELAY_MS

    second = client.post("/api/confirm", headers={"x-session-id": "s1", "x-device-id": "d1"}).json()
    assert second["notified"] is False
    assert second["status"] == "Taking you to your results…"
    assert mock_send.call_count == 1
    assert mock_send.call_args.args[0]["to_email"] == "ana@example.com"


@patch("leadform.notify.emailjs_client.send_email")
def test_confirm_failure_shows_continue(mock_send, stores):
    mock_send.side_effect = NotifierError("EmailJS send failed: 500", status_code=500)
    _submit()
    data = client.post("/api/confirm", headers={"x-session-id": "s1"}).json()
    assert data["showContinue"] is True
    assert data["redirectUrl"] is None
    assert data["continueUrl"].startswith(settings.RESULTS_URL + "#p=")
    assert not handoff.already_notified(stores[("session", "s1")])


def test_results_from_forwarded_fragment(stores):
    url = _submit().json()["resultsUrl"]
    p = url.split("#p=", 1)[1]
    data = client.get("/api/results", params={"p": p}).json()
    assert data["firstName"] == "Ana"
    assert data["cameraCount"] == 3
    assert data["nvrChannel"] == 4
    assert data["locations"] == ["Front door", "Back door", "Garage"]
    assert data["tier"] == "Hot"
    assert data["tierCopy"]["cta"] is None


def test_results_query_tier_overrides(stores):
    _submit()
    data = client.get("/api/results", params={"tier": "warm"}, headers={"x-session-id": "s1"}).json()
    assert data["firstName"] == "Ana"
    assert data["tier"] == "Warm"
    assert data["tierCopy"]["cta"]["text"] == "Book a 15-min Discovery Call"
    assert stores[("device", "s1")].get(settings.LAST_TIER_KEY) == "Warm"


def test_results_with_nothing_defaults(stores):
    data = client.get("/api/results").json()
    assert data["firstName"] == "there"
    assert data["tier"] == "Warm"
    assert len(data["locations"]) == 4


def test_api_key_enforced_when_configured():
    app.dependency_overrides = {}
    with patch.object(settings, "API_KEY", "secret"):
        assert client.get("/api/results").status_code == 401


def test_unexpected_error_still_answers_with_results_url():
    safe_client = TestClient(app, raise_server_exceptions=False)
    with patch("leadform.api.routes.session_store", side_effect=RuntimeError("redis gone")):
        resp = safe_client.post("/api/submit", json={"answers": ANSWERS})
    assert resp.status_code == 200
    assert resp.json()["continueUrl"] == settings.RESULTS_URL
    assert resp.json()["showContinue"] is True


def test_results_from_raw_query_value_with_plus(stores):
    payload = {"first": "Ana~~~", "lead_tier": "Hot", "cameraCount": 2}
    value = handoff.encode_fragment_value(payload)
    assert "+" in value
    # Forwarded verbatim, so the query parser turns "+" into a space
    data = client.get("/api/results?p=" + value).json()
    assert data["firstName"] == "Ana~~~"
    assert data["tier"] == "Hot"
    assert data["cameraCount"] == 2
