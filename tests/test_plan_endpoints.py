import pytest
from fastapi.testclient import TestClient

from app.api.dependencies.database import get_db
from app.core.security import create_access_token
from app.db.models.plan_job import PlanJob
from app.services.plan_job_services import CANCELLED_BEFORE_START_ERROR

CONTEXT = {"destination": "Lisbon", "startDate": "2025-06-01", "endDate": "2025-06-03", "currency": "EUR"}
MESSAGES = [{"role": "user", "content": "Three relaxed days in Lisbon"}]


@pytest.fixture
def client(session_factory, make_user):
    from main import app

    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    make_user(user_id=1)
    make_user(user_id=2)
    app.dependency_overrides[get_db] = _override_get_db
    # No `with`: the startup sweeper would use the default database
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
    client.close()


def auth(user_id=1):
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user_id)})}"}


def test_generate_plan_returns_pending_job(client, session_factory):
    resp = client.post("/generate-plan", json={"context": CONTEXT, "messages": MESSAGES}, headers=auth())
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["status"] == "pending"

    with session_factory() as db:
        job = db.get(PlanJob, data["job_id"])
        assert job.user_id == 1
        assert job.status == "pending"
        assert job.context["destination"] == "Lisbon"
        assert job.credits_charged == 0


def test_generate_plan_keeps_trip_id_for_enhance_mode(client, session_factory):
    resp = client.post("/generate-plan", json={"context": {**CONTEXT, "tripId": 5}, "messages": MESSAGES}, headers=auth())
    assert resp.status_code == 200, resp.text
    with session_factory() as db:
        assert db.get(PlanJob, resp.json()["job_id"]).trip_id == 5


@pytest.mark.parametrize("body", [
    {"messages": MESSAGES},
    {"context": CONTEXT},
    {"context": {}, "messages": MESSAGES},
    {"context": CONTEXT, "messages": []},
])
def test_generate_plan_missing_parameters_is_400(client, body):
    resp = client.post("/generate-plan", json=body, headers=auth())
    assert resp.status_code == 400
    assert "Missing required parameters" in resp.json()["detail"]


def test_generate_plan_without_credentials_is_401(client):
    resp = client.post("/generate-plan", json={"context": CONTEXT, "messages": MESSAGES})
    assert resp.status_code == 401


def test_generate_plan_with_invalid_token_is_401(client):
    resp = client.post("/generate-plan", json={"context": CONTEXT, "messages": MESSAGES}, headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_generate_plan_without_model_key_is_500(client, monkeypatch):
    from app.core.config import settings
    monkeypatch.setattr(settings, "GOOGLE_GEMINI_API_KEY", None)
    resp = client.post("/generate-plan", json={"context": CONTEXT, "messages": MESSAGES}, headers=auth())
    assert resp.status_code == 500


def test_generate_plan_is_rate_limited_per_user(client, monkeypatch):
    from app.core.config import settings
    monkeypatch.setattr(settings, "RATE_LIMIT_MAX_REQUESTS", 2)
    body = {"context": CONTEXT, "messages": MESSAGES}
    assert client.post("/generate-plan", json=body, headers=auth()).status_code == 200
    assert client.post("/generate-plan", json=body, headers=auth()).status_code == 200
    assert client.post("/generate-plan", json=body, headers=auth()).status_code == 429
    assert client.post("/generate-plan", json=body, headers=auth(2)).status_code == 200


def test_get_job_is_owner_only(client):
    job_id = client.post("/generate-plan", json={"context": CONTEXT, "messages": MESSAGES}, headers=auth()).json()["job_id"]

    resp = client.get(f"/plan-jobs/{job_id}", headers=auth())
    assert resp.status_code == 200
    assert resp.json()["id"] == job_id
    assert resp.json()["status"] == "pending"

    assert client.get(f"/plan-jobs/{job_id}", headers=auth(2)).status_code == 404
    assert client.get("/plan-jobs/1 OR 1=1", headers=auth()).status_code == 404


def test_active_job_and_cancel_before_start(client):
    assert client.get("/plan-jobs/active", headers=auth()).status_code == 404
    job_id = client.post("/generate-plan", json={"context": CONTEXT, "messages": MESSAGES}, headers=auth()).json()["job_id"]

    active = client.get("/plan-jobs/active", headers=auth())
    assert active.status_code == 200
    assert active.json()["id"] == job_id

    # Not claimed yet: pending only leaves through generating or failed
    cancelled = client.post(f"/plan-jobs/{job_id}/cancel", headers=auth())
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "failed"
    assert cancelled.json()["error"] == CANCELLED_BEFORE_START_ERROR
    assert cancelled.json()["completed_at"] is not None

    # Terminal jobs stay as they are
    again = client.post(f"/plan-jobs/{job_id}/cancel", headers=auth())
    assert again.json()["status"] == "failed"
    assert client.get("/plan-jobs/active", headers=auth()).status_code == 404


def test_cancel_running_job(client, make_job):
    job_id = make_job(status="generating")

    cancelled = client.post(f"/plan-jobs/{job_id}/cancel", headers=auth())
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"
    assert cancelled.json()["error"] is None
    assert cancelled.json()["completed_at"] is not None


def test_job_websocket_streams_until_terminal(client, make_job):
    job_id = make_job(status="generating")
    client.post(f"/plan-jobs/{job_id}/cancel", headers=auth())

    token = create_access_token({"sub": "1"})
    with client.websocket_connect(f"/plan-jobs/ws/{job_id}?token={token}") as ws:
        message = ws.receive_json()
    assert message["event"] == "update"
    assert message["data"]["id"] == job_id
    assert message["data"]["status"] == "cancelled"


def test_job_websocket_rejects_missing_token(client):
    with client.websocket_connect("/plan-jobs/ws/some-job") as ws:
        assert ws.receive_json() == {"event": "unauthorized"}


def test_enrich_plan_endpoint(client, monkeypatch):
    from app.api.dependencies.services import get_place_service
    from main import app
    from fakes import FakePlaceService

    app.dependency_overrides[get_place_service] = lambda: FakePlaceService()
    plan = {
        "stops": [{"name": "Lisbon"}],
        "days": [{"date": "2025-06-01", "activities": [{"title": "Castle", "location_name": "Castelo"}]}],
    }
    resp = client.post("/plans/enrich", json={"plan": plan, "destination": "Portugal"}, headers=auth())
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["enriched"] == 2
    assert data["plan"]["days"][0]["activities"][0]["location_lat"] is not None
