import pytest
from fastapi.testclient import TestClient

from coachtrend.api import deps
from coachtrend.api.main import create_app
from coachtrend.config import settings


@pytest.fixture
def client(source, monkeypatch):
    monkeypatch.setattr(settings.storage, "backend", "memory")
    yield TestClient(create_app(event_source=source))
    deps.set_event_source(None)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.headers["x-request-id"]


def test_athlete_trend(client):
    resp = client.get(
        "/v1/athletes/athlete-1/trends/performance",
        params={"view_exercise_data": "true", "category": "break"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["labels"] == ["2024-W01", "2024-W02", "2024-W03"]
    assert body["dataset_label"] == "Weekly Z-Score for Break Building"
    assert body["sample_counts"] == [1, 1, 1]


def test_athlete_trend_forbidden(client):
    resp = client.get("/v1/athletes/athlete-1/trends/self_assessment", params={"view_exercise_data": "true"})
    assert resp.status_code == 403
    assert resp.json()["error"] == "forbidden"


def test_athlete_trend_no_data_stages(client):
    resp = client.get("/v1/athletes/nobody/trends/performance", params={"view_exercise_data": "true"})
    assert resp.status_code == 404
    assert resp.json()["stage"] == "no_events"

    resp = client.get(
        "/v1/athletes/athlete-1/trends/performance",
        params={"view_exercise_data": "true", "start": "2030-01-01", "end": "2030-01-31"},
    )
    assert resp.status_code == 404
    body = resp.json()
    assert body["stage"] == "no_events_in_range"
    assert body["detail"] == "no events in range"
    assert body["message"] == "No records in the selected date range."


def test_unknown_chart(client):
    resp = client.get("/v1/athletes/athlete-1/trends/heartbeat", params={"view_exercise_data": "true"})
    assert resp.status_code == 422


def test_build_endpoint(client):
    body = {
        "reducer_kind": "average_score",
        "events": [
            {"id": "a", "subject_id": "u", "timestamp": "2024-01-01T09:00:00Z", "score": 8},
            {"id": "b", "subject_id": "u", "timestamp": "2024-01-03T09:00:00Z", "score": 6},
            {"id": "c", "subject_id": "u", "timestamp": "2024-01-08T09:00:00Z", "score": 10},
        ],
    }
    resp = client.post("/v1/trends/build", json=body)
    assert resp.status_code == 200
    assert resp.json()["rows"] == [
        {"week": "2024-W01", "value": 7.0, "sample_count": 2},
        {"week": "2024-W02", "value": 10.0, "sample_count": 1},
    ]


def test_build_endpoint_empty_and_invalid(client):
    resp = client.post("/v1/trends/build", json={"reducer_kind": "completion_rate", "events": []})
    assert resp.status_code == 404
    assert resp.json()["stage"] == "no_events"

    bad = {
        "reducer_kind": "average_score",
        "events": [{"id": "a", "subject_id": "u", "timestamp": "someday", "score": 8}],
    }
    resp = client.post("/v1/trends/build", json=bad)
    assert resp.status_code == 422


def test_permissions_from_connection_header(client):
    connection = '{"status": "ACTIVE", "mentalTrainerAccess": {"viewMentalData": true}}'
    resp = client.get("/v1/athletes/athlete-1/trends/self_assessment", headers={"X-Connection": connection})
    assert resp.status_code == 200
    assert resp.json()["values"] == [8.0]

    pending = '{"status": "PENDING", "mentalTrainerAccess": {"viewMentalData": true}}'
    resp = client.get("/v1/athletes/athlete-1/trends/self_assessment", headers={"X-Connection": pending})
    assert resp.status_code == 403

    resp = client.get("/v1/athletes/athlete-1/trends/self_assessment", headers={"X-Connection": "[1]"})
    assert resp.status_code == 400


def test_oversized_build_request_rejected(client, monkeypatch):
    monkeypatch.setattr(settings.security, "max_upload_mb", 0)
    resp = client.post("/v1/trends/build", json={"reducer_kind": "average_score", "events": []})
    assert resp.status_code == 413
    assert resp.json()["error"] == "request_too_large"


def test_build_endpoint_rejects_non_finite_score(client):
    # NaN is not standard JSON but Python's parser accepts the literal.
    content = (
        '{"reducer_kind": "average_z_score", "events": ['
        '{"id": "a", "subject_id": "u", "timestamp": "2024-01-01T09:00:00Z", "category_id": "c", "score": 4},'
        '{"id": "b", "subject_id": "u", "timestamp": "2024-01-08T09:00:00Z", "category_id": "c", "score": 6},'
        '{"id": "c", "subject_id": "u", "timestamp": "2024-01-15T09:00:00Z", "category_id": "c", "score": NaN}]}'
    )
    resp = client.post("/v1/trends/build", content=content, headers={"content-type": "application/json"})
    assert resp.status_code == 422
