"""
HTTP tests for the onboarding API.
"""
import inspect

import pytest
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from pathway.core.exceptions import StorageError
from pathway.main import create_app
from pathway.routers.deps import get_onboarding_service


API = "/api/v1"


@pytest.fixture
def client(service):
    app = create_app(lifespan_handler=None)
    app.dependency_overrides[get_onboarding_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def path_payload(two_step_definition):
    return two_step_definition().model_dump(mode="json")


@pytest.fixture
def started(client, path_payload):
    assert client.post(f"{API}/paths/", json=path_payload).status_code == 201
    response = client.post(f"{API}/sessions/", json={
        "user_id": "user-1",
        "context": {"user_role": "developer"},
    })
    assert response.status_code == 201
    return response.json()


class TestPathRoutes:

    def test_import_and_fetch(self, client, path_payload):
        created = client.post(f"{API}/paths/", json=path_payload)
        assert created.status_code == 201

        fetched = client.get(f"{API}/paths/path-dev")
        assert fetched.status_code == 200
        assert [s["id"] for s in fetched.json()["steps"]] == ["step-1", "step-2"]

    def test_cyclic_path_rejected(self, client, path_payload):
        path_payload["steps"][0]["dependencies"] = ["step-2"]
        response = client.post(f"{API}/paths/", json=path_payload)
        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"
        assert response.json()["details"]["issues"]

    def test_unknown_path(self, client):
        response = client.get(f"{API}/paths/missing")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    def test_personalized_without_match(self, client):
        response = client.post(f"{API}/paths/personalized", json={
            "user_id": "user-1",
            "context": {"user_role": "designer"},
        })
        assert response.status_code == 404

    def test_validate_switch_returns_issues(self, client):
        response = client.post(f"{API}/paths/validate-switch", json={
            "current_path_id": "path-dev",
            "new_path_id": "path-dev",
            "reason": "boredom",
        })
        assert response.status_code == 200
        body = response.json()
        assert body["is_valid"] is False
        assert len(body["issues"]) == 2

    def test_create_milestone(self, client):
        response = client.post(f"{API}/paths/milestones", json={
            "name": "Halfway There",
            "criteria": {"type": "progress_percentage", "progress_percentage": 50},
        })
        assert response.status_code == 201
        assert response.json()["criteria"]["type"] == "progress_percentage"


class TestSessionRoutes:

    def test_start_and_next_step(self, client, started):
        assert started["status"] == "active"
        response = client.get(f"{API}/sessions/{started['id']}/next-step")
        assert response.status_code == 200
        assert response.json()["id"] == "step-1"

    def test_invalid_transition_is_unprocessable(self, client, started):
        assert client.post(f"{API}/sessions/{started['id']}/complete").status_code == 200
        response = client.post(f"{API}/sessions/{started['id']}/pause")
        assert response.status_code == 422
        assert response.json()["details"] == {
            "current": "completed", "requested": "paused", "entity": "session"
        }

    def test_abandon_without_body(self, client, started):
        response = client.post(f"{API}/sessions/{started['id']}/abandon")
        assert response.status_code == 200
        assert response.json()["status"] == "abandoned"

    def test_adapt_unknown_session(self, client):
        response = client.post(f"{API}/sessions/missing/adapt", json={})
        assert response.status_code == 404

    def test_adapt(self, client, started):
        response = client.post(f"{API}/sessions/{started['id']}/adapt", json={"engagement_level": "high"})
        assert response.status_code == 200
        assert response.json()["adjustment_type"] == "none"

    def test_completion_of_unknown_session_is_ok(self, client):
        response = client.get(f"{API}/sessions/missing/completion")
        assert response.status_code == 200
        assert response.json() == {
            "is_valid": False,
            "completion_percentage": 0,
            "missing_steps": [],
            "issues": ["Session or path not found"],
        }

    def test_switch_to_same_path(self, client, started):
        response = client.post(f"{API}/sessions/{started['id']}/switch", json={
            "new_path_id": "path-dev",
            "reason": "pacing",
        })
        assert response.status_code == 422

    def test_list_user_sessions(self, client, started):
        response = client.get(f"{API}/sessions/users/user-1", params={"status": "active"})
        assert [s["id"] for s in response.json()] == [started["id"]]


class TestProgressRoutes:

    def test_complete_steps(self, client, started):
        session_id = started["id"]
        for step_id in ("step-1", "step-2"):
            response = client.post(f"{API}/progress/sessions/{session_id}/steps/{step_id}/complete", json={
                "user_id": "user-1",
                "result": {"time_spent": 5, "score": 90},
            })
            assert response.status_code == 200
            assert response.json()["status"] == "completed"

        overall = client.get(f"{API}/progress/sessions/{session_id}").json()
        assert overall["overall_progress"] == 100
        assert overall["time_spent"] == 10

        completion = client.get(f"{API}/sessions/{session_id}/completion").json()
        assert completion["is_valid"] is True

    def test_reopening_completed_step(self, client, started):
        url = f"{API}/progress/sessions/{started['id']}/steps/step-1"
        assert client.put(url, json={"user_id": "user-1", "delta": {"status": "completed"}}).status_code == 200

        response = client.put(url, json={"user_id": "user-1", "delta": {"status": "in_progress"}})
        assert response.status_code == 422
        assert response.json()["details"]["entity"] == "progress"

    def test_unknown_delta_field(self, client, started):
        response = client.put(f"{API}/progress/sessions/{started['id']}/steps/step-1", json={
            "user_id": "user-1",
            "delta": {"session_id": "other"},
        })
        assert response.status_code == 422

    def test_blockers_and_report(self, client, started):
        session_id = started["id"]
        client.post(f"{API}/progress/sessions/{session_id}/steps/step-1/fail", json={
            "user_id": "user-1",
            "errors": {"timeout": 30},
            "attempts": 4,
        })

        blockers = client.get(f"{API}/progress/sessions/{session_id}/blockers").json()
        assert blockers[0]["blocker_type"] == "system"
        assert blockers[0]["frequency"] == 4

        report = client.get(f"{API}/progress/sessions/{session_id}/report")
        assert report.status_code == 200
        assert report.json()["analytics"]["failure_rate"] == 100.0

    def test_award_milestone(self, client, started):
        assert client.post(f"{API}/paths/milestones", json={
            "id": "welcome",
            "name": "Welcome",
            "criteria": {"type": "progress_percentage", "progress_percentage": 0},
        }).status_code == 201
        url = f"{API}/progress/sessions/{started['id']}/milestones/welcome"
        response = client.post(url, json={"user_id": "user-1", "data": {"source": "manual"}})
        assert response.status_code == 201

        achievements = client.get(f"{API}/progress/sessions/{started['id']}/achievements").json()
        assert [a["milestone_id"] for a in achievements] == ["welcome"]

    def test_award_unknown_milestone(self, client, started):
        url = f"{API}/progress/sessions/{started['id']}/milestones/no-such-milestone"
        response = client.post(url, json={"user_id": "user-1"})
        assert response.status_code == 404

    def test_null_delta_field(self, client, started):
        url = f"{API}/progress/sessions/{started['id']}/steps/step-1"
        for delta in ({"status": None}, {"time_spent": None}):
            response = client.put(url, json={"user_id": "user-1", "delta": delta})
            assert response.status_code == 422

    def test_unknown_step(self, client, started):
        response = client.post(f"{API}/progress/sessions/{started['id']}/steps/not-a-step/start", json={
            "user_id": "user-1",
        })
        assert response.status_code == 404
        assert response.json()["details"]["step_id"] == "not-a-step"

    def test_unknown_session(self, client):
        response = client.post(f"{API}/progress/sessions/no-such-session/steps/step-1/start", json={
            "user_id": "user-1",
        })
        assert response.status_code == 404

    def test_storage_failure_is_unavailable(self, client, started, store, monkeypatch):
        def unavailable(*args, **kwargs):
            raise StorageError("Failed to upsert step progress", operation="upsert_progress")

        monkeypatch.setattr(store, "upsert_progress", unavailable)
        response = client.post(f"{API}/progress/sessions/{started['id']}/steps/step-1/start", json={
            "user_id": "user-1",
        })
        assert response.status_code == 503
        assert response.json()["operation"] == "track_step_progress"


def test_health(client, monkeypatch):
    monkeypatch.setattr("pathway.main.check_database_connection", lambda: False)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "degraded"


def test_endpoints_run_in_threadpool():
    # Handlers call the synchronous store
    app = create_app(lifespan_handler=None)
    blocking = [
        route.path for route in app.routes
        if isinstance(route, APIRoute) and inspect.iscoroutinefunction(route.endpoint)
    ]
    assert blocking == []
