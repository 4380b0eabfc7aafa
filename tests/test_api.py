"""
Tests for the HTTP API and its structured error contract (api.py).
"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient


AUTH = {"Authorization": "Bearer test-key"}

PARENT_PATH = {
    "born_in_jamaica": "false",
    "parent_jamaican_birth": "true",
    "parent_citizen_at_birth": "true",
}


@pytest.fixture
def client(monkeypatch, tmp_path: Path):
    import citizenship_wizard.api as api_mod

    monkeypatch.setattr(api_mod, "API_KEY", "test-key")
    monkeypatch.setattr(api_mod, "DB_PATH", str(tmp_path / "runs.db"))

    with TestClient(api_mod.app) as test_client:
        yield test_client


def _eligible_result() -> dict:
    return {
        "status": "eligible",
        "explanation": "Likely eligible through your parent.",
        "documents": [{"name": "Birth certificate", "description": "Long form", "mandatory": True}],
        "next_steps": [{"order": 1, "title": "Apply", "description": "Submit the form"}],
        "caveats": ["Indicative only"],
    }


class TestPublicEndpoints:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_countries(self, client):
        countries = client.get("/api/v1/countries").json()["countries"]
        by_code = {c["code"]: c for c in countries}
        assert by_code["jm"]["status"] == "active"
        assert by_code["it"]["status"] == "coming_soon"

    def test_evaluate(self, client):
        resp = client.post("/api/v1/eligibility/evaluate", json={
            "country_code": "jm", "answers": PARENT_PATH,
        })
        assert resp.status_code == 200
        body = resp.json()
        assert body["result"]["status"] == "eligible"
        assert body["rules_version"] == "1.0.0"
        assert body["matched_rule_id"] == "parent_jamaican_citizen"

    def test_evaluate_default_result(self, client):
        resp = client.post("/api/v1/eligibility/evaluate", json={"country_code": "jm", "answers": {}})
        body = resp.json()
        assert body["result"]["status"] == "needs_info"
        assert body["matched_rule_id"] is None

    def test_evaluate_inactive_country(self, client):
        resp = client.post("/api/v1/eligibility/evaluate", json={"country_code": "it", "answers": {}})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "COUNTRY_NOT_AVAILABLE"

    def test_evaluate_invalid_payload(self, client):
        resp = client.post("/api/v1/eligibility/evaluate", json={"country_code": "jm"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "BAD_REQUEST"


class TestWizardEndpoints:

    def test_start(self, client):
        body = client.post("/api/v1/wizard/start", json={"country_code": "jm"}).json()
        assert body["question"]["id"] == "born_in_jamaica"
        assert body["question"]["type"] == "boolean"
        assert body["progress"] == 14
        assert body["can_go_back"] is False
        assert body["result"] is None
        assert body["state"]["question_history"] == ["born_in_jamaica"]

    def test_answer_and_back(self, client):
        start = client.post("/api/v1/wizard/start", json={"country_code": "jm"}).json()

        answered = client.post("/api/v1/wizard/answer", json={
            "state": start["state"], "value": "false",
        }).json()
        assert answered["question"]["id"] == "parent_jamaican_birth"
        assert answered["can_go_back"] is True
        assert answered["state"]["answers"] == {"born_in_jamaica": "false"}

        back = client.post("/api/v1/wizard/back", json={"state": answered["state"]}).json()
        assert back["state"] == start["state"]
        assert back["question"]["id"] == "born_in_jamaica"

    def test_answer_completes(self, client):
        start = client.post("/api/v1/wizard/start", json={"country_code": "jm"}).json()
        done = client.post("/api/v1/wizard/answer", json={
            "state": start["state"], "value": "true",
        }).json()
        assert done["state"]["is_complete"] is True
        assert done["question"] is None
        assert done["progress"] == 100
        assert done["result"]["status"] == "eligible"
        assert done["can_go_back"] is True

    def test_invalid_answer_value(self, client):
        start = client.post("/api/v1/wizard/start", json={"country_code": "jm"}).json()
        resp = client.post("/api/v1/wizard/answer", json={"state": start["state"], "value": "maybe"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_ANSWER"

    def test_unknown_question(self, client):
        start = client.post("/api/v1/wizard/start", json={"country_code": "jm"}).json()
        resp = client.post("/api/v1/wizard/answer", json={
            "state": start["state"], "question_id": "favourite_colour", "value": "blue",
        })
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "BAD_REQUEST"

    def test_start_inactive_country(self, client):
        resp = client.post("/api/v1/wizard/start", json={"country_code": "pl"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "COUNTRY_NOT_AVAILABLE"


class TestSavedRuns:

    def _save(self, client, **overrides):
        payload = {
            "user_id": "user-1",
            "country_code": "jm",
            "rules_version": "1.0.0",
            "answers": PARENT_PATH,
            "result": _eligible_result(),
        }
        payload.update(overrides)
        return client.post("/api/v1/eligibility/save", headers=AUTH, json=payload)

    def test_save_requires_auth(self, client):
        resp = client.post(
            "/api/v1/eligibility/save",
            headers={"Authorization": "Bearer wrong-key"},
            json={
                "user_id": "user-1",
                "country_code": "jm",
                "rules_version": "1.0.0",
                "answers": PARENT_PATH,
                "result": _eligible_result(),
            },
        )
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHORIZED"

    def test_missing_bearer_prefix(self, client):
        resp = client.get("/api/v1/users/user-1/eligibility/history", headers={"Authorization": "test-key"})
        assert resp.status_code == 401

    def test_save_and_history(self, client):
        resp = self._save(client)
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        run_id = resp.json()["id"]

        history = client.get("/api/v1/users/user-1/eligibility/history", headers=AUTH).json()
        assert history["user_id"] == "user-1"
        entry = history["history"][0]
        assert entry["id"] == run_id
        assert entry["country_name"] == "Jamaica"
        assert entry["status"] == "eligible"
        assert entry["rules_version"] == "1.0.0"
        assert entry["created_at"].endswith("Z")

    def test_save_with_older_rules_version(self, client):
        assert self._save(client, rules_version="0.9.0").status_code == 200

    def test_save_inactive_country(self, client):
        resp = self._save(client, country_code="it")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "COUNTRY_NOT_AVAILABLE"

    def test_save_invalid_status(self, client):
        result = _eligible_result()
        result["status"] = "probably"
        resp = self._save(client, result=result)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "BAD_REQUEST"

    def test_history_of_other_user_is_empty(self, client):
        self._save(client)
        history = client.get("/api/v1/users/someone-else/eligibility/history", headers=AUTH).json()
        assert history["history"] == []

    def test_save_internal_error(self, client, monkeypatch):
        def boom(*_args, **_kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(client.app.state.run_store, "save_run", boom)
        resp = self._save(client)
        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "INTERNAL"
