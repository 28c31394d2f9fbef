"""
API tests: routing, auth and error mapping over the in-memory graph.
"""

import pytest
from fastapi.testclient import TestClient

from kue.config import Settings
from kue.dependencies import build_services, get_services
from kue.errors import UpstreamUnavailable
from kue.graph.memory_store import InMemoryGraphStore
from kue.main import app
from kue.middleware.auth import verify_supabase_token

OWNER_ID = "user-1"
TOKEN = {"sub": OWNER_ID, "email": "owner@kue.dev"}


def make_client(store) -> TestClient:
    settings = Settings(openai_api_key="", anthropic_api_key="", enrichment_api_key="")
    services = build_services(settings, store=store)
    app.dependency_overrides[get_services] = lambda: services
    app.dependency_overrides[verify_supabase_token] = lambda: TOKEN
    return TestClient(app)


@pytest.fixture
def client(store):
    yield make_client(store)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestAuth:
    def test_invalid_token_is_rejected(self, store):
        app.dependency_overrides[get_services] = lambda: build_services(Settings(), store=store)
        try:
            response = TestClient(app).get("/network", headers={"Authorization": "Bearer not-a-jwt"})
        finally:
            app.dependency_overrides.clear()
        assert response.status_code == 401


class TestContactsApi:
    def test_ingest_then_search(self, client):
        response = client.post("/contacts/ingest", json={
            "contacts": [
                {"email": "ana@acme.com", "name": "Ana", "title": "Engineer", "company": "Acme", "source": "gmail"},
                {"email": "bo@acme.com", "firstName": "Bo", "title": "Designer", "company": "Acme", "source": "gmail"},
            ],
            "interactions": [
                {"email": "ana@acme.com", "kind": "email", "direction": "sent", "occurredAt": "2025-05-01T10:00:00Z"},
            ],
        })
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["new_persons"] == 2
        assert body["new_companies"] == 1

        response = client.post("/search", json={"query": "engineer at acme"})
        assert response.status_code == 200
        body = response.json()
        assert body["intent"]["queryType"] == "person_search"
        assert [r["email"] for r in body["results"]] == ["ana@acme.com"]

    def test_ingest_validates_payload(self, client):
        response = client.post("/contacts/ingest", json={"contacts": [{"email": "ana@acme.com"}]})
        assert response.status_code == 422


class TestSearchApi:
    def test_invalid_intent_maps_to_422(self, client):
        response = client.post("/search", json={"query": "introduce me"})
        assert response.status_code == 422
        assert response.json()["query_type"] == "intro_path"

    def test_empty_query_is_rejected(self, client):
        assert client.post("/search", json={"query": ""}).status_code == 422

    def test_suggestions(self, client):
        response = client.get("/search/suggestions")
        assert response.status_code == 200
        assert "My strongest connections" in response.json()["suggestions"]


class TestNetworkApi:
    def test_stats(self, client):
        response = client.get("/network")
        assert response.status_code == 200
        assert response.json()["total_contacts"] == 0

    def test_missing_intro_path_is_404(self, client):
        response = client.get("/network/intro-path", params={"target_id": "missing"})
        assert response.status_code == 404

    def test_unknown_score_is_404(self, client):
        assert client.get("/scoring/nobody@acme.com").status_code == 404

    def test_unknown_person_enrichment_is_404(self, client):
        assert client.post("/enrich/missing").status_code == 404

    def test_upstream_outage_maps_to_503(self):
        class DownStore(InMemoryGraphStore):
            async def network_stats(self, owner_id):
                raise UpstreamUnavailable("graph", "connection refused")

        try:
            response = make_client(DownStore()).get("/network")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 503
        body = response.json()
        assert body["upstream"] == "graph"
        assert body["retryable"] is True


class TestMaintenanceApi:
    def test_run(self, client):
        response = client.post("/maintenance/run")
        assert response.status_code == 200
        assert response.json()["status"] == "completed"
