"""HTTP API tests using FastAPI's TestClient over in-memory storage."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from people_registry.api.app import CORRELATION_HEADER, create_app
from people_registry.core.config import Settings

ANN = {"name": "Ann", "email": "bob@example.com", "phone": "+15551234567"}
CARL = {"name": "Carl", "email": "carl@example.org", "phone": "+445551234567"}


@pytest.fixture
def client():
    with TestClient(create_app(Settings())) as c:
        yield c


@pytest.fixture
def container(client):
    return client.app.state.container


def _create(client, body=ANN) -> dict:
    response = client.post("/persons", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestPersons:
    def test_create_and_fetch(self, client):
        created = _create(client)

        assert created == {"id": 1, **ANN}
        assert client.get("/persons/1").json() == created
        assert client.get("/persons/by-email/bob@example.com").json() == created
        assert client.get("/persons/by-phone/%2B15551234567").json() == created
        assert client.get("/persons").json() == [created]

    def test_malformed_email_in_body(self, client, container):
        response = client.post("/persons", json={"name": "Ann", "email": "not-an-email"})

        assert response.status_code == 400
        assert "Invalid email format" in response.json()["error"]
        assert container.store.counts["persons"] == 0

    def test_malformed_email_in_path(self, client):
        response = client.get("/persons/by-email/nope")
        assert response.status_code == 400
        assert "Invalid email format" in response.json()["error"]

    def test_blank_name(self, client):
        response = client.post("/persons", json={"name": " "})

        assert response.status_code == 400
        assert response.json()["field_errors"] == {"name": "must not be blank"}

    def test_duplicate_email_conflict(self, client):
        _create(client)
        response = client.post("/persons", json={"name": "Other", "email": ANN["email"]})

        assert response.status_code == 409
        assert response.json() == {
            "error": "Person with email bob@example.com already exists",
            "kind": "conflict",
        }

    def test_not_found(self, client):
        response = client.get("/persons/42")
        assert response.status_code == 404
        assert response.json()["error"] == "Person with ID 42 not found"

    def test_update(self, client):
        _create(client)
        response = client.put("/persons/1", json={**ANN, "name": "Ann B"})

        assert response.status_code == 200
        assert response.json()["name"] == "Ann B"

    def test_delete(self, client):
        _create(client)

        response = client.delete("/persons/1")

        assert response.status_code == 204
        assert response.content == b""
        assert client.get("/persons/1").status_code == 404
        assert client.delete("/persons/1").status_code == 404

    def test_storage_failure_is_redacted(self, client, container):
        container.store.inject_write_failure("password=hunter2 rejected by db")

        response = client.post("/persons", json=ANN)

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error", "kind": "error"}
        assert "hunter2" not in response.text


class TestVerification:
    def test_verify_email(self, client):
        _create(client)

        ok = client.post("/persons/1/verify-email", params={"email": ANN["email"]})
        mismatch = client.post("/persons/1/verify-email", params={"email": "eve@example.com"})

        assert ok.status_code == 200
        assert mismatch.status_code == 400
        assert mismatch.json()["kind"] == "validation"

    def test_verify_phone(self, client):
        _create(client)

        ok = client.post("/persons/1/verify-phone", params={"phone": ANN["phone"]})
        bad = client.post("/persons/1/verify-phone", params={"phone": "12"})

        assert ok.status_code == 200
        assert bad.status_code == 400
        assert "Invalid phone format" in bad.json()["error"]


class TestOrganizations:
    def test_create_with_owner(self, client):
        _create(client)
        body = {
            "name": "Acme",
            "type": "BUSINESS",
            "address": {
                "street1": "1 Main St",
                "city": "Springfield",
                "postal_code": "12345",
                "country_code": "US",
            },
        }

        response = client.post("/organizations", params={"creator_id": 1}, json=body)

        assert response.status_code == 201
        org = response.json()
        assert org["type"] == "BUSINESS" and org["active"] is True
        assert org["address"]["country_code"] == "US"
        [owner] = client.get(f"/organizations/{org['id']}/members").json()
        assert owner["person_id"] == 1 and owner["role"] == "OWNER"
        assert client.get("/organizations/by-name/Acme").json()["id"] == org["id"]
        assert [o["name"] for o in client.get("/organizations").json()] == ["Acme"]

    def test_bad_country_code(self, client):
        _create(client)
        body = {
            "name": "Acme",
            "address": {
                "street1": "1 Main St",
                "city": "Springfield",
                "postal_code": "12345",
                "country_code": "usa",
            },
        }

        response = client.post("/organizations", params={"creator_id": 1}, json=body)

        assert response.status_code == 400
        assert "ISO 3166-1 alpha-2" in response.json()["error"]

    def test_unknown_creator(self, client):
        response = client.post("/organizations", params={"creator_id": 9}, json={"name": "Acme"})
        assert response.status_code == 404

    def test_duplicate_name(self, client):
        _create(client)
        client.post("/organizations", params={"creator_id": 1}, json={"name": "Acme"})

        response = client.post("/organizations", params={"creator_id": 1}, json={"name": "Acme"})

        assert response.status_code == 409
        assert response.json()["error"] == "Organization with name 'Acme' already exists"


class TestMemberships:
    def test_add_member_and_list(self, client):
        _create(client)
        _create(client, CARL)
        client.post("/organizations", params={"creator_id": 1}, json={"name": "Acme"})

        added = client.post("/memberships/organizations/1/members/2", params={"role": "ADMIN"})
        again = client.post("/memberships/organizations/1/members/2")

        assert added.status_code == 201
        assert added.json()["role"] == "ADMIN"
        assert again.status_code == 409
        orgs = client.get("/memberships/persons/2/organizations").json()
        assert [m["organization_id"] for m in orgs] == [1]

    def test_default_role(self, client):
        _create(client)
        _create(client, CARL)
        client.post("/organizations", params={"creator_id": 1}, json={"name": "Acme"})

        response = client.post("/memberships/organizations/1/members/2")

        assert response.json()["role"] == "MEMBER"

    def test_unknown_role_rejected(self, client):
        response = client.post("/memberships/organizations/1/members/2", params={"role": "BOSS"})
        assert response.status_code == 400


class TestOperational:
    def test_audit_trail_newest_first(self, client):
        _create(client)
        client.delete("/persons/1")

        records = client.get("/audit/events", params={"limit": 2}).json()

        assert [r["event_type"] for r in records] == ["person.deleted", "person.created"]

    def test_audit_limit_bounds(self, client):
        assert client.get("/audit/events", params={"limit": 0}).status_code == 400

    def test_startup_announced(self, client):
        records = client.get("/audit/events").json()
        assert records[-1]["event_type"] == "system.started"

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert {c["component"] for c in body["components"]} == {"storage", "events"}

    def test_health_degraded(self, client, container):
        async def failing():
            raise ConnectionError("db gone")

        container.health.register_check("storage", failing)

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"

    def test_correlation_id_echoed(self, client):
        response = client.get("/persons", headers={CORRELATION_HEADER: "abc-123"})
        assert response.headers[CORRELATION_HEADER] == "abc-123"

    def test_correlation_id_generated(self, client):
        assert client.get("/persons").headers[CORRELATION_HEADER]
