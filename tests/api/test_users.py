from __future__ import annotations

import logging
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from tests.conftest import user_payload
from user_service.api import dependencies
from user_service.api.dependencies import get_user_repo
from user_service.core.errors import InfrastructureFailure
from user_service.repos.user_repo import InMemoryUserRepo
from user_service.services.event_channel import event_channel


class UnavailableRepo(InMemoryUserRepo):
    """Store whose every operation fails like a dropped connection."""

    async def save(self, user):
        raise InfrastructureFailure("connection refused")

    async def get_by_id(self, user_id):
        raise InfrastructureFailure("connection refused")

    async def get_by_email(self, email):
        raise InfrastructureFailure("connection refused")

    async def list_all(self):
        raise InfrastructureFailure("connection refused")

    async def exists_by_email(self, email):
        raise InfrastructureFailure("connection refused")


# ---- 201: POST /users ----


def test_create_user_returns_201_with_camel_case_body(client: TestClient) -> None:
    resp = client.post("/users", json=user_payload())
    assert resp.status_code == 201
    data = resp.json()
    assert data["firstName"] == "Ana"
    assert data["lastName"] == "Diaz"
    assert data["fullName"] == "Ana Diaz"
    assert data["email"] == "ana@x.com"
    assert data["status"] == "ACTIVE"
    assert data["phone"] is None
    assert data["address"] is None
    assert data["createdAt"] == data["updatedAt"]
    assert data["id"]


def test_create_user_with_address(client: TestClient) -> None:
    resp = client.post(
        "/users",
        json=user_payload(
            phone="555-0100",
            street="1 Main St",
            city="Austin",
            state="TX",
            zipCode="78701",
            country="US",
        ),
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["phone"] == "555-0100"
    assert data["address"] == {
        "street": "1 Main St",
        "city": "Austin",
        "state": "TX",
        "zipCode": "78701",
        "country": "US",
        "fullAddress": "1 Main St, Austin, TX 78701, US",
    }


def test_create_user_normalizes_email_in_response(client: TestClient) -> None:
    resp = client.post("/users", json=user_payload("  UPPER@EXAMPLE.COM  "))
    assert resp.status_code == 201
    assert resp.json()["email"] == "upper@example.com"


def test_create_user_publishes_event(client: TestClient) -> None:
    resp = client.post("/users", json=user_payload())
    [payload] = event_channel.published  # type: ignore[union-attr]
    assert payload["userId"] == resp.json()["id"]
    assert payload["email"] == "ana@x.com"
    assert payload["fullName"] == "Ana Diaz"


# ---- 409: duplicate email ----


def test_create_user_rejects_duplicate_email(client: TestClient) -> None:
    first = client.post("/users", json=user_payload("dupe@x.com"))
    assert first.status_code == 201

    second = client.post("/users", json=user_payload("dupe@x.com"))
    assert second.status_code == 409
    assert second.json() == {
        "detail": {
            "code": "USER_ALREADY_EXISTS",
            "message": "User with email dupe@x.com already exists",
        }
    }


def test_create_user_rejects_case_variant_duplicate(client: TestClient) -> None:
    client.post("/users", json=user_payload("case@x.com"))
    resp = client.post("/users", json=user_payload("CASE@X.COM"))
    assert resp.status_code == 409


# ---- 422: validation ----


@pytest.mark.parametrize("email", ["not-an-email", "a@b", "   "])
def test_create_user_rejects_invalid_email(client: TestClient, email: str) -> None:
    resp = client.post("/users", json=user_payload(email))
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "INVALID_EMAIL"
    assert event_channel.published == []  # type: ignore[union-attr]


def test_create_user_rejects_blank_first_name(client: TestClient) -> None:
    resp = client.post("/users", json=user_payload(firstName="  "))
    assert resp.status_code == 422
    assert resp.json() == {
        "detail": {"code": "VALIDATION_ERROR", "message": "First name is required"}
    }


def test_create_user_rejects_blank_last_name(client: TestClient) -> None:
    resp = client.post("/users", json=user_payload(lastName=""))
    assert resp.status_code == 422
    assert resp.json()["detail"]["message"] == "Last name is required"


def test_create_user_rejects_missing_body(client: TestClient) -> None:
    assert client.post("/users").status_code == 422


@pytest.mark.parametrize(
    ("field", "length"),
    [
        ("firstName", 101),
        ("lastName", 101),
        ("phone", 33),
        ("street", 256),
        ("city", 101),
        ("state", 101),
        ("zipCode", 21),
        ("country", 101),
    ],
)
def test_create_user_rejects_overlong_field(
    client: TestClient, field: str, length: int
) -> None:
    resp = client.post("/users", json=user_payload(**{field: "x" * length}))
    assert resp.status_code == 422
    assert dependencies.user_repo._by_id == {}


def test_create_user_rejects_overlong_email(client: TestClient) -> None:
    email = "a" * 315 + "@x.com"
    resp = client.post("/users", json=user_payload(email))
    assert resp.status_code == 422


def test_create_user_accepts_fields_at_column_limit(client: TestClient) -> None:
    resp = client.post(
        "/users", json=user_payload(firstName="A" * 100, zipCode="9" * 20)
    )
    assert resp.status_code == 201


def test_create_user_rejects_missing_email_field(client: TestClient) -> None:
    resp = client.post("/users", json={"firstName": "Ana", "lastName": "Diaz"})
    assert resp.status_code == 422


# ---- 503: infrastructure / publish ----


def test_create_user_store_failure_returns_503(client: TestClient) -> None:
    client.app.dependency_overrides[get_user_repo] = lambda: UnavailableRepo()  # type: ignore[attr-defined]
    resp = client.post("/users", json=user_payload())
    assert resp.status_code == 503
    assert resp.json()["detail"]["code"] == "INFRASTRUCTURE_FAILURE"
    assert event_channel.published == []  # type: ignore[union-attr]


def test_create_user_publish_failure_returns_503_and_keeps_user(
    client: TestClient,
) -> None:
    event_channel.available = False  # type: ignore[union-attr]
    resp = client.post("/users", json=user_payload())
    assert resp.status_code == 503
    assert resp.json()["detail"]["code"] == "PUBLISH_FAILURE"

    # The save was committed before the publish attempt.
    assert client.get("/users/email/ana@x.com").status_code == 200


def test_queries_return_503_when_store_unavailable(client: TestClient) -> None:
    client.app.dependency_overrides[get_user_repo] = lambda: UnavailableRepo()  # type: ignore[attr-defined]
    assert client.get("/users").status_code == 503
    assert client.get(f"/users/{uuid4()}").status_code == 503
    assert client.get("/users/email/ana@x.com").status_code == 503


# ---- GET ----


def test_get_user_by_id(client: TestClient) -> None:
    created = client.post("/users", json=user_payload()).json()
    resp = client.get(f"/users/{created['id']}")
    assert resp.status_code == 200
    assert resp.json() == created


def test_get_user_by_id_not_found(client: TestClient) -> None:
    missing = uuid4()
    resp = client.get(f"/users/{missing}")
    assert resp.status_code == 404
    assert resp.json() == {
        "detail": {
            "code": "RESOURCE_NOT_FOUND",
            "message": f"User not found with id: {missing}",
        }
    }


def test_get_user_by_id_rejects_non_uuid(client: TestClient) -> None:
    assert client.get("/users/not-a-uuid").status_code == 422


def test_get_user_by_email(client: TestClient) -> None:
    created = client.post("/users", json=user_payload()).json()
    resp = client.get("/users/email/ANA@x.com")
    assert resp.status_code == 200
    assert resp.json()["id"] == created["id"]


def test_get_user_by_email_not_found(client: TestClient) -> None:
    resp = client.get("/users/email/ghost@x.com")
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "RESOURCE_NOT_FOUND"


def test_list_users_empty(client: TestClient) -> None:
    resp = client.get("/users")
    assert resp.status_code == 200
    assert resp.json() == []


def test_list_users_reflects_created_users(client: TestClient) -> None:
    client.post("/users", json=user_payload("a@x.com"))
    client.post("/users", json=user_payload("b@x.com"))
    resp = client.get("/users")
    assert resp.headers["content-type"] == "application/json"
    assert sorted(u["email"] for u in resp.json()) == ["a@x.com", "b@x.com"]


# ---- logging ----


def test_user_creation_logs_info(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="user_service.services.users_service"):
        client.post("/users", json=user_payload("logged@x.com"))
    assert any("Created user" in m and "logged@x.com" in m for m in caplog.messages)


def test_publish_failure_logs_error(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    event_channel.available = False  # type: ignore[union-attr]
    with caplog.at_level(logging.ERROR):
        client.post("/users", json=user_payload())
    assert any("not published" in m for m in caplog.messages)
