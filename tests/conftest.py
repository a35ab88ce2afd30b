from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

# Tests always run against the in-memory store and channel.
os.environ.pop("DATABASE_URL", None)
os.environ.pop("REDIS_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

# Ensure repo root is on sys.path so `import user_service` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from user_service.api import dependencies  # noqa: E402
from user_service.main import app  # noqa: E402
from user_service.services.event_channel import event_channel  # noqa: E402
from user_service.services.users_service import CreateUserCommand  # noqa: E402


@pytest.fixture(autouse=True)
def reset_user_repo() -> None:
    """Clear the in-memory user store between tests."""
    dependencies.user_repo._by_id.clear()
    dependencies.user_repo._id_by_email.clear()


@pytest.fixture(autouse=True)
def reset_event_channel() -> None:
    """Drain published events and restore availability between tests."""
    event_channel._queue.clear()  # type: ignore[union-attr]
    event_channel.available = True  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_dependency_overrides() -> Iterator[None]:
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def make_command(
    email: str = "ana@x.com",
    first_name: str = "Ana",
    last_name: str = "Diaz",
    **extra: str | None,
) -> CreateUserCommand:
    return CreateUserCommand(
        first_name=first_name, last_name=last_name, email=email, **extra
    )


def user_payload(email: str = "ana@x.com", **overrides: str | None) -> dict:
    payload: dict = {"firstName": "Ana", "lastName": "Diaz", "email": email}
    payload.update(overrides)
    return payload
