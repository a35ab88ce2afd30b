from __future__ import annotations

from typing import Protocol
from uuid import UUID

from user_service.core.errors import InfrastructureFailure, InvalidEmailFormat
from user_service.models.email import Email
from user_service.models.user import User


class UserRepo(Protocol):
    async def save(self, user: User) -> User: ...
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def get_by_email(self, email: Email | str) -> User | None: ...
    async def list_all(self) -> list[User]: ...
    async def exists_by_email(self, email: Email | str) -> bool: ...
    async def delete_by_id(self, user_id: UUID) -> None: ...


def email_key(email: Email | str) -> str | None:
    """Normalized lookup key, or None when the string can't be an email."""
    if isinstance(email, Email):
        return email.value
    try:
        return Email(email).value
    except InvalidEmailFormat:
        return None


class InMemoryUserRepo:
    """Dict-backed store for tests and local runs without DATABASE_URL.

    Enforces the same unique-email rule as the users table, raising
    InfrastructureFailure the way a constraint violation would.
    """

    def __init__(self) -> None:
        self._by_id: dict[UUID, User] = {}
        self._id_by_email: dict[str, UUID] = {}

    async def save(self, user: User) -> User:
        owner = self._id_by_email.get(user.email.value)
        if owner is not None and owner != user.id:
            raise InfrastructureFailure(
                f"unique constraint violated: users.email={user.email.value}"
            )

        previous = self._by_id.get(user.id)
        if previous is not None and previous.email != user.email:
            del self._id_by_email[previous.email.value]

        self._by_id[user.id] = user
        self._id_by_email[user.email.value] = user.id
        return user

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def get_by_email(self, email: Email | str) -> User | None:
        key = email_key(email)
        if key is None:
            return None
        user_id = self._id_by_email.get(key)
        return self._by_id.get(user_id) if user_id is not None else None

    async def list_all(self) -> list[User]:
        return list(self._by_id.values())

    async def exists_by_email(self, email: Email | str) -> bool:
        key = email_key(email)
        return key is not None and key in self._id_by_email

    async def delete_by_id(self, user_id: UUID) -> None:
        user = self._by_id.pop(user_id, None)
        if user is not None:
            self._id_by_email.pop(user.email.value, None)
