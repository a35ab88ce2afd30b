"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

import asyncio
import logging
from uuid import UUID

from sqlalchemy import delete, exists, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from user_service.core.errors import InfrastructureFailure
from user_service.db.tables import UserRow
from user_service.models.address import Address
from user_service.models.email import Email
from user_service.models.user import User, UserStatus
from user_service.repos.user_repo import email_key

logger = logging.getLogger(__name__)

# asyncpg raises plain OSError/TimeoutError from connection checkout when
# the server is unreachable; SQLAlchemy does not wrap those.
_STORE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


class PgUserRepo:
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy.

    Every SQLAlchemy or connection error is re-raised as InfrastructureFailure with the
    original chained; nothing is retried here.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save(self, user: User) -> User:
        try:
            row = await self._session.get(UserRow, user.id)
            if row is None:
                row = UserRow(id=user.id)
                self._session.add(row)
            _copy_onto_row(user, row)
            await self._session.flush()
            # Commit here so the row is durable before the caller publishes.
            await self._session.commit()
            # Reload so the caller sees the stored timestamp precision.
            await self._session.refresh(row)
        except IntegrityError as exc:
            await self._session.rollback()
            logger.warning("Unique constraint rejected email=%s", user.email)
            raise InfrastructureFailure(
                f"unique constraint violated: users.email={user.email.value}"
            ) from exc
        except _STORE_ERRORS as exc:
            await self._session.rollback()
            raise InfrastructureFailure(f"failed to save user {user.id}") from exc

        return _row_to_user(row)

    async def get_by_id(self, user_id: UUID) -> User | None:
        stmt = select(UserRow).where(UserRow.id == user_id)
        row = await self._scalar(stmt)
        return _row_to_user(row) if row is not None else None

    async def get_by_email(self, email: Email | str) -> User | None:
        key = email_key(email)
        if key is None:
            return None
        stmt = select(UserRow).where(UserRow.email == key)
        row = await self._scalar(stmt)
        return _row_to_user(row) if row is not None else None

    async def list_all(self) -> list[User]:
        try:
            rows = (await self._session.execute(select(UserRow))).scalars().all()
        except _STORE_ERRORS as exc:
            raise InfrastructureFailure("failed to list users") from exc
        return [_row_to_user(row) for row in rows]

    async def exists_by_email(self, email: Email | str) -> bool:
        key = email_key(email)
        if key is None:
            return False
        stmt = select(exists().where(UserRow.email == key))
        return bool(await self._scalar(stmt))

    async def delete_by_id(self, user_id: UUID) -> None:
        try:
            await self._session.execute(delete(UserRow).where(UserRow.id == user_id))
            await self._session.commit()
        except _STORE_ERRORS as exc:
            await self._session.rollback()
            raise InfrastructureFailure(f"failed to delete user {user_id}") from exc

    async def _scalar(self, stmt):
        try:
            return (await self._session.execute(stmt)).scalar_one_or_none()
        except _STORE_ERRORS as exc:
            raise InfrastructureFailure("user store query failed") from exc


def _copy_onto_row(user: User, row: UserRow) -> None:
    address = user.address or Address()
    row.first_name = user.first_name
    row.last_name = user.last_name
    row.email = user.email.value
    row.phone = user.phone
    row.street = address.street
    row.city = address.city
    row.state = address.state
    row.zip_code = address.zip_code
    row.country = address.country
    row.status = user.status.value
    row.created_at = user.created_at
    row.updated_at = user.updated_at


def _row_to_user(row: UserRow) -> User:
    address = Address(
        street=row.street,
        city=row.city,
        state=row.state,
        zip_code=row.zip_code,
        country=row.country,
    )
    return User(
        id=row.id,
        first_name=row.first_name,
        last_name=row.last_name,
        email=Email(row.email),
        phone=row.phone,
        address=None if address.is_empty else address,
        status=UserStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
