"""Composition root: wires the workflows to a store and an event channel.

The event channel is a process-wide singleton built once at import time
(Redis when REDIS_URL is set, in-memory otherwise).  The store is
request-scoped when PostgreSQL is configured, since each request needs
its own AsyncSession; without DATABASE_URL every request shares the
module-level in-memory repo.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends

from user_service.db.engine import async_session_factory
from user_service.repos.pg_user_repo import PgUserRepo
from user_service.repos.user_repo import InMemoryUserRepo, UserRepo
from user_service.services.event_channel import event_channel
from user_service.services.users_service import UserCreationService, UserQueryService

user_repo = InMemoryUserRepo()


async def get_user_repo() -> AsyncGenerator[UserRepo, None]:
    if async_session_factory is None:
        yield user_repo
        return

    async with async_session_factory() as session:
        yield PgUserRepo(session)


def get_creation_service(
    repo: Annotated[UserRepo, Depends(get_user_repo)],
) -> UserCreationService:
    return UserCreationService(repo, event_channel)


def get_query_service(
    repo: Annotated[UserRepo, Depends(get_user_repo)],
) -> UserQueryService:
    return UserQueryService(repo)
