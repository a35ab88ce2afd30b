"""User creation and query workflows.

Creation runs: email check -> duplicate check -> build -> save -> publish.
The duplicate check and the save are not atomic; the store's unique
email constraint turns the losing side of a concurrent registration
into InfrastructureFailure.  Publishing happens after the save has been
committed, so a PublishFailure leaves a saved user whose event was never
delivered.  That window is deliberate and logged at ERROR with the
user id so the event can be re-emitted by hand.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from user_service.core.errors import (
    DuplicateUser,
    InfrastructureFailure,
    InvalidEmailFormat,
    PublishFailure,
)
from user_service.core.metrics import USER_CREATE_FAILURES, USERS_CREATED
from user_service.models.address import Address
from user_service.models.email import Email
from user_service.models.events import UserCreatedEvent
from user_service.models.user import User
from user_service.repos.user_repo import UserRepo
from user_service.services.event_channel import EventChannel

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CreateUserCommand:
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None

    def address(self) -> Address | None:
        address = Address(
            street=self.street,
            city=self.city,
            state=self.state,
            zip_code=self.zip_code,
            country=self.country,
        )
        return None if address.is_empty else address


class UserCreationService:
    def __init__(self, repo: UserRepo, channel: EventChannel) -> None:
        self._repo = repo
        self._channel = channel

    async def create_user(self, command: CreateUserCommand) -> User:
        logger.info("Creating user email=%s", command.email)

        try:
            email = Email(command.email)
        except InvalidEmailFormat:
            logger.warning("Rejected invalid email=%r", command.email)
            USER_CREATE_FAILURES.labels(reason="invalid_email").inc()
            raise

        if await self._repo.exists_by_email(email):
            logger.warning("Rejected duplicate email=%s", email)
            USER_CREATE_FAILURES.labels(reason="duplicate").inc()
            raise DuplicateUser(email.value)

        user = User.new(
            first_name=command.first_name,
            last_name=command.last_name,
            email=email,
            phone=command.phone,
            address=command.address(),
        )

        try:
            saved = await self._repo.save(user)
        except InfrastructureFailure:
            USER_CREATE_FAILURES.labels(reason="infrastructure").inc()
            raise

        USERS_CREATED.inc()

        event = UserCreatedEvent.from_user(saved)
        try:
            await self._channel.publish(event)
        except PublishFailure:
            USER_CREATE_FAILURES.labels(reason="publish").inc()
            logger.error(
                "User saved but UserCreatedEvent not published user_id=%s",
                saved.id,
                extra={"user_id": str(saved.id)},
            )
            raise

        logger.info(
            "Created user id=%s email=%s",
            saved.id,
            saved.email,
            extra={"user_id": str(saved.id)},
        )
        return saved


class UserQueryService:
    def __init__(self, repo: UserRepo) -> None:
        self._repo = repo

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        logger.info("Fetching user by id=%s", user_id)
        return await self._repo.get_by_id(user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        logger.info("Fetching user by email=%s", email)
        return await self._repo.get_by_email(email)

    async def get_all_users(self) -> list[User]:
        logger.info("Fetching all users")
        return await self._repo.list_all()
