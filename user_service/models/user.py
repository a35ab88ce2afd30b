from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from user_service.models.address import Address
from user_service.models.email import Email


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    first_name: str
    last_name: str
    email: Email
    phone: str | None
    address: Address | None
    status: UserStatus
    created_at: datetime
    updated_at: datetime

    @staticmethod
    def new(
        *,
        first_name: str,
        last_name: str,
        email: Email,
        phone: str | None = None,
        address: Address | None = None,
    ) -> User:
        # The only way a brand-new user comes into existence: fresh id,
        # ACTIVE, and both timestamps taken from the same instant.
        now = utcnow()
        return User(
            id=uuid4(),
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
            address=address,
            status=UserStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_active(self) -> bool:
        return self.status is UserStatus.ACTIVE

    def activate(self) -> User:
        return self._transition(UserStatus.ACTIVE)

    def deactivate(self) -> User:
        return self._transition(UserStatus.INACTIVE)

    def _transition(self, status: UserStatus) -> User:
        # updated_at never precedes created_at, even under clock skew
        return replace(self, status=status, updated_at=max(utcnow(), self.created_at))
