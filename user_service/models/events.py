"""Domain events emitted by the user core.

The payload shape is a contract with consumers in other services: they
read exactly ``userId``, ``email``, ``fullName`` and ``occurredAt`` and
nothing else, so ``to_payload`` must not grow extra keys.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from user_service.models.user import User, utcnow


@dataclass(frozen=True, slots=True)
class UserCreatedEvent:
    user_id: UUID
    email: str
    full_name: str
    occurred_at: datetime

    @staticmethod
    def from_user(user: User) -> UserCreatedEvent:
        # occurred_at is the publication instant, not the user's created_at
        return UserCreatedEvent(
            user_id=user.id,
            email=user.email.value,
            full_name=user.full_name,
            occurred_at=utcnow(),
        )

    def to_payload(self) -> dict[str, str]:
        return {
            "userId": str(self.user_id),
            "email": self.email,
            "fullName": self.full_name,
            "occurredAt": self.occurred_at.isoformat(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_payload())
