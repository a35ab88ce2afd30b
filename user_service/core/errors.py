"""Error taxonomy for the user core.

Every error carries a stable ``code`` that the REST layer copies into
its response body, so clients can branch on it without parsing text.

  InvalidEmailFormat     caller's fault; resubmit with a valid address
  DuplicateUser          business rule; choose another email
  InfrastructureFailure  store unavailable or constraint violated; may be transient
  PublishFailure         event channel unavailable; transient

The core never recovers from any of these locally.
"""

from __future__ import annotations


class UserServiceError(Exception):
    code = "USER_SERVICE_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidEmailFormat(UserServiceError, ValueError):
    code = "INVALID_EMAIL"

    def __init__(self, raw: str) -> None:
        super().__init__(f"Invalid email format: {raw!r}")
        self.raw = raw


class DuplicateUser(UserServiceError):
    code = "USER_ALREADY_EXISTS"

    def __init__(self, email: str) -> None:
        super().__init__(f"User with email {email} already exists")
        self.email = email


class InfrastructureFailure(UserServiceError):
    code = "INFRASTRUCTURE_FAILURE"


class PublishFailure(UserServiceError):
    code = "PUBLISH_FAILURE"
