"""User endpoints: POST /users, GET /users, GET /users/{id}, GET /users/email/{email}.

Request/response bodies use camelCase keys.  Core errors are translated
to HTTP here and nowhere else:

  InvalidEmailFormat, blank names -> 422
  DuplicateUser                   -> 409
  not found                       -> 404
  InfrastructureFailure           -> 503
  PublishFailure                  -> 503
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from user_service.api.dependencies import get_creation_service, get_query_service
from user_service.core.errors import (
    DuplicateUser,
    InfrastructureFailure,
    InvalidEmailFormat,
    PublishFailure,
    UserServiceError,
)
from user_service.models.user import User
from user_service.services.users_service import (
    CreateUserCommand,
    UserCreationService,
    UserQueryService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


# --- Request / Response schemas -------------------------------------------


class UserIn(BaseModel):
    # Limits match the users table columns so overlong input is a 422,
    # not a database error.
    firstName: str = Field(max_length=100)
    lastName: str = Field(max_length=100)
    email: str = Field(max_length=320)
    phone: str | None = Field(default=None, max_length=32)
    street: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    zipCode: str | None = Field(default=None, max_length=20)
    country: str | None = Field(default=None, max_length=100)


class AddressOut(BaseModel):
    street: str | None
    city: str | None
    state: str | None
    zipCode: str | None
    country: str | None
    fullAddress: str


class UserOut(BaseModel):
    id: str
    firstName: str
    lastName: str
    fullName: str
    email: str
    phone: str | None
    status: str
    address: AddressOut | None
    createdAt: datetime
    updatedAt: datetime


def _to_out(user: User) -> UserOut:
    address = None
    if user.address is not None:
        address = AddressOut(
            street=user.address.street,
            city=user.address.city,
            state=user.address.state,
            zipCode=user.address.zip_code,
            country=user.address.country,
            fullAddress=user.address.full_address,
        )
    return UserOut(
        id=str(user.id),
        firstName=user.first_name,
        lastName=user.last_name,
        fullName=user.full_name,
        email=user.email.value,
        phone=user.phone,
        status=user.status.value,
        address=address,
        createdAt=user.created_at,
        updatedAt=user.updated_at,
    )


def _error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"code": code, "message": message},
    )


def _not_found(key: str) -> HTTPException:
    return _error(
        status.HTTP_404_NOT_FOUND,
        "RESOURCE_NOT_FOUND",
        f"User not found with id: {key}",
    )


def _server_error(exc: UserServiceError) -> HTTPException:
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, exc.code, exc.message)


# --- POST /users -----------------------------------------------------------


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserIn,
    service: Annotated[UserCreationService, Depends(get_creation_service)],
) -> UserOut:
    first_name = payload.firstName.strip()
    last_name = payload.lastName.strip()

    if not first_name:
        raise _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "VALIDATION_ERROR",
            "First name is required",
        )
    if not last_name:
        raise _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "VALIDATION_ERROR",
            "Last name is required",
        )

    command = CreateUserCommand(
        first_name=first_name,
        last_name=last_name,
        email=payload.email,
        phone=payload.phone,
        street=payload.street,
        city=payload.city,
        state=payload.state,
        zip_code=payload.zipCode,
        country=payload.country,
    )

    try:
        user = await service.create_user(command)
    except InvalidEmailFormat as e:
        raise _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY, e.code, "Invalid email format"
        ) from None
    except DuplicateUser as e:
        raise _error(status.HTTP_409_CONFLICT, e.code, e.message) from None
    except (InfrastructureFailure, PublishFailure) as e:
        logger.error("User creation failed code=%s: %s", e.code, e.message)
        raise _server_error(e) from None

    return _to_out(user)


# --- GET /users ------------------------------------------------------------


@router.get("", response_model=list[UserOut])
async def list_users(
    service: Annotated[UserQueryService, Depends(get_query_service)],
) -> list[UserOut]:
    try:
        users = await service.get_all_users()
    except InfrastructureFailure as e:
        logger.error("Listing users failed: %s", e.message)
        raise _server_error(e) from None
    return [_to_out(u) for u in users]


# --- GET /users/email/{email} ----------------------------------------------


@router.get("/email/{email}", response_model=UserOut)
async def get_user_by_email(
    email: str,
    service: Annotated[UserQueryService, Depends(get_query_service)],
) -> UserOut:
    try:
        user = await service.get_user_by_email(email)
    except InfrastructureFailure as e:
        logger.error("Lookup by email failed: %s", e.message)
        raise _server_error(e) from None
    if user is None:
        raise _not_found(email)
    return _to_out(user)


# --- GET /users/{user_id} --------------------------------------------------


@router.get("/{user_id}", response_model=UserOut)
async def get_user_by_id(
    user_id: UUID,
    service: Annotated[UserQueryService, Depends(get_query_service)],
) -> UserOut:
    try:
        user = await service.get_user_by_id(user_id)
    except InfrastructureFailure as e:
        logger.error("Lookup by id failed: %s", e.message)
        raise _server_error(e) from None
    if user is None:
        raise _not_found(str(user_id))
    return _to_out(user)
