from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from app.core.auth import verify_api_key
from app.core.errors import NotFoundAppError
from app.core.logging import hash_identifier
from app.core.rate_limit import enforce_admin_rate_limit
from app.repositories import users as users_repo
from app.schemas.common import MAX_ROW_ID, SuccessResponse
from app.schemas.users import AuthProvider, CreateUserRequest, DeleteUserResponse, DetachedLock, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/data/users", tags=["Users"], dependencies=[Depends(verify_api_key)])

UserId = Annotated[int, Path(ge=1, le=MAX_ROW_ID, description="User id")]


def _user_not_found() -> NotFoundAppError:
    return NotFoundAppError(code="user_not_found", message="User not found")


@router.post(
    "",
    response_model=User,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_admin_rate_limit)],
)
async def create_user(payload: CreateUserRequest) -> User:
    row = await users_repo.create_user(**payload.model_dump())
    logger.info("users.created", extra={"user_id": row["id"], "auth_provider": payload.auth_provider})
    return User.model_validate(row)


@router.get("/stats")
async def user_stats() -> dict[str, int]:
    return await users_repo.get_user_stats()


@router.get("/by-identifier/{identifier}", response_model=User)
async def get_user_by_identifier(identifier: Annotated[str, Path(min_length=1, max_length=255)]) -> User:
    """Look a user up by email address or E.164 phone number."""

    row = await users_repo.get_user_by_identifier(identifier)
    if row is None:
        logger.info("users.lookup_missed", extra={"identifier_hash": hash_identifier(identifier)})
        raise _user_not_found()
    return User.model_validate(row)


@router.get("/{user_id}", response_model=User)
async def get_user(user_id: UserId) -> User:
    row = await users_repo.get_user_by_id(user_id)
    if row is None:
        raise _user_not_found()
    return User.model_validate(row)


@router.put("/{user_id}/login", response_model=SuccessResponse)
async def update_login_time(user_id: UserId) -> SuccessResponse:
    if not await users_repo.update_login_time(user_id):
        raise _user_not_found()
    return SuccessResponse(message="Login timestamp updated")


@router.delete("/provider/{provider}/{provider_id}", response_model=DeleteUserResponse)
async def delete_user_by_provider(
    provider: AuthProvider,
    provider_id: Annotated[str, Path(min_length=1, max_length=255)],
) -> DeleteUserResponse:
    """Delete a user; their locks stay publicly reachable but become unowned."""

    result = await users_repo.delete_user_by_provider(provider, provider_id)
    if result is None:
        raise _user_not_found()

    locks = [DetachedLock.model_validate(row) for row in result["locks"]]
    logger.info(
        "users.deleted",
        extra={"user_id": result["user_id"], "locks_cleared": len(locks)},
    )
    return DeleteUserResponse(
        message="User deleted; their locks remain publicly accessible without an owner",
        user_id=result["user_id"],
        locks_cleared=len(locks),
        locks=locks,
    )
