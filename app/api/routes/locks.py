from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request

from app.core.auth import verify_api_key
from app.core.errors import NotFoundAppError, ValidationAppError
from app.core.rate_limit import (
    enforce_admin_rate_limit,
    enforce_api_rate_limit,
    enforce_burst_rate_limit,
    enforce_user_rate_limit,
)
from app.repositories import locks as locks_repo
from app.repositories import users as users_repo
from app.schemas.common import MAX_ROW_ID, SuccessResponse
from app.schemas.locks import (
    GenerateLocksRequest,
    GenerateLocksResponse,
    Lock,
    LockStats,
    LockWithMedia,
    SealResponse,
    UpdateAlbumTitleRequest,
    UpdateLockNameRequest,
    UpdateNotificationsRequest,
    UpdateOwnerRequest,
)
from app.services.hashid_codec import HashIdCodec

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/locks", tags=["Locks"], dependencies=[Depends(verify_api_key)])

LockId = Annotated[int, Path(ge=1, le=MAX_ROW_ID, description="Lock id")]
UserId = Annotated[int, Path(ge=1, le=MAX_ROW_ID, description="User id")]


def get_codec(request: Request) -> HashIdCodec:
    return request.app.state.codec


def _lock_not_found(lock_id: int) -> NotFoundAppError:
    return NotFoundAppError(code="lock_not_found", message="Lock not found", details={"resource": f"lock:{lock_id}"})


@router.post(
    "/generate/{count}",
    response_model=GenerateLocksResponse,
    dependencies=[Depends(enforce_admin_rate_limit), Depends(enforce_burst_rate_limit)],
)
async def generate_locks(
    count: Annotated[int, Path(ge=1, le=1000, description="Number of locks to create")],
    codec: Annotated[HashIdCodec, Depends(get_codec)],
    payload: GenerateLocksRequest | None = None,
) -> GenerateLocksResponse:
    """Create blank locks in bulk and return their ids and album tokens."""

    prefix = payload.prefix if payload else None
    lock_ids = await locks_repo.generate_locks(count, prefix)
    logger.info("locks.generated", extra={"count": len(lock_ids), "prefix": prefix})
    return GenerateLocksResponse(
        created=len(lock_ids),
        lock_ids=lock_ids,
        hash_ids=codec.encode_many(lock_ids),
        start_id=lock_ids[0] if lock_ids else None,
        end_id=lock_ids[-1] if lock_ids else None,
        message=f"Successfully created {len(lock_ids)} locks",
    )


@router.get("/stats", response_model=LockStats)
async def lock_stats() -> LockStats:
    return LockStats(**await locks_repo.get_lock_stats())


@router.get("", response_model=list[Lock], dependencies=[Depends(enforce_api_rate_limit)])
async def list_locks(
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> list[Lock]:
    rows = await locks_repo.list_locks(page=page, limit=limit)
    return [Lock.model_validate(row) for row in rows]


@router.get(
    "/user/{user_id}",
    response_model=list[LockWithMedia],
    dependencies=[Depends(enforce_user_rate_limit)],
)
async def user_locks(user_id: UserId) -> list[LockWithMedia]:
    """All locks owned by a user, newest first, each with its ordered media."""

    rows = await locks_repo.list_locks_for_user(user_id)
    return [LockWithMedia.model_validate(row) for row in rows]


@router.get("/{lock_id}", response_model=LockWithMedia, dependencies=[Depends(enforce_api_rate_limit)])
async def get_lock(lock_id: LockId) -> LockWithMedia:
    row = await locks_repo.get_lock_with_media(lock_id)
    if row is None:
        raise _lock_not_found(lock_id)
    return LockWithMedia.model_validate(row)


@router.patch(
    "/{lock_id}/notifications",
    response_model=SuccessResponse,
    dependencies=[Depends(enforce_api_rate_limit)],
)
async def update_notifications(lock_id: LockId, payload: UpdateNotificationsRequest) -> SuccessResponse:
    if not await locks_repo.update_notifications(lock_id, payload.notified_when_scanned):
        raise _lock_not_found(lock_id)
    return SuccessResponse()


@router.patch("/{lock_id}/seal", response_model=SealResponse, dependencies=[Depends(enforce_api_rate_limit)])
async def seal_lock(lock_id: LockId) -> SealResponse:
    row = await locks_repo.seal_lock(lock_id)
    if row is None:
        raise _lock_not_found(lock_id)
    return SealResponse(seal_date=row["seal_date"])


@router.patch("/{lock_id}/unseal", response_model=SuccessResponse, dependencies=[Depends(enforce_api_rate_limit)])
async def unseal_lock(lock_id: LockId) -> SuccessResponse:
    if not await locks_repo.unseal_lock(lock_id):
        raise _lock_not_found(lock_id)
    return SuccessResponse()


@router.patch("/{lock_id}/name", response_model=SuccessResponse, dependencies=[Depends(enforce_api_rate_limit)])
async def update_lock_name(lock_id: LockId, payload: UpdateLockNameRequest) -> SuccessResponse:
    if not await locks_repo.update_lock_name(lock_id, payload.lock_name):
        raise _lock_not_found(lock_id)
    return SuccessResponse()


@router.patch(
    "/{lock_id}/album-title",
    response_model=SuccessResponse,
    dependencies=[Depends(enforce_api_rate_limit)],
)
async def update_album_title(lock_id: LockId, payload: UpdateAlbumTitleRequest) -> SuccessResponse:
    if not await locks_repo.update_album_title(lock_id, payload.album_title):
        raise _lock_not_found(lock_id)
    return SuccessResponse()


@router.patch("/{lock_id}/owner", response_model=SuccessResponse, dependencies=[Depends(enforce_api_rate_limit)])
async def update_lock_owner(lock_id: LockId, payload: UpdateOwnerRequest) -> SuccessResponse:
    """Assign a lock to a user, or detach it with ``{"userId": null}``."""

    if payload.user_id is not None and await users_repo.get_user_by_id(payload.user_id) is None:
        raise ValidationAppError(
            code="unknown_user",
            message="User does not exist",
            details={"field": "userId"},
        )
    if not await locks_repo.update_lock_owner(lock_id, payload.user_id):
        raise _lock_not_found(lock_id)
    return SuccessResponse()


@router.delete("/{lock_id}", response_model=SuccessResponse, dependencies=[Depends(enforce_admin_rate_limit)])
async def delete_lock(lock_id: LockId) -> SuccessResponse:
    if not await locks_repo.delete_lock(lock_id):
        raise _lock_not_found(lock_id)
    logger.info("locks.deleted", extra={"lock_id": lock_id})
    return SuccessResponse(message="Lock deleted")
