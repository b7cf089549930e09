from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Request, status

from app.core.auth import verify_api_key
from app.core.rate_limit import enforce_api_rate_limit
from app.schemas.common import MAX_ROW_ID, SuccessResponse
from app.schemas.locks import MediaObject
from app.schemas.media import CreateMediaRequest, ReorderMediaRequest, UpdateDisplayOrderRequest
from app.services.media_service import MediaService

router = APIRouter(
    prefix="/api",
    tags=["Media"],
    dependencies=[Depends(verify_api_key), Depends(enforce_api_rate_limit)],
)

LockId = Annotated[int, Path(ge=1, le=MAX_ROW_ID, description="Lock id")]
MediaId = Annotated[int, Path(ge=1, le=MAX_ROW_ID, description="Media object id")]


def get_media_service(request: Request) -> MediaService:
    return request.app.state.media_service


Service = Annotated[MediaService, Depends(get_media_service)]


@router.get("/locks/{lock_id}/media", response_model=list[MediaObject])
async def list_lock_media(lock_id: LockId, service: Service) -> list[MediaObject]:
    return await service.list_media(lock_id)


@router.post("/locks/{lock_id}/media", response_model=MediaObject, status_code=status.HTTP_201_CREATED)
async def add_lock_media(lock_id: LockId, payload: CreateMediaRequest, service: Service) -> MediaObject:
    """Register an uploaded image or video on a lock.

    Appended after the current last item unless ``displayOrder`` is given.
    Fails with 400 ``media_limit_reached`` once the owner's quota is used.
    """
    return await service.add_media(lock_id, payload)


@router.put("/locks/{lock_id}/media/order", response_model=list[MediaObject])
async def reorder_lock_media(lock_id: LockId, payload: ReorderMediaRequest, service: Service) -> list[MediaObject]:
    return await service.reorder(lock_id, payload.media_ids)


@router.patch("/media/{media_id}/display-order", response_model=MediaObject)
async def move_media(media_id: MediaId, payload: UpdateDisplayOrderRequest, service: Service) -> MediaObject:
    return await service.move(media_id, payload.display_order)


@router.patch("/media/{media_id}/main", response_model=MediaObject)
async def set_main_picture(media_id: MediaId, service: Service) -> MediaObject:
    return await service.set_main_picture(media_id)


@router.delete("/media/{media_id}", response_model=SuccessResponse)
async def delete_media(media_id: MediaId, service: Service) -> SuccessResponse:
    await service.delete(media_id)
    return SuccessResponse(message="Media object deleted")
