from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.core.client_info import ClientInfo, get_client_info
from app.core.config import settings_for
from app.core.errors import AccessDeniedAppError, AppError, NotFoundAppError, RateLimitedAppError
from app.schemas.locks import AlbumResponse
from app.services.admission import AccessDecision, AccessReason, AlbumAdmissionPipeline
from app.services.album_service import build_album_response

router = APIRouter(prefix="/api/album", tags=["Album"])


def get_admission_pipeline(request: Request) -> AlbumAdmissionPipeline:
    return request.app.state.admission_pipeline


def rejection_error(decision: AccessDecision) -> AppError:
    """Map a rejected decision to its public error.

    Malformed and unassigned tokens share one generic 404 body.
    """
    if decision.reason is AccessReason.BOT_DETECTED:
        return AccessDeniedAppError(code="access_denied", message="Access denied")
    if decision.reason is AccessReason.RATE_LIMITED:
        retry_after = decision.retry_after_seconds
        return RateLimitedAppError(
            code="rate_limited",
            message="Too many requests",
            details={"retry_after": retry_after} if retry_after is not None else None,
        )
    return NotFoundAppError(code="not_found", message="Album not found")


@router.get("/{hash_id}", response_model=AlbumResponse)
async def get_album(
    request: Request,
    hash_id: str,
    client: Annotated[ClientInfo, Depends(get_client_info)],
    pipeline: Annotated[AlbumAdmissionPipeline, Depends(get_admission_pipeline)],
) -> AlbumResponse:
    """Public album behind a lock's QR code.

    Unauthenticated; guarded by the admission pipeline (token decode, bot
    heuristic, per-IP rate limit). Each successful read bumps the lock's
    scan counter in the background.
    """
    result = await pipeline.load_album(
        hash_id,
        caller_ip=client.ip,
        user_agent=client.user_agent,
        referer=client.referer,
        headers=client.headers,
    )
    if not result.decision.admit or result.record is None:
        raise rejection_error(result.decision)
    return build_album_response(result.record, settings_for(request).app.media_base_url)
