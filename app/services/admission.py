"""Admission pipeline for the public album endpoint.

Order of checks (cheap first, storage last):

1. decode the path token; undecodable → ``invalid-id``
2. bot heuristic; bot → ``bot-detected``
3. album rate limit per caller IP; exceeded → ``rate-limited``
4. load the lock and its media; absent → ``not-found``
5. schedule the scan counter increment in the background

Expected outcomes are returned as :class:`AccessDecision` values, never
raised. Externally ``invalid-id`` and ``not-found`` collapse into the same
404, so callers cannot tell a malformed token from an unassigned one. The
specific reason is logged for operators.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Protocol

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.core.config import Settings, settings
from app.core.logging import hash_identifier
from app.core.rate_limit import RouteClass, check_route_class
from app.schemas.locks import LockWithMedia
from app.services.background import BackgroundTaskRunner
from app.services.bot_detection import BotDetector, BotVerdict
from app.services.hashid_codec import HashIdCodec

logger = logging.getLogger(__name__)


class AccessReason(str, Enum):
    OK = "ok"
    INVALID_ID = "invalid-id"
    BOT_DETECTED = "bot-detected"
    RATE_LIMITED = "rate-limited"
    NOT_FOUND = "not-found"


_STATUS_BY_REASON = {
    AccessReason.OK: 200,
    AccessReason.INVALID_ID: 404,
    AccessReason.NOT_FOUND: 404,
    AccessReason.BOT_DETECTED: 403,
    AccessReason.RATE_LIMITED: 429,
}


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of the admission checks for one album request.

    Attributes:
        admit: Whether the request may proceed.
        reason: Why it was admitted or rejected.
        record_id: Decoded lock id, when the token resolved.
        bot_score: Analytics score of the request (not used for the decision).
        rate_limit: Limiter result, when the rate limit step ran.
    """

    admit: bool
    reason: AccessReason
    record_id: int | None = None
    bot_score: float | None = None
    rate_limit: RateLimitResult | None = None

    @property
    def status_code(self) -> int:
        return _STATUS_BY_REASON[self.reason]

    @property
    def retry_after_seconds(self) -> int | None:
        return self.rate_limit.retry_after_seconds if self.rate_limit else None

    def rejected(self, reason: AccessReason) -> "AccessDecision":
        return AccessDecision(
            admit=False,
            reason=reason,
            record_id=self.record_id,
            bot_score=self.bot_score,
            rate_limit=self.rate_limit,
        )


@dataclass(frozen=True)
class AlbumLoadResult:
    decision: AccessDecision
    record: LockWithMedia | None = None


class RecordAccessLayer(Protocol):
    """Storage collaborator used once a request has been admitted."""

    async def fetch_record_with_children(self, record_id: int) -> LockWithMedia | None:
        ...

    async def increment_view_counter(self, record_id: int) -> None:
        ...


class AlbumAdmissionPipeline:
    """Gate in front of the unauthenticated album read."""

    def __init__(
        self,
        *,
        codec: HashIdCodec,
        detector: BotDetector,
        limiter: AbstractRateLimiter,
        records: RecordAccessLayer,
        background: BackgroundTaskRunner,
        app_settings: Settings | None = None,
    ) -> None:
        self.codec = codec
        self.detector = detector
        self.limiter = limiter
        self.records = records
        self.background = background
        self.settings = app_settings or settings

    def _bot_verdict(self, user_agent: str, referer: str | None, headers: Mapping[str, str]) -> BotVerdict | None:
        if not self.settings.bot.enabled:
            return None
        return self.detector.album_verdict(
            user_agent,
            referer,
            headers,
            strict_referer=self.settings.bot.strict_referer,
        )

    def evaluate_album_access(
        self,
        token: str,
        caller_ip: str,
        user_agent: str,
        referer: str | None,
        headers: Mapping[str, str],
    ) -> AccessDecision:
        """Run the decode, bot and rate limit checks without touching storage."""

        record_id = self.codec.decode(token)
        score = self.detector.score(user_agent, referer, headers)
        log_extra = {
            "hash_id": token,
            "client_ip_hash": hash_identifier(caller_ip),
            "bot_score": score,
        }

        if record_id is None:
            logger.info("album.invalid_id", extra=log_extra)
            return AccessDecision(admit=False, reason=AccessReason.INVALID_ID, bot_score=score)

        verdict = self._bot_verdict(user_agent, referer, headers)
        if verdict is not None and verdict.is_bot:
            logger.warning(
                "album.bot_detected",
                extra={
                    **log_extra,
                    "lock_id": record_id,
                    "bot_reason": verdict.reason,
                    "user_agent": user_agent[:256],
                    "referer": referer,
                },
            )
            return AccessDecision(
                admit=False,
                reason=AccessReason.BOT_DETECTED,
                record_id=record_id,
                bot_score=score,
            )

        result: RateLimitResult | None = None
        if self.settings.rate_limit.enabled:
            result = check_route_class(self.limiter, RouteClass.ALBUM, caller_ip, self.settings.rate_limit)
            if not result.allowed:
                logger.warning(
                    "album.rate_limited",
                    extra={**log_extra, "lock_id": record_id, "retry_after_s": result.retry_after_seconds},
                )
                return AccessDecision(
                    admit=False,
                    reason=AccessReason.RATE_LIMITED,
                    record_id=record_id,
                    bot_score=score,
                    rate_limit=result,
                )

        logger.info("album.admitted", extra={**log_extra, "lock_id": record_id})
        return AccessDecision(
            admit=True,
            reason=AccessReason.OK,
            record_id=record_id,
            bot_score=score,
            rate_limit=result,
        )

    async def load_album(
        self,
        token: str,
        caller_ip: str,
        user_agent: str,
        referer: str | None,
        headers: Mapping[str, str],
    ) -> AlbumLoadResult:
        """Evaluate access, then fetch the lock and schedule its scan count.

        Raises:
            DatabaseAppError: If the record access layer fails.
        """
        decision = self.evaluate_album_access(token, caller_ip, user_agent, referer, headers)
        if not decision.admit or decision.record_id is None:
            return AlbumLoadResult(decision=decision)

        record_id = decision.record_id
        record = await self.records.fetch_record_with_children(record_id)
        if record is None:
            logger.info("album.not_found", extra={"hash_id": token, "lock_id": record_id})
            return AlbumLoadResult(decision=decision.rejected(AccessReason.NOT_FOUND))

        self.background.submit(
            lambda: self.records.increment_view_counter(record_id),
            name=f"scan-count:{record_id}",
        )
        return AlbumLoadResult(decision=decision, record=record)
