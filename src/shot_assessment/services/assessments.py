"""Assessment orchestration over per-room session memory."""

import asyncio
import base64
import binascii
import logging
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Protocol

from shot_assessment.domain.assessments import (
    AssessmentRecord,
    AssessmentRequest,
    AssessmentResponse,
    AssessmentSession,
    SessionKey,
)
from shot_assessment.domain.errors import (
    InvalidRequestError,
    UpstreamError,
    UpstreamTimeoutError,
)
from shot_assessment.services.angles import (
    DEFAULT_RESET_THRESHOLD,
    compare_orientations,
    should_reset,
)
from shot_assessment.services.constraints import extract_constraints
from shot_assessment.services.prompts import (
    DEFAULT_WORD_LIMIT,
    build_system_prompt,
    build_user_prompt,
)
from shot_assessment.services.scoring import AcceptancePolicy, ProgressivePolicy
from shot_assessment.services.store import SessionStore
from shot_assessment.services.vision import VisionService

_logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = (
    ("image_base64", "imageBase64"),
    ("room_type", "roomType"),
    ("shoot_id", "shootId"),
)
_DEFAULT_IMPROVEMENTS = ["Adjust based on feedback"]


class Assessor(Protocol):
    """Operations exposed to transports."""

    async def assess(self, request: AssessmentRequest) -> AssessmentResponse:
        """Assess one photo and return structured feedback."""

    async def get_session(
        self, shoot_id: str, room_type: str
    ) -> AssessmentSession | None:
        """Return a session snapshot, if present."""

    async def clear_shoot(self, shoot_id: str) -> int:
        """Forget every room of a shoot and return how many were removed."""


@dataclass
class KeyedLocks:
    """Per-key asyncio locks that are dropped once nobody holds or waits."""

    _locks: dict[Hashable, asyncio.Lock] = field(default_factory=dict)
    _users: dict[Hashable, int] = field(default_factory=dict)

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


@dataclass
class AssessmentService(Assessor):
    """Runs one assessment attempt against a session's memory."""

    store: SessionStore
    vision_service: VisionService
    policy: AcceptancePolicy = field(default_factory=ProgressivePolicy)
    timeout_seconds: float = 30.0
    deadline_seconds: float | None = None
    angle_reset_threshold: float = DEFAULT_RESET_THRESHOLD
    word_limit: int = DEFAULT_WORD_LIMIT
    locks: KeyedLocks = field(default_factory=KeyedLocks)

    async def assess(self, request: AssessmentRequest) -> AssessmentResponse:
        """Assess a photo, committing session changes only on success.

        ``deadline_seconds`` bounds the lock wait and the vision call together;
        a call that runs out of time leaves its session untouched.
        """
        image_bytes = _validate(request)
        key = SessionKey(shoot_id=request.shoot_id, room_type=request.room_type)
        _logger.info("Assessment request", extra={"session_key": str(key)})

        try:
            async with asyncio.timeout(self.deadline_seconds):
                return await self._assess_locked(key, request, image_bytes)
        except TimeoutError as exc:
            _logger.warning(
                "Assessment deadline exceeded", extra={"session_key": str(key)}
            )
            raise UpstreamTimeoutError(
                f"Assessment did not finish within {self.deadline_seconds:g}s"
            ) from exc

    async def _assess_locked(
        self, key: SessionKey, request: AssessmentRequest, image_bytes: bytes
    ) -> AssessmentResponse:
        async with self.locks.hold(key):
            session = self.store.get_or_create(key)
            dissimilarity = compare_orientations(
                session.last_orientation, request.current_angle
            )
            angle_reset = should_reset(dissimilarity, self.angle_reset_threshold)
            if angle_reset:
                _logger.info(
                    "Angle changed, resetting attempts",
                    extra={"session_key": str(key), "dissimilarity": dissimilarity},
                )
                session.reset_angle()
            session.attempts += 1
            attempt_number = session.attempts

            system_prompt = build_system_prompt(
                room_type=session.room_type,
                attempt_number=attempt_number,
                angle_reset=angle_reset,
                recent_feedback=session.recent_feedback(),
                constraints=session.constraints,
                word_limit=self.word_limit,
            )
            feedback = await self._describe(
                key,
                image_bytes,
                system_prompt=system_prompt,
                user_prompt=build_user_prompt(attempt_number),
            )

            session.learn_constraints(extract_constraints(feedback))
            result = self.policy.score(attempt_number, feedback)
            if result.acceptable:
                session.accepted = True
            session.record_attempt(
                AssessmentRecord(
                    attempt_number=attempt_number,
                    feedback=feedback,
                    orientation=request.current_angle,
                    angle_reset=angle_reset,
                )
            )
            self.store.put(session)

        _logger.info(
            "Assessment complete: %s...",
            feedback[:50],
            extra={"session_key": str(key), "attempt": attempt_number},
        )
        return AssessmentResponse(
            feedback=feedback,
            attempt_number=attempt_number,
            angle_reset=angle_reset,
            score=result.value,
            is_acceptable=result.acceptable,
            constraints=list(session.constraints),
            improvements=[] if result.acceptable else list(_DEFAULT_IMPROVEMENTS),
        )

    async def get_session(
        self, shoot_id: str, room_type: str
    ) -> AssessmentSession | None:
        """Return a session snapshot, if present."""
        return self.store.get(SessionKey(shoot_id=shoot_id, room_type=room_type))

    async def clear_shoot(self, shoot_id: str) -> int:
        """Delete all room sessions of a shoot."""
        removed = self.store.delete_all(shoot_id)
        _logger.info(
            "Cleared shoot history", extra={"shoot_id": shoot_id, "removed": removed}
        )
        return removed

    async def _describe(
        self,
        key: SessionKey,
        image_bytes: bytes,
        *,
        system_prompt: str,
        user_prompt: str,
    ) -> str:
        try:
            return await asyncio.wait_for(
                self.vision_service.describe(
                    image_bytes, system_prompt=system_prompt, user_prompt=user_prompt
                ),
                timeout=self.timeout_seconds,
            )
        except TimeoutError as exc:
            _logger.warning("Vision call timed out", extra={"session_key": str(key)})
            raise UpstreamTimeoutError(
                f"No response from vision service within {self.timeout_seconds:g}s"
            ) from exc
        except Exception as exc:
            _logger.exception("Vision call failed", extra={"session_key": str(key)})
            raise UpstreamError(f"{type(exc).__name__}: {exc}") from exc


def _validate(request: AssessmentRequest) -> bytes:
    """Check required fields and return the decoded image."""
    missing = [
        alias for attr, alias in _REQUIRED_FIELDS if not getattr(request, attr)
    ]
    if missing:
        raise InvalidRequestError(
            "imageBase64, roomType, and shootId are required", fields=missing
        )
    try:
        payload = "".join(_strip_data_url(request.image_base64).split())
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidRequestError(
            "imageBase64 is not valid base64", fields=["imageBase64"]
        ) from exc


def _strip_data_url(value: str) -> str:
    if value.startswith("data:") and "," in value:
        return value.split(",", 1)[1]
    return value
