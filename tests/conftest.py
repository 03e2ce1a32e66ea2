"""Shared test fixtures."""

import asyncio
import base64
from dataclasses import dataclass, field

import pytest

from shot_assessment.config import Settings
from shot_assessment.containers import AppContainer
from shot_assessment.domain.assessments import AssessmentRequest, Orientation
from shot_assessment.services.assessments import AssessmentService
from shot_assessment.services.scoring import ProgressivePolicy
from shot_assessment.services.store import InMemorySessionStore
from shot_assessment.services.vision import VisionClient, VisionService

JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg-body"
IMAGE_BASE64 = base64.b64encode(JPEG_BYTES).decode("ascii")


@dataclass
class FakeVisionClient(VisionClient):
    """Fake vision client returning scripted replies and recording prompts."""

    replies: list[str] = field(default_factory=list)
    default_reply: str = "Tilt the camera slightly left to include the window."
    calls: list[dict[str, object]] = field(default_factory=list)
    error: Exception | None = None
    delay_seconds: float = 0.0

    async def generate(  # noqa: PLR0913
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        image_data_url: str,
        max_output_tokens: int,
        temperature: float,
        image_detail: str,
        store: bool,
    ) -> str:
        self.calls.append(
            {
                "model": model,
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "image_data_url": image_data_url,
            }
        )
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        if self.replies:
            return self.replies.pop(0)
        return self.default_reply

    @property
    def last_system_prompt(self) -> str:
        return str(self.calls[-1]["system_prompt"])


def make_request(  # noqa: PLR0913
    shoot_id: str | None = "shoot-1",
    room_type: str | None = "kitchen",
    image_base64: str | None = IMAGE_BASE64,
    angle: tuple[float, float, float] | None = None,
    stack_index: int | None = None,
) -> AssessmentRequest:
    """Build an assessment request with sensible defaults."""
    return AssessmentRequest(
        image_base64=image_base64,
        room_type=room_type,
        shoot_id=shoot_id,
        stack_index=stack_index,
        current_angle=(
            Orientation(pitch=angle[0], yaw=angle[1], roll=angle[2])
            if angle is not None
            else None
        ),
    )


def make_service(
    vision_client: FakeVisionClient,
    store: InMemorySessionStore | None = None,
    **kwargs: object,
) -> AssessmentService:
    """Build an assessment service around a fake vision client."""
    return AssessmentService(
        store=store if store is not None else InMemorySessionStore(),
        vision_service=VisionService(client=vision_client, model="gpt-4o"),
        **kwargs,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(openai_api_key="openai-key", environment="test")


@pytest.fixture
def vision_client() -> FakeVisionClient:
    return FakeVisionClient()


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def service(
    vision_client: FakeVisionClient, store: InMemorySessionStore
) -> AssessmentService:
    return make_service(vision_client, store, policy=ProgressivePolicy())


@pytest.fixture
def container(settings: Settings, service: AssessmentService) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        assessor=service,
        close_resources=close_resources,
    )
