"""Dependency container wiring for the application."""

import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from shot_assessment.adapters.openai_vision_client import OpenAIVisionClient
from shot_assessment.adapters.supabase_session_store import SupabaseSessionStore
from shot_assessment.config import Settings
from shot_assessment.relay.client import SubprocessAssessmentClient
from shot_assessment.services.assessments import AssessmentService, Assessor
from shot_assessment.services.scoring import build_acceptance_policy
from shot_assessment.services.store import InMemorySessionStore, SessionStore
from shot_assessment.services.vision import VisionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    assessor: Assessor
    close_resources: Callable[[], Awaitable[None]]


def build_store(settings: Settings) -> SessionStore:
    """Create the configured session store."""
    if settings.session_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY are required "
                "for the supabase session backend"
            )
        return SupabaseSessionStore(
            create_client(settings.supabase_url, settings.supabase_service_key)
        )
    return InMemorySessionStore(ttl_seconds=settings.session_ttl_seconds)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()

    if resolved_settings.transport == "relay":
        relay_client = SubprocessAssessmentClient(
            timeout_seconds=resolved_settings.relay_timeout_seconds,
            env={**os.environ, "TRANSPORT": "direct"},
        )
        return AppContainer(
            settings=resolved_settings,
            assessor=relay_client,
            close_resources=relay_client.close,
        )

    openai_client = OpenAIVisionClient.create(
        resolved_settings.openai_api_key,
        timeout_seconds=resolved_settings.vision_timeout_seconds,
    )
    vision_service = VisionService(
        client=openai_client,
        model=resolved_settings.openai_model,
        max_output_tokens=resolved_settings.openai_max_output_tokens,
        temperature=resolved_settings.openai_temperature,
        image_detail=resolved_settings.openai_image_detail,
        store=resolved_settings.openai_store,
    )
    assessment_service = AssessmentService(
        store=build_store(resolved_settings),
        vision_service=vision_service,
        policy=build_acceptance_policy(resolved_settings.acceptance_policy),
        timeout_seconds=resolved_settings.vision_timeout_seconds,
        deadline_seconds=resolved_settings.assessment_deadline_seconds,
        angle_reset_threshold=resolved_settings.angle_reset_threshold,
        word_limit=resolved_settings.feedback_word_limit,
    )

    async def close_resources() -> None:
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        assessor=assessment_service,
        close_resources=close_resources,
    )
