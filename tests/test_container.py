"""Tests for container wiring."""

import asyncio

import pytest

from shot_assessment.containers import build_container, build_store
from shot_assessment.relay.client import SubprocessAssessmentClient
from shot_assessment.relay.worker import worker_settings
from shot_assessment.services.assessments import AssessmentService
from shot_assessment.services.scoring import KeywordPolicy
from shot_assessment.services.store import InMemorySessionStore


def test_build_container_creates_direct_assessor(settings) -> None:
    container = build_container(settings)

    assert isinstance(container.assessor, AssessmentService)
    assert isinstance(container.assessor.store, InMemorySessionStore)
    assert container.assessor.timeout_seconds == 30.0
    asyncio.run(container.close_resources())


def test_build_container_applies_acceptance_policy(settings) -> None:
    keyword_settings = settings.model_copy(update={"acceptance_policy": "keyword"})
    container = build_container(keyword_settings)

    assert isinstance(container.assessor.policy, KeywordPolicy)
    asyncio.run(container.close_resources())


def test_build_container_relay_transport(settings) -> None:
    container = build_container(settings.model_copy(update={"transport": "relay"}))

    assert isinstance(container.assessor, SubprocessAssessmentClient)
    assert container.assessor.env["TRANSPORT"] == "direct"
    asyncio.run(container.close_resources())


def test_supabase_backend_requires_credentials(settings) -> None:
    with pytest.raises(ValueError):
        build_store(settings.model_copy(update={"session_backend": "supabase"}))


def test_build_container_passes_assessment_deadline(settings) -> None:
    container = build_container(
        settings.model_copy(update={"assessment_deadline_seconds": 12.0})
    )

    assert container.assessor.deadline_seconds == 12.0
    asyncio.run(container.close_resources())


def test_worker_settings_finish_before_relay_timeout(settings) -> None:
    relay_settings = settings.model_copy(
        update={"transport": "relay", "relay_timeout_seconds": 35.0}
    )

    resolved = worker_settings(relay_settings)

    assert resolved.transport == "direct"
    assert resolved.assessment_deadline_seconds < 35.0
    assert resolved.vision_timeout_seconds == relay_settings.vision_timeout_seconds
