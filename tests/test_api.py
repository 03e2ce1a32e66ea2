"""Tests for the HTTP API."""

from fastapi.testclient import TestClient

from shot_assessment.api.app import create_app
from shot_assessment.containers import AppContainer
from tests.conftest import IMAGE_BASE64, FakeVisionClient


def _payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "imageBase64": IMAGE_BASE64,
        "roomType": "kitchen",
        "shootId": "shoot-1",
        "stackIndex": 0,
    }
    payload.update(overrides)
    return payload


def test_health(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_assess_returns_camel_case_response(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/assess",
        json=_payload(currentAngle={"pitch": 0, "yaw": 10, "roll": 0}),
    )

    assert response.status_code == 200
    assert response.json() == {
        "feedback": "Tilt the camera slightly left to include the window.",
        "attemptNumber": 1,
        "angleReset": False,
        "score": 75,
        "isAcceptable": False,
        "constraints": [],
        "improvements": ["Adjust based on feedback"],
    }


def test_assess_missing_field_returns_400(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.post("/assess", json=_payload(roomType=None))

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "validation"
    assert body["fields"] == ["roomType"]
    assert client.get("/history/shoot-1/None").status_code == 404


def test_assess_malformed_angle_returns_400(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/assess", json=_payload(currentAngle={"pitch": "steep", "yaw": 0, "roll": 0})
    )

    assert response.status_code == 400
    assert response.json()["fields"] == ["currentAngle.pitch"]


def test_upstream_failure_hides_details_outside_local(
    container: AppContainer, vision_client: FakeVisionClient
) -> None:
    vision_client.error = RuntimeError("quota exceeded")
    client = TestClient(create_app(container))

    response = client.post("/assess", json=_payload())

    assert response.status_code == 502
    assert response.json() == {
        "error": "upstream",
        "message": "Vision service request failed",
    }


def test_upstream_failure_shows_details_locally(
    container: AppContainer, vision_client: FakeVisionClient
) -> None:
    container.settings = container.settings.model_copy(
        update={"environment": "local"}
    )
    vision_client.error = RuntimeError("quota exceeded")
    client = TestClient(create_app(container))

    response = client.post("/assess", json=_payload())

    assert response.status_code == 502
    assert "quota exceeded" in response.json()["details"]


def test_history_roundtrip_and_clear(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    client.post("/assess", json=_payload())
    client.post("/assess", json=_payload(roomType="bedroom"))

    history = client.get("/history/shoot-1/kitchen")

    assert history.status_code == 200
    body = history.json()
    assert body["attempts"] == 1
    assert body["lastFeedback"] == (
        "Tilt the camera slightly left to include the window."
    )
    assert body["accepted"] is False

    cleared = client.delete("/history/shoot-1")

    assert cleared.json() == {"message": "History cleared", "removed": 2}
    assert client.get("/history/shoot-1/kitchen").status_code == 404
