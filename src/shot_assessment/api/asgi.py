"""ASGI entrypoint for the shot assessment API."""

from shot_assessment.api.app import create_app
from shot_assessment.containers import build_container

app = create_app(build_container())
