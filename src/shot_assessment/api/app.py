"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shot_assessment.app_logging import configure_logging
from shot_assessment.config import parse_cors_origins
from shot_assessment.containers import AppContainer
from shot_assessment.domain.assessments import AssessmentRequest, AssessmentResponse
from shot_assessment.domain.errors import AssessmentError, InvalidRequestError

SERVICE_NAME = "shot-assessment"
SERVICE_VERSION = "2.0.0"


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)
    expose_details = container.settings.environment == "local"

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Assessment service ready",
            extra={"transport": container.settings.transport},
        )
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.add_middleware(
        CORSMiddleware,
        allow_origins=parse_cors_origins(container.settings.cors_allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AssessmentError)
    async def assessment_error_handler(
        request: Request, exc: AssessmentError
    ) -> JSONResponse:
        if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(
                "Assessment failed: %s",
                exc.detail,
                extra={"kind": exc.kind, "path": request.url.path},
            )
        include_detail = expose_details or isinstance(exc, InvalidRequestError)
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_payload(include_detail=include_detail),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        fields = [
            ".".join(str(part) for part in error["loc"] if part != "body")
            for error in exc.errors()
        ]
        error = InvalidRequestError("Invalid assessment request", fields=fields)
        return JSONResponse(status_code=error.status_code, content=error.to_payload())

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok", "service": SERVICE_NAME, "version": SERVICE_VERSION}

    @app.post("/assess", response_model=AssessmentResponse)
    async def assess(
        assessment_request: AssessmentRequest, request: Request
    ) -> AssessmentResponse:
        """Assess a photo against its room session."""
        state_container: AppContainer = request.app.state.container
        return await state_container.assessor.assess(assessment_request)

    @app.get("/history/{shoot_id}/{room_type}")
    async def session_history(
        shoot_id: str, room_type: str, request: Request
    ) -> dict[str, object]:
        """Return the stored session for a shoot room."""
        state_container: AppContainer = request.app.state.container
        session = await state_container.assessor.get_session(shoot_id, room_type)
        if session is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Session not found"
            )
        return session.model_dump(mode="json", by_alias=True)

    @app.delete("/history/{shoot_id}")
    async def clear_history(shoot_id: str, request: Request) -> dict[str, object]:
        """Forget every room session of a shoot."""
        state_container: AppContainer = request.app.state.container
        removed = await state_container.assessor.clear_shoot(shoot_id)
        return {"message": "History cleared", "removed": removed}

    return app
