"""Relay worker: serves assessment tools over stdin/stdout.

Run with ``python -m shot_assessment.relay.worker``. Stdout carries protocol
lines only; logs go to stderr.
"""

import asyncio
import functools
import logging
import sys
from typing import TextIO

from pydantic import ValidationError

from shot_assessment.app_logging import configure_logging
from shot_assessment.config import Settings
from shot_assessment.containers import build_container
from shot_assessment.domain.assessments import AssessmentRequest
from shot_assessment.domain.errors import AssessmentError, InvalidRequestError
from shot_assessment.relay.protocol import (
    PARSE_ERROR_CODE,
    TOOL_ASSESS,
    TOOL_CLEAR_SHOOT,
    TOOL_GET_SESSION,
    RelayCall,
    RelayCancel,
    UnknownToolError,
    encode_error,
    encode_result,
    parse_call,
)
from shot_assessment.services.assessments import Assessor

_logger = logging.getLogger(__name__)

# Share of the parent's relay timeout the worker may spend on one assessment.
_DEADLINE_FRACTION = 0.9


async def handle_call(assessor: Assessor, call: RelayCall) -> str:
    """Run one tool call and return the reply line."""
    try:
        result = await _dispatch(assessor, call)
    except AssessmentError as exc:
        return encode_error(call.id, exc)
    except Exception as exc:
        _logger.exception("Relay tool failed", extra={"tool": call.name})
        return encode_error(call.id, AssessmentError(f"{type(exc).__name__}: {exc}"))
    return encode_result(call.id, result)


def reject_line(exc: InvalidRequestError) -> str:
    """Return the reply for a request line that can't be dispatched."""
    _logger.warning("Rejected relay request: %s", exc.detail)
    if isinstance(exc, UnknownToolError):
        return encode_error(exc.request_id, exc)
    return encode_error(None, exc, code=PARSE_ERROR_CODE)


async def _dispatch(assessor: Assessor, call: RelayCall) -> object:
    arguments = call.arguments
    if not isinstance(arguments, dict):
        raise InvalidRequestError("Relay arguments must be an object")
    if call.name == TOOL_ASSESS:
        response = await assessor.assess(_parse_request(arguments))
        return response.model_dump(mode="json", by_alias=True)
    shoot_id = _require_str(arguments, "shootId")
    if call.name == TOOL_GET_SESSION:
        session = await assessor.get_session(
            shoot_id, _require_str(arguments, "roomType")
        )
        return session.model_dump(mode="json", by_alias=True) if session else None
    if call.name == TOOL_CLEAR_SHOOT:
        return {"removed": await assessor.clear_shoot(shoot_id)}
    raise UnknownToolError(call.id, call.name)


def _parse_request(arguments: dict[str, object]) -> AssessmentRequest:
    try:
        return AssessmentRequest.model_validate(arguments)
    except ValidationError as exc:
        fields = [".".join(str(part) for part in err["loc"]) for err in exc.errors()]
        raise InvalidRequestError("Invalid assessment request", fields=fields) from exc


def _require_str(arguments: dict[str, object], name: str) -> str:
    value = arguments.get(name)
    if not isinstance(value, str) or not value:
        raise InvalidRequestError(f"{name} is required", fields=[name])
    return value


async def serve(
    assessor: Assessor, reader: TextIO | None = None, writer: TextIO | None = None
) -> None:
    """Answer request lines until the input closes.

    Calls run concurrently. A cancellation notice stops the matching call
    before it commits anything, and no reply is written for it.
    """
    reader = reader or sys.stdin
    writer = writer or sys.stdout
    write_lock = asyncio.Lock()
    running: dict[int, asyncio.Task[None]] = {}

    async def write(reply: str) -> None:
        async with write_lock:
            writer.write(reply)
            writer.flush()

    async def respond(call: RelayCall) -> None:
        try:
            reply = await handle_call(assessor, call)
        except asyncio.CancelledError:
            _logger.info("Relay call cancelled", extra={"request_id": call.id})
            raise
        await write(reply)

    def forget(request_id: int, task: asyncio.Task[None]) -> None:
        if running.get(request_id) is task:
            del running[request_id]

    while True:
        line = await asyncio.to_thread(reader.readline)
        if not line:
            break
        if not line.strip():
            continue
        try:
            message = parse_call(line)
        except InvalidRequestError as exc:
            await write(reject_line(exc))
            continue
        if isinstance(message, RelayCancel):
            task = running.get(message.request_id)
            if task is not None:
                task.cancel()
            continue
        task = asyncio.create_task(respond(message))
        running[message.id] = task
        task.add_done_callback(functools.partial(forget, message.id))
    if running:
        await asyncio.gather(*running.values(), return_exceptions=True)


def worker_settings(settings: Settings) -> Settings:
    """Child settings: direct transport, done before the parent times out."""
    deadline = settings.assessment_deadline_seconds
    if deadline is None:
        deadline = settings.relay_timeout_seconds * _DEADLINE_FRACTION
    return settings.model_copy(
        update={"transport": "direct", "assessment_deadline_seconds": deadline}
    )


async def _run() -> None:
    container = build_container(worker_settings(Settings()))
    try:
        await serve(container.assessor)
    finally:
        await container.close_resources()


def main() -> None:
    """Entry point for the relay child process."""
    configure_logging(sys.stderr)
    _logger.info("Relay worker ready")
    asyncio.run(_run())


if __name__ == "__main__":
    main()
