"""Assessor that relays calls to a worker child process."""

import asyncio
import itertools
import logging
import sys
from dataclasses import dataclass, field

from shot_assessment.domain.assessments import (
    AssessmentRequest,
    AssessmentResponse,
    AssessmentSession,
)
from shot_assessment.domain.errors import TransportError, UpstreamTimeoutError
from shot_assessment.relay.protocol import (
    TOOL_ASSESS,
    TOOL_CLEAR_SHOOT,
    TOOL_GET_SESSION,
    RelayCall,
    RelayReply,
    encode_call,
    encode_cancel,
    parse_reply,
)
from shot_assessment.services.assessments import Assessor

_logger = logging.getLogger(__name__)

WORKER_COMMAND = (sys.executable, "-m", "shot_assessment.relay.worker")
_STREAM_LIMIT = 64 * 1024 * 1024


@dataclass
class SubprocessAssessmentClient(Assessor):
    """Relays assessment tools to one long-lived worker process.

    Calls are multiplexed by request id, so requests for different sessions
    run concurrently inside the worker.
    """

    command: tuple[str, ...] = WORKER_COMMAND
    timeout_seconds: float = 35.0
    env: dict[str, str] | None = None
    _process: asyncio.subprocess.Process | None = field(default=None, init=False)
    _pending: dict[int, asyncio.Future[RelayReply]] = field(
        default_factory=dict, init=False
    )
    _ids: itertools.count = field(
        default_factory=lambda: itertools.count(1), init=False
    )
    _start_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)
    _tasks: list[asyncio.Task[None]] = field(default_factory=list, init=False)

    async def assess(self, request: AssessmentRequest) -> AssessmentResponse:
        """Assess a photo in the worker."""
        arguments = request.model_dump(mode="json", by_alias=True, exclude_none=True)
        result = await self._call(TOOL_ASSESS, arguments)
        return AssessmentResponse.model_validate(result)

    async def get_session(
        self, shoot_id: str, room_type: str
    ) -> AssessmentSession | None:
        """Fetch a session snapshot from the worker."""
        result = await self._call(
            TOOL_GET_SESSION, {"shootId": shoot_id, "roomType": room_type}
        )
        return AssessmentSession.model_validate(result) if result else None

    async def clear_shoot(self, shoot_id: str) -> int:
        """Clear a shoot in the worker."""
        result = await self._call(TOOL_CLEAR_SHOOT, {"shootId": shoot_id})
        return int(result["removed"])

    async def close(self) -> None:
        """Stop the worker and fail anything still waiting on it."""
        process = self._process
        self._process = None
        if process is not None and process.returncode is None:
            if process.stdin is not None:
                process.stdin.close()
            try:
                await asyncio.wait_for(process.wait(), timeout=5)
            except TimeoutError:
                process.kill()
                await process.wait()
        for task in self._tasks:
            task.cancel()
        self._tasks = []
        self._fail_pending(TransportError("Assessment relay closed"))

    async def _call(self, name: str, arguments: dict[str, object]) -> object:
        process = await self._ensure_process()
        request_id = next(self._ids)
        future: asyncio.Future[RelayReply] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        line = encode_call(RelayCall(id=request_id, name=name, arguments=arguments))
        try:
            assert process.stdin is not None
            process.stdin.write(line.encode("utf-8"))
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            self._pending.pop(request_id, None)
            raise TransportError("Assessment relay stopped accepting input") from exc

        try:
            reply = await asyncio.wait_for(future, timeout=self.timeout_seconds)
        except TimeoutError as exc:
            _logger.warning("Relay call timed out", extra={"tool": name})
            await self._cancel(process, request_id)
            raise UpstreamTimeoutError(
                f"No relay response within {self.timeout_seconds:g}s"
            ) from exc
        finally:
            self._pending.pop(request_id, None)
        if reply.error is not None:
            raise reply.error
        return reply.result

    async def _cancel(
        self, process: asyncio.subprocess.Process, request_id: int
    ) -> None:
        if process.returncode is not None or process.stdin is None:
            return
        try:
            process.stdin.write(encode_cancel(request_id).encode("utf-8"))
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            _logger.warning(
                "Could not cancel relay call", extra={"request_id": request_id}
            )

    async def _ensure_process(self) -> asyncio.subprocess.Process:
        async with self._start_lock:
            if self._process is not None and self._process.returncode is None:
                return self._process
            try:
                process = await asyncio.create_subprocess_exec(
                    *self.command,
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    env=self.env,
                    limit=_STREAM_LIMIT,
                )
            except OSError as exc:
                _logger.exception("Failed to start relay worker")
                raise TransportError(f"Failed to start relay process: {exc}") from exc
            self._process = process
            self._tasks = [
                asyncio.create_task(self._read_replies(process)),
                asyncio.create_task(self._forward_logs(process)),
            ]
            return process

    async def _read_replies(self, process: asyncio.subprocess.Process) -> None:
        assert process.stdout is not None
        while True:
            line = await process.stdout.readline()
            if not line:
                break
            if not line.strip():
                continue
            try:
                reply = parse_reply(line.decode("utf-8", errors="replace"))
            except TransportError as exc:
                _logger.error("Relay produced unparseable output: %s", exc.detail)
                self._fail_pending(exc)
                continue
            if reply.id is None:
                if reply.error is not None:
                    self._fail_pending(TransportError(reply.error.detail))
                continue
            future = self._pending.get(reply.id)
            if future is None:
                continue
            if not future.done():
                future.set_result(reply)
        code = await process.wait()
        if self._process is process:
            _logger.error("Relay worker exited", extra={"returncode": code})
        self._fail_pending(
            TransportError(f"Assessment relay process exited with code {code}")
        )

    async def _forward_logs(self, process: asyncio.subprocess.Process) -> None:
        assert process.stderr is not None
        while True:
            line = await process.stderr.readline()
            if not line:
                break
            text = line.decode("utf-8", errors="replace").rstrip()
            if text:
                _logger.info("[relay] %s", text)

    def _fail_pending(self, error: TransportError) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()
