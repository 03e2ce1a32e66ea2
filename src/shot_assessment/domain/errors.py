"""Error taxonomy for assessment requests."""


class AssessmentError(Exception):
    """Base error surfaced to callers as a structured error response."""

    kind = "internal"
    status_code = 500
    rpc_code = -32603
    message = "Assessment failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.message)
        self.detail = detail or self.message

    def to_payload(self, *, include_detail: bool = True) -> dict[str, object]:
        """Return the JSON error body for this error."""
        payload: dict[str, object] = {"error": self.kind, "message": self.message}
        if include_detail:
            payload["details"] = self.detail
        return payload


class InvalidRequestError(AssessmentError):
    """A required request field is missing or malformed."""

    kind = "validation"
    status_code = 400
    rpc_code = -32602
    message = "Missing required fields"

    def __init__(self, detail: str | None = None, fields: list[str] | None = None):
        super().__init__(detail)
        self.fields = fields or []

    def to_payload(self, *, include_detail: bool = True) -> dict[str, object]:
        payload = super().to_payload(include_detail=True)
        payload["fields"] = self.fields
        return payload


class UpstreamError(AssessmentError):
    """The vision service call failed."""

    kind = "upstream"
    status_code = 502
    rpc_code = -32001
    message = "Vision service request failed"


class UpstreamTimeoutError(UpstreamError):
    """The vision service did not answer within the configured bound."""

    kind = "timeout"
    status_code = 504
    rpc_code = -32002
    message = "Assessment timeout"


class TransportError(AssessmentError):
    """The relay child process failed to start, crashed, or spoke garbage."""

    kind = "transport"
    status_code = 500
    rpc_code = -32003
    message = "Assessment relay failed"


_ERRORS_BY_KIND: dict[str, type[AssessmentError]] = {
    error.kind: error
    for error in (
        AssessmentError,
        InvalidRequestError,
        UpstreamError,
        UpstreamTimeoutError,
        TransportError,
    )
}


def error_from_kind(
    kind: str, detail: str | None, fields: list[str] | None = None
) -> AssessmentError:
    """Rebuild an error from its serialized kind."""
    error_cls = _ERRORS_BY_KIND.get(kind, AssessmentError)
    if error_cls is InvalidRequestError:
        return InvalidRequestError(detail, fields=fields)
    return error_cls(detail)
