"""Domain models for shot assessments and per-room session memory."""

from dataclasses import dataclass
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class CamelModel(BaseModel):
    """Base model exchanged with clients using camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Orientation(BaseModel):
    """Camera orientation in degrees."""

    pitch: float = Field(allow_inf_nan=False)
    yaw: float = Field(allow_inf_nan=False)
    roll: float = Field(allow_inf_nan=False)


class AssessmentRecord(CamelModel):
    """One completed evaluation, appended to a session's history."""

    model_config = ConfigDict(frozen=True)

    attempt_number: int = Field(ge=1)
    feedback: str
    orientation: Orientation | None = None
    angle_reset: bool = False
    created_at: datetime = Field(default_factory=_utcnow)


@dataclass(frozen=True)
class SessionKey:
    """Exact composite key of a session; no case or whitespace folding."""

    shoot_id: str
    room_type: str

    def __str__(self) -> str:
        return f"{self.shoot_id}-{self.room_type}"


class AssessmentSession(CamelModel):
    """Memory for one room of one shoot."""

    shoot_id: str
    room_type: str
    attempts: int = Field(default=0, ge=0)
    history: list[AssessmentRecord] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    last_orientation: Orientation | None = None
    accepted: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def fresh(cls, key: SessionKey) -> "AssessmentSession":
        """Create a zeroed session for a key."""
        return cls(shoot_id=key.shoot_id, room_type=key.room_type)

    @property
    def key(self) -> SessionKey:
        return SessionKey(shoot_id=self.shoot_id, room_type=self.room_type)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def last_feedback(self) -> str | None:
        """Feedback text of the latest attempt, if any."""
        return self.history[-1].feedback if self.history else None

    def recent_feedback(self, limit: int = 2) -> list[str]:
        """Return up to ``limit`` feedback strings, most recent first."""
        return [record.feedback for record in reversed(self.history[-limit:])]

    def reset_angle(self) -> None:
        """Forget attempts taken from a previous camera angle."""
        self.attempts = 0
        self.history = []

    def learn_constraints(self, constraints: list[str]) -> None:
        """Merge constraints, keeping first-seen order and uniqueness."""
        for constraint in constraints:
            if constraint not in self.constraints:
                self.constraints.append(constraint)

    def record_attempt(self, record: AssessmentRecord) -> None:
        """Append a finished attempt and remember its orientation."""
        self.history.append(record)
        self.last_orientation = record.orientation
        self.updated_at = record.created_at

    def copy_state(self) -> "AssessmentSession":
        """Return an independent copy safe to mutate."""
        return self.model_copy(deep=True)


class AssessmentRequest(CamelModel):
    """Inbound assessment request.

    Required fields are optional here so a missing field is reported as an
    assessment validation error rather than a schema error.
    """

    image_base64: str | None = None
    room_type: str | None = None
    shoot_id: str | None = None
    stack_index: int | None = None
    current_angle: Orientation | None = None


class AssessmentResponse(CamelModel):
    """Structured feedback returned for one assessment."""

    feedback: str
    attempt_number: int
    angle_reset: bool
    score: int
    is_acceptable: bool
    constraints: list[str]
    improvements: list[str]
