"""Progressive acceptance scoring."""

from dataclasses import dataclass
from typing import Protocol

# attempt number -> score; later attempts use the last step
_SCORE_STEPS = (75, 82, 88, 90)

POSITIVE_WORDS = ("good", "great", "perfect", "snap", "capture")


@dataclass(frozen=True)
class ScoreResult:
    """Score and acceptability for one attempt."""

    value: int
    acceptable: bool


def score_value(attempt_number: int) -> int:
    """Return the staircase score for an attempt number."""
    if attempt_number < 1:
        raise ValueError("attempt_number must be >= 1")
    index = min(attempt_number, len(_SCORE_STEPS)) - 1
    return _SCORE_STEPS[index]


class AcceptancePolicy(Protocol):
    """Decides whether an attempt is good enough to keep."""

    name: str

    def score(self, attempt_number: int, feedback: str) -> ScoreResult:
        """Return the score for an attempt."""


@dataclass(frozen=True)
class ProgressivePolicy(AcceptancePolicy):
    """Accept every shot from a fixed attempt onwards."""

    accept_from_attempt: int = 3
    name: str = "progressive"

    def score(self, attempt_number: int, feedback: str) -> ScoreResult:
        return ScoreResult(
            value=score_value(attempt_number),
            acceptable=attempt_number >= self.accept_from_attempt,
        )


@dataclass(frozen=True)
class KeywordPolicy(AcceptancePolicy):
    """Accept when the model sounds satisfied, or after enough attempts."""

    positive_words: tuple[str, ...] = POSITIVE_WORDS
    accept_from_attempt: int = 5
    name: str = "keyword"

    def score(self, attempt_number: int, feedback: str) -> ScoreResult:
        lowered = feedback.lower()
        sounds_positive = any(word in lowered for word in self.positive_words)
        return ScoreResult(
            value=score_value(attempt_number),
            acceptable=sounds_positive or attempt_number >= self.accept_from_attempt,
        )


def build_acceptance_policy(name: str) -> AcceptancePolicy:
    """Return the acceptance policy configured by name."""
    if name == ProgressivePolicy.name:
        return ProgressivePolicy()
    if name == KeywordPolicy.name:
        return KeywordPolicy()
    raise ValueError(f"Unknown acceptance policy: {name}")
