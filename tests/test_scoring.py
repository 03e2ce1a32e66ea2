"""Tests for acceptance scoring policies."""

import pytest

from shot_assessment.services.scoring import (
    KeywordPolicy,
    ProgressivePolicy,
    build_acceptance_policy,
    score_value,
)


def test_score_staircase_matches_table() -> None:
    assert [score_value(n) for n in (1, 2, 3, 4)] == [75, 82, 88, 90]


def test_score_staircase_is_non_decreasing() -> None:
    scores = [score_value(n) for n in range(1, 50)]

    assert scores == sorted(scores)
    assert scores[-1] == 90


def test_score_rejects_attempt_zero() -> None:
    with pytest.raises(ValueError):
        score_value(0)


def test_progressive_policy_accepts_from_third_attempt() -> None:
    policy = ProgressivePolicy()

    assert not policy.score(1, "Perfect shot").acceptable
    assert not policy.score(2, "Great").acceptable
    assert policy.score(3, "Move left a bit").acceptable
    assert policy.score(7, "Move left a bit").value == 90


@pytest.mark.parametrize("word", ["good", "Great", "PERFECT", "snap", "capture"])
def test_keyword_policy_accepts_positive_feedback(word: str) -> None:
    result = KeywordPolicy().score(1, f"Looks {word} to me")

    assert result.acceptable
    assert result.value == 75


def test_keyword_policy_falls_back_to_attempt_count() -> None:
    policy = KeywordPolicy()

    assert not policy.score(3, "Tilt down slightly").acceptable
    assert not policy.score(4, "Tilt down slightly").acceptable
    assert policy.score(5, "Tilt down slightly").acceptable


def test_build_acceptance_policy_by_name() -> None:
    assert isinstance(build_acceptance_policy("progressive"), ProgressivePolicy)
    assert isinstance(build_acceptance_policy("keyword"), KeywordPolicy)
    with pytest.raises(ValueError):
        build_acceptance_policy("lenient")
