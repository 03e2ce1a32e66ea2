"""Tests for camera-angle comparison."""

import pytest

from shot_assessment.domain.assessments import Orientation
from shot_assessment.services.angles import compare_orientations, should_reset


def _angle(pitch: float, yaw: float, roll: float) -> Orientation:
    return Orientation(pitch=pitch, yaw=yaw, roll=roll)


def test_compare_returns_zero_when_either_orientation_unknown() -> None:
    known = _angle(10, 20, 30)

    assert compare_orientations(None, known) == 0.0
    assert compare_orientations(known, None) == 0.0
    assert compare_orientations(None, None) == 0.0


def test_compare_is_euclidean_distance() -> None:
    assert compare_orientations(_angle(0, 0, 0), _angle(3, 4, 0)) == pytest.approx(5.0)
    assert compare_orientations(_angle(1, 1, 1), _angle(1, 1, 1)) == 0.0


def test_compare_is_symmetric() -> None:
    first = _angle(12.5, -40, 3)
    second = _angle(-7, 15, 22)

    assert compare_orientations(first, second) == compare_orientations(second, first)


def test_compare_does_not_wrap_around() -> None:
    dissimilarity = compare_orientations(_angle(179, 0, 0), _angle(-179, 0, 0))

    assert dissimilarity == pytest.approx(358.0)
    assert should_reset(dissimilarity)


def test_reset_threshold_is_exclusive() -> None:
    assert not should_reset(30.0)
    assert should_reset(30.0001)
    assert not should_reset(0.0)


def test_reset_threshold_is_configurable() -> None:
    assert should_reset(15.0, threshold=10.0)
    assert not should_reset(15.0, threshold=20.0)


def test_orientation_rejects_non_finite_values() -> None:
    with pytest.raises(ValueError):
        Orientation(pitch=float("nan"), yaw=0, roll=0)
