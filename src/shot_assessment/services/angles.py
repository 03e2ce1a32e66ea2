"""Camera-angle comparison used to detect a new shooting position."""

import math

from shot_assessment.domain.assessments import Orientation

DEFAULT_RESET_THRESHOLD = 30.0


def compare_orientations(
    previous: Orientation | None, current: Orientation | None
) -> float:
    """Return the Euclidean distance between two orientations.

    Differences are taken on raw degrees, so 179 vs -179 counts as 358.
    Returns 0 when either orientation is unknown.
    """
    if previous is None or current is None:
        return 0.0
    return math.sqrt(
        (current.pitch - previous.pitch) ** 2
        + (current.yaw - previous.yaw) ** 2
        + (current.roll - previous.roll) ** 2
    )


def should_reset(
    dissimilarity: float, threshold: float = DEFAULT_RESET_THRESHOLD
) -> bool:
    """Return true when the angle moved strictly beyond the threshold."""
    return dissimilarity > threshold
