"""Prompt construction for shot assessments.

Sections are emitted in a fixed order: context framing first, then the
composition-only rule and length cap, then history, constraints and
leniency. Later instructions win with the downstream model, so constraint
and leniency sections must stay last.
"""

DEFAULT_WORD_LIMIT = 40
LENIENT_FROM_ATTEMPT = 3
MAX_RECENT_FEEDBACK = 2


def build_system_prompt(  # noqa: PLR0913
    room_type: str,
    attempt_number: int,
    angle_reset: bool,
    recent_feedback: list[str],
    constraints: list[str],
    word_limit: int = DEFAULT_WORD_LIMIT,
) -> str:
    """Build the system instruction for one assessment attempt."""
    attempt_line = f"ATTEMPT NUMBER: {attempt_number}"
    if angle_reset:
        attempt_line += " (NEW ANGLE)"
    sections = [
        "You are a practical real estate photography assistant with "
        "context awareness.",
        f"CURRENT ROOM: {room_type.upper()}\n{attempt_line}",
        "COMPOSITION ONLY:\n"
        "- Never discuss lighting, exposure, brightness, or shadow.\n"
        "- Comment only on composition and framing.\n"
        "- Minor issues can be fixed in post-production.",
        f"LENGTH: Reply in at most {word_limit} words.",
    ]

    previous = recent_feedback[:MAX_RECENT_FEEDBACK]
    if previous and not angle_reset:
        listed = "\n".join(f'- "{feedback}"' for feedback in previous)
        sections.append(
            "PREVIOUS FEEDBACK (most recent first):\n"
            f"{listed}\n"
            "Do not repeat these suggestions. Give new guidance or accept the shot."
        )

    if constraints:
        listed = "\n".join(f"- {constraint}" for constraint in constraints)
        sections.append(
            "KNOWN CONSTRAINTS:\n"
            f"{listed}\n"
            "The photographer cannot change these. Never suggest an action that "
            "contradicts a known constraint."
        )

    if attempt_number >= LENIENT_FROM_ATTEMPT:
        sections.append(
            f"LENIENCY: This is attempt #{attempt_number}. Be lenient and favor "
            f"accepting the shot if it shows the key elements of the {room_type}."
        )

    return "\n\n".join(sections)


def build_user_prompt(attempt_number: int) -> str:
    """Build the user instruction sent alongside the image."""
    if attempt_number >= LENIENT_FROM_ATTEMPT:
        return f"This is attempt #{attempt_number}. What do you think of this shot?"
    return "What micro-adjustment would perfect this composition?"
