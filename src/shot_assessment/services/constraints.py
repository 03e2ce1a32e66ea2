"""Physical constraints learned from feedback text."""

from dataclasses import dataclass

CANNOT_MOVE_BACK = "cannot move back further"
WALL_BEHIND = "wall directly behind camera position"
CANNOT_MOVE_LEFT = "cannot move left further"
CANNOT_MOVE_RIGHT = "cannot move right further"
CANNOT_RAISE = "cannot raise camera higher"


@dataclass(frozen=True)
class ConstraintRule:
    """Emit ``constraint`` when any of ``phrases`` occurs in the text."""

    phrases: tuple[str, ...]
    constraint: str

    def matches(self, text: str) -> bool:
        return any(phrase in text for phrase in self.phrases)


CONSTRAINT_RULES: tuple[ConstraintRule, ...] = (
    ConstraintRule(("can't move back", "cannot move back"), CANNOT_MOVE_BACK),
    ConstraintRule(("wall behind", "against wall"), WALL_BEHIND),
    ConstraintRule(("can't move left", "cannot move left"), CANNOT_MOVE_LEFT),
    ConstraintRule(("can't move right", "cannot move right"), CANNOT_MOVE_RIGHT),
    ConstraintRule(
        ("can't go higher", "cannot go higher", "can't raise"), CANNOT_RAISE
    ),
)


def extract_constraints(
    text: str, rules: tuple[ConstraintRule, ...] = CONSTRAINT_RULES
) -> list[str]:
    """Return constraints mentioned in ``text`` in rule order."""
    normalized = _normalize(text)
    found: list[str] = []
    for rule in rules:
        if rule.constraint not in found and rule.matches(normalized):
            found.append(rule.constraint)
    return found


def _normalize(text: str) -> str:
    return text.lower().replace("’", "'")
