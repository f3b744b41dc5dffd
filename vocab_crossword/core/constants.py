"""Shared constants and enumerations for the crossword generator."""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Tuple


class Difficulty(str, Enum):
    """How hard a word cluster is expected to be to lay out."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Direction(str, Enum):
    """Word directions supported by the grid."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    @property
    def step(self) -> Tuple[int, int]:
        """Unit ``(dx, dy)`` offset between consecutive letters."""
        return (1, 0) if self is Direction.HORIZONTAL else (0, 1)

    @property
    def perpendicular(self) -> "Direction":
        return Direction.VERTICAL if self is Direction.HORIZONTAL else Direction.HORIZONTAL


# English letter frequency buckets; rarer letters score higher.
LETTER_SCORES: Dict[str, int] = {
    **dict.fromkeys("ETAOINSHR", 1),
    **dict.fromkeys("DLCUMWFGYPB", 2),
    **dict.fromkeys("VK", 3),
    **dict.fromkeys("JXQZ", 5),
}
MAX_LETTER_SCORE = 5

RARE_LETTERS: FrozenSet[str] = frozenset("QXZJK")
