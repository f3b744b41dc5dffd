"""Weighted heuristic scoring for candidate placements.

Each candidate is rated on five terms:

- crossing count: letters shared with words already on the grid;
- density: how close the candidate sits to the cells already filled;
- letter rarity: crossings on rare letters use them up while they can still cross;
- centre proximity: keeps the layout balanced around the middle of the board;
- bounding-box penalty: relative growth of the footprint of placed words.

The best candidate is committed greedily; nothing is ever reconsidered.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence

from ..core.constants import LETTER_SCORES, MAX_LETTER_SCORE, Direction
from ..core.models import PlacementOption
from .grid import CrosswordGrid


@dataclass(frozen=True)
class ScoringWeights:
    crossing_count: float = 100.0
    grid_density: float = 50.0
    letter_rarity: float = 10.0
    center_proximity: float = 25.0
    bounding_box_penalty: float = 15.0


DEFAULT_WEIGHTS = ScoringWeights()


def letter_score(letter: str) -> int:
    return LETTER_SCORES.get(letter.upper(), 1)


def density_score(option: PlacementOption, grid: CrosswordGrid) -> float:
    filled = grid.filled_cells()
    if not filled:
        return 0.0
    start_x, start_y = option.x, option.y
    end_x, end_y = option.cells[-1]
    total = 0
    for fx, fy in filled:
        # Manhattan distance from the filled cell to the nearest cell of the run.
        total += max(0, start_x - fx, fx - end_x) + max(0, start_y - fy, fy - end_y)
    average = total / len(filled)
    return max(0.0, 1.0 - average / grid.size)


def rarity_score(option: PlacementOption) -> float:
    if not option.crossings:
        return 0.0
    total = sum(letter_score(option.word.term[c.position]) for c in option.crossings)
    return (total / len(option.crossings)) / MAX_LETTER_SCORE


def center_score(option: PlacementOption, grid: CrosswordGrid) -> float:
    center = grid.size / 2
    half_length = len(option.word.term) / 2
    if option.direction is Direction.HORIZONTAL:
        mid_x, mid_y = option.x + half_length, float(option.y)
    else:
        mid_x, mid_y = float(option.x), option.y + half_length
    distance = math.hypot(mid_x - center, mid_y - center)
    max_distance = math.sqrt(2 * center ** 2)
    return max(0.0, 1.0 - distance / max_distance)


def bounding_box_penalty(option: PlacementOption, grid: CrosswordGrid) -> float:
    bounds = grid.used_bounds()
    if bounds is None:
        return 0.0
    min_x, min_y, max_x, max_y = bounds
    end_x, end_y = option.cells[-1]
    width = max_x - min_x + 1
    height = max_y - min_y + 1
    new_width = max(max_x, end_x) - min(min_x, option.x) + 1
    new_height = max(max_y, end_y) - min(min_y, option.y) + 1
    return max(0.0, (new_width - width) / width, (new_height - height) / height)


class PlacementScorer:
    """Ranks placement candidates by a weighted sum of heuristics."""

    def __init__(self, weights: ScoringWeights = DEFAULT_WEIGHTS) -> None:
        self.weights = weights

    def breakdown(self, option: PlacementOption, grid: CrosswordGrid) -> Dict[str, float]:
        """Per-term weighted contributions; the penalty is reported as positive."""
        w = self.weights
        return {
            "crossings": len(option.crossings) * w.crossing_count,
            "density": density_score(option, grid) * w.grid_density,
            "rarity": rarity_score(option) * w.letter_rarity,
            "center": center_score(option, grid) * w.center_proximity,
            "bounding_box_penalty": bounding_box_penalty(option, grid) * w.bounding_box_penalty,
        }

    def score(self, option: PlacementOption, grid: CrosswordGrid) -> float:
        parts = self.breakdown(option, grid)
        return (
            parts["crossings"]
            + parts["density"]
            + parts["rarity"]
            + parts["center"]
            - parts["bounding_box_penalty"]
        )

    def rank(
        self, options: Sequence[PlacementOption], grid: CrosswordGrid
    ) -> List[PlacementOption]:
        scored = [replace(option, score=self.score(option, grid)) for option in options]
        # sorted() is stable: equal scores keep enumeration order.
        return sorted(scored, key=lambda option: option.score, reverse=True)

    def best(
        self, options: Sequence[PlacementOption], grid: CrosswordGrid
    ) -> Optional[PlacementOption]:
        if not options:
            return None
        return self.rank(options, grid)[0]
