"""Candidate placement enumeration for a single word."""

from __future__ import annotations

from typing import Dict, List, Tuple

from ..core.constants import Direction
from ..core.models import PlacementOption, Word
from .grid import CrosswordGrid, GridEntry


def find_placements(
    word: Word, grid: CrosswordGrid, min_crossings: int = 1
) -> List[PlacementOption]:
    """Return every legal placement of ``word`` on the current grid.

    An empty grid yields the centred seed placements. Otherwise each candidate
    crosses at least one placed word and carries every crossing it would create.
    """

    if grid.placed_count == 0:
        return seed_placements(word, grid)

    options: Dict[Tuple[int, int, Direction], PlacementOption] = {}
    for entry in grid.entries():
        for option in _crossings_with(word, entry, grid):
            options.setdefault(option.key, option)
    return [option for option in options.values() if len(option.crossings) >= min_crossings]


def seed_placements(word: Word, grid: CrosswordGrid) -> List[PlacementOption]:
    """Centre the first word horizontally, then vertically, where it fits."""

    middle = grid.size // 2
    offset = (grid.size - len(word.term)) // 2
    options: List[PlacementOption] = []
    for x, y, direction in (
        (offset, middle, Direction.HORIZONTAL),
        (middle, offset, Direction.VERTICAL),
    ):
        if grid.can_place(word, x, y, direction):
            options.append(PlacementOption(word=word, x=x, y=y, direction=direction))
    return options


def _crossings_with(
    word: Word, entry: GridEntry, grid: CrosswordGrid
) -> List[PlacementOption]:
    options: List[PlacementOption] = []
    direction = entry.direction.perpendicular
    dx, dy = direction.step
    edx, edy = entry.direction.step
    for position, letter in enumerate(word.term):
        for placed_position, placed_letter in enumerate(entry.word.term):
            if placed_letter != letter:
                continue
            cross_x = entry.x + edx * placed_position
            cross_y = entry.y + edy * placed_position
            start_x = cross_x - dx * position
            start_y = cross_y - dy * position
            if not grid.can_place(word, start_x, start_y, direction):
                continue
            options.append(
                PlacementOption(
                    word=word,
                    x=start_x,
                    y=start_y,
                    direction=direction,
                    crossings=grid.crossings_for(word, start_x, start_y, direction),
                )
            )
    return options
