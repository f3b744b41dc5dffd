"""Grid representation and placement legality checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from ..core.constants import Direction
from ..core.exceptions import PlacementError
from ..core.models import Cell, Crossing, PlacedWord, Word
from ..utils.logger import get_logger


LOGGER = get_logger(__name__)

Bounds = Tuple[int, int, int, int]


@dataclass
class GridEntry:
    """Mutable bookkeeping for a word while the grid is still being built."""

    word: Word
    x: int
    y: int
    direction: Direction
    number: int
    crossings: List[Crossing] = field(default_factory=list)

    def position_of(self, x: int, y: int) -> int:
        return x - self.x if self.direction is Direction.HORIZONTAL else y - self.y

    def cells(self) -> Iterator[Tuple[int, int]]:
        dx, dy = self.direction.step
        for index in range(len(self.word.term)):
            yield self.x + dx * index, self.y + dy * index

    def snapshot(self) -> PlacedWord:
        return PlacedWord(
            id=self.word.id,
            word=self.word.term,
            clue=self.word.clue,
            x=self.x,
            y=self.y,
            direction=self.direction,
            number=self.number,
            crossings=tuple(self.crossings),
        )


class CrosswordGrid:
    """Square board owned by a single generation attempt.

    Letters are only ever added. A placement is validated by :meth:`can_place`
    before it is committed and is never rolled back afterwards.
    """

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError(f"Grid size must be positive, got {size}")
        self.size = size
        self.cells: List[List[Cell]] = [[Cell() for _ in range(size)] for _ in range(size)]
        self._entries: Dict[str, GridEntry] = {}
        self._filled_cells: List[Tuple[int, int]] = []
        self._bounds: Optional[Bounds] = None
        self._next_number = 1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.size and 0 <= y < self.size

    def cell(self, x: int, y: int) -> Cell:
        return self.cells[y][x]

    def letter_at(self, x: int, y: int) -> Optional[str]:
        if not self.in_bounds(x, y):
            return None
        return self.cells[y][x].letter

    def is_empty(self, x: int, y: int) -> bool:
        return self.in_bounds(x, y) and self.cells[y][x].letter is None

    @property
    def placed_count(self) -> int:
        return len(self._entries)

    def has_word(self, word_id: str) -> bool:
        return word_id in self._entries

    def entries(self) -> List[GridEntry]:
        """Placed words in placement order."""
        return list(self._entries.values())

    def entry(self, word_id: str) -> GridEntry:
        return self._entries[word_id]

    def placed_words(self) -> List[PlacedWord]:
        return [entry.snapshot() for entry in self._entries.values()]

    def filled_cells(self) -> List[Tuple[int, int]]:
        return list(self._filled_cells)

    @property
    def filled_count(self) -> int:
        return len(self._filled_cells)

    @property
    def density(self) -> float:
        return self.filled_count / (self.size * self.size)

    def used_bounds(self) -> Optional[Bounds]:
        """Bounding box ``(min_x, min_y, max_x, max_y)`` of all placed words."""
        return self._bounds

    # ------------------------------------------------------------------
    # Legality
    # ------------------------------------------------------------------
    def can_place(self, word: Word, x: int, y: int, direction: Direction) -> bool:
        if word.id in self._entries:
            return False
        length = len(word.term)
        dx, dy = direction.step
        if not self.in_bounds(x, y):
            return False
        if not self.in_bounds(x + dx * (length - 1), y + dy * (length - 1)):
            return False

        for index, letter in enumerate(word.term):
            cx, cy = x + dx * index, y + dy * index
            cell = self.cells[cy][cx]
            if cell.letter is None:
                if not self._perpendicular_clear(cx, cy, direction):
                    return False
                continue
            if cell.letter != letter:
                return False
            # A shared cell must be a true crossing, never a collinear overlap.
            for other_id in cell.word_ids:
                if self._entries[other_id].direction is direction:
                    return False

        if self.letter_at(x - dx, y - dy) is not None:
            return False
        if self.letter_at(x + dx * length, y + dy * length) is not None:
            return False
        return True

    def _perpendicular_clear(self, x: int, y: int, direction: Direction) -> bool:
        px, py = direction.perpendicular.step
        return self.letter_at(x - px, y - py) is None and self.letter_at(x + px, y + py) is None

    def crossings_for(self, word: Word, x: int, y: int, direction: Direction) -> List[Crossing]:
        """Crossings a placement would create, without validating it."""

        crossings: List[Crossing] = []
        dx, dy = direction.step
        for index in range(len(word.term)):
            cx, cy = x + dx * index, y + dy * index
            if not self.in_bounds(cx, cy):
                continue
            cell = self.cells[cy][cx]
            if cell.letter is None:
                continue
            for other_id in sorted(cell.word_ids):
                other = self._entries[other_id]
                crossings.append(Crossing(index, other_id, other.position_of(cx, cy)))
        return crossings

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def place(self, word: Word, x: int, y: int, direction: Direction) -> PlacedWord:
        if not self.can_place(word, x, y, direction):
            raise PlacementError(
                f"Cannot place {word.term} at ({x},{y}) {direction.value}"
            )

        entry = GridEntry(word=word, x=x, y=y, direction=direction, number=self._next_number)
        self._next_number += 1

        for index, (cx, cy) in enumerate(entry.cells()):
            cell = self.cells[cy][cx]
            if cell.letter is None:
                cell.letter = word.term[index]
                self._filled_cells.append((cx, cy))
            else:
                for other_id in sorted(cell.word_ids):
                    other = self._entries[other_id]
                    other_position = other.position_of(cx, cy)
                    entry.crossings.append(Crossing(index, other_id, other_position))
                    other.crossings.append(Crossing(other_position, word.id, index))
            cell.word_ids.add(word.id)

        self._entries[word.id] = entry
        self._extend_bounds(entry)
        LOGGER.debug(
            "Placed #%d %s at (%d,%d) %s with %d crossing(s)",
            entry.number,
            word.term,
            x,
            y,
            direction.value,
            len(entry.crossings),
        )
        return entry.snapshot()

    def _extend_bounds(self, entry: GridEntry) -> None:
        end_x, end_y = entry.snapshot().end
        if self._bounds is None:
            self._bounds = (entry.x, entry.y, end_x, end_y)
            return
        min_x, min_y, max_x, max_y = self._bounds
        self._bounds = (
            min(min_x, entry.x),
            min(min_y, entry.y),
            max(max_x, end_x),
            max(max_y, end_y),
        )

    # ------------------------------------------------------------------
    # Export helpers
    # ------------------------------------------------------------------
    def export_grid(self) -> Tuple[Tuple[Optional[str], ...], ...]:
        return tuple(tuple(cell.letter for cell in row) for row in self.cells)

    def format(self, empty: str = ".") -> str:
        return "\n".join(
            " ".join(cell.letter or empty for cell in row) for row in self.cells
        )
