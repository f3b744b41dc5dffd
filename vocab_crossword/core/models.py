"""Data models supporting the crossword generator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from ..data.normalization import clean_word
from .constants import Difficulty, Direction


@dataclass
class Cell:
    """Represents a grid cell and the words running through it."""

    letter: Optional[str] = None
    word_ids: Set[str] = field(default_factory=set)

    def is_empty(self) -> bool:
        return self.letter is None


@dataclass(frozen=True)
class Word:
    """A vocabulary entry to place: stable id, letters and clue text."""

    id: str
    term: str
    clue: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Word id must not be empty")
        normalized = clean_word(self.term)
        if not normalized:
            raise ValueError(f"Word {self.id!r} has no letters in term {self.term!r}")
        object.__setattr__(self, "term", normalized)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Word":
        clue = data.get("clue")
        if clue is None:
            clue = data.get("translation", "")
        return cls(id=str(data["id"]), term=str(data["term"]), clue=str(clue or ""))

    def __len__(self) -> int:
        return len(self.term)


def ensure_unique_ids(words: Sequence[Word]) -> None:
    """Reject word lists in which two entries share an id."""

    seen: Set[str] = set()
    duplicates: Set[str] = set()
    for word in words:
        if word.id in seen:
            duplicates.add(word.id)
        seen.add(word.id)
    if duplicates:
        raise ValueError(f"Duplicate word ids: {', '.join(sorted(duplicates))}")


@dataclass(frozen=True)
class Crossing:
    """Where a placed word shares a cell with another placed word."""

    position: int
    other_word_id: str
    other_position: int


@dataclass
class PlacementOption:
    """A candidate position for a word, scored before one is committed."""

    word: Word
    x: int
    y: int
    direction: Direction
    crossings: List[Crossing] = field(default_factory=list)
    score: float = 0.0

    @property
    def cells(self) -> List[Tuple[int, int]]:
        dx, dy = self.direction.step
        return [(self.x + dx * i, self.y + dy * i) for i in range(len(self.word.term))]

    @property
    def key(self) -> Tuple[int, int, Direction]:
        return (self.x, self.y, self.direction)


@dataclass(frozen=True)
class PlacedWord:
    """A word committed to the grid; ``number`` follows placement order."""

    id: str
    word: str
    clue: str
    x: int
    y: int
    direction: Direction
    number: int
    crossings: Tuple[Crossing, ...] = ()

    @property
    def end(self) -> Tuple[int, int]:
        dx, dy = self.direction.step
        return (self.x + dx * (len(self.word) - 1), self.y + dy * (len(self.word) - 1))

    def to_jsonable(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "word": self.word,
            "clue": self.clue,
            "x": self.x,
            "y": self.y,
            "direction": self.direction.value,
            "number": self.number,
            "crossings": [
                {
                    "position": crossing.position,
                    "otherWordId": crossing.other_word_id,
                    "otherWordPosition": crossing.other_position,
                }
                for crossing in self.crossings
            ],
        }


@dataclass(frozen=True)
class Puzzle:
    """Immutable snapshot of a finished grid."""

    id: str
    grid_size: int
    grid: Tuple[Tuple[Optional[str], ...], ...]
    placed_words: Tuple[PlacedWord, ...]

    @property
    def word_ids(self) -> List[str]:
        return [placed.id for placed in self.placed_words]

    def to_jsonable(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "gridSize": self.grid_size,
            "grid": [list(row) for row in self.grid],
            "placedWords": [placed.to_jsonable() for placed in self.placed_words],
        }


@dataclass
class WordCluster:
    """A group of words destined for the same puzzle."""

    words: List[Word]
    score: float = 0.0
    avg_letter_overlap: float = 0.0
    difficulty: Difficulty = Difficulty.EASY

    @property
    def word_ids(self) -> List[str]:
        return [word.id for word in self.words]

    def __len__(self) -> int:
        return len(self.words)


@dataclass(frozen=True)
class ProgressUpdate:
    """Progress notification emitted while generating puzzles."""

    stage: str
    percent: int
    message: Optional[str] = None

    def to_jsonable(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"stage": self.stage, "percent": self.percent}
        if self.message:
            payload["message"] = self.message
        return payload
