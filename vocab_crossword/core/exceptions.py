"""Custom exception hierarchy for crossword generation."""

from __future__ import annotations

from typing import Iterable


class CrosswordError(Exception):
    """Base exception for generator failures."""


class PlacementError(CrosswordError):
    """Raised when a word cannot be written to the grid without breaking rules."""


class GenerationFailed(CrosswordError):
    """Raised when not a single word could be placed."""


class GenerationCancelled(CrosswordError):
    """Raised when a caller cancelled generation between two placements."""


class ClusteringIncomplete(CrosswordError):
    """Raised when the clusters do not cover every input word."""

    def __init__(self, missing_ids: Iterable[str]) -> None:
        self.missing_ids = sorted(missing_ids)
        super().__init__(
            f"Clustering left {len(self.missing_ids)} word(s) unassigned: "
            f"{', '.join(self.missing_ids)}"
        )


class WordListError(CrosswordError):
    """Raised when a word list file cannot be parsed."""
