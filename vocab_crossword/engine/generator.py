"""Puzzle generation orchestration.

A single puzzle is built greedily: words are sorted longest first, the longest
word is centred on an empty grid and every following word is committed at its
best-scoring legal position. Several orderings are tried (the sorted one, then
seeded shuffles behind the same anchor word) and the attempt that placed the
most words wins.

Multi-puzzle generation clusters the input, builds one puzzle per cluster,
moves words a puzzle dropped into the clusters still to come and finally
retries leftovers in small clusters. The whole batch shares one deadline.
"""

from __future__ import annotations

import hashlib
import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set

from ..core.exceptions import ClusteringIncomplete, GenerationCancelled, GenerationFailed, PlacementError
from ..core.models import PlacedWord, ProgressUpdate, Puzzle, Word, WordCluster, ensure_unique_ids
from ..utils.logger import get_logger
from ..utils.mapping import dataclass_kwargs
from .clustering import (
    RETRY_CLUSTER_CONFIG,
    ClusterConfig,
    build_cluster,
    cluster_words,
    clustering_stats,
    redistribute_failed_words,
)
from .connectivity import is_connected
from .grid import CrosswordGrid
from .placement import find_placements
from .scoring import PlacementScorer


LOGGER = get_logger(__name__)

ProgressCallback = Callable[[ProgressUpdate], None]


@dataclass
class GeneratorConfig:
    max_grid_size: int = 16
    min_grid_size: int = 10
    timeout_ms: int = 10000
    min_crossings_per_word: int = 1
    max_attempts_per_word: int = 100
    ordering_attempts: int = 30
    strict_connectivity: bool = False
    crop_to_content: bool = False
    redistribute_failed: bool = True
    seed: Optional[str] = None

    def __post_init__(self) -> None:
        if self.min_grid_size < 1:
            raise ValueError("min_grid_size must be at least 1")
        if self.max_grid_size < self.min_grid_size:
            raise ValueError(
                f"max_grid_size ({self.max_grid_size}) is smaller than "
                f"min_grid_size ({self.min_grid_size})"
            )
        if self.timeout_ms < 0:
            raise ValueError("timeout_ms must not be negative")
        if self.min_crossings_per_word < 1:
            raise ValueError("min_crossings_per_word must be at least 1")
        if self.max_attempts_per_word < 1:
            raise ValueError("max_attempts_per_word must be at least 1")
        if self.ordering_attempts < 1:
            raise ValueError("ordering_attempts must be at least 1")
        if self.seed is not None:
            self.seed = str(self.seed)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "GeneratorConfig":
        return cls(**dataclass_kwargs(cls, data or {}))

    def grid_size_for(self, longest_word: int) -> int:
        return max(self.min_grid_size, min(self.max_grid_size, longest_word * 2))


@dataclass
class GenerationResult:
    """Outcome and statistics of a single-puzzle generation call."""

    puzzle: Puzzle
    placed_word_ids: List[str]
    unplaced_words: List[Word]
    grid_size: int
    time_elapsed_ms: float
    attempts_made: int
    orderings_tried: int
    connected: bool
    timed_out: bool = False

    def to_jsonable(self) -> Dict[str, Any]:
        return {
            "puzzle": self.puzzle.to_jsonable(),
            "stats": {
                "placedWordIds": list(self.placed_word_ids),
                "unplacedWordIds": [word.id for word in self.unplaced_words],
                "gridSize": self.grid_size,
                "timeElapsedMs": round(self.time_elapsed_ms, 1),
                "attemptsMade": self.attempts_made,
                "orderingsTried": self.orderings_tried,
                "connected": self.connected,
                "timedOut": self.timed_out,
            },
        }


@dataclass
class PuzzleBatch:
    puzzles: List[Puzzle]
    total_words: int
    total_placed: int
    unplaced_words: List[Word] = field(default_factory=list)
    timed_out: bool = False

    @property
    def coverage(self) -> float:
        """Share of the input words placed in some puzzle, as a percentage."""
        if not self.total_words:
            return 0.0
        return self.total_placed / self.total_words * 100

    def to_jsonable(self) -> Dict[str, Any]:
        return {
            "puzzles": [puzzle.to_jsonable() for puzzle in self.puzzles],
            "stats": {
                "totalWords": self.total_words,
                "totalPlaced": self.total_placed,
                "coverage": round(self.coverage, 1),
                "unplacedWordIds": [word.id for word in self.unplaced_words],
                "timedOut": self.timed_out,
            },
        }


@dataclass
class _Attempt:
    grid: CrosswordGrid
    failed_attempts: int
    timed_out: bool


def derive_seed(words: Sequence[Word]) -> str:
    """Seed string shared by every call made with the same set of word ids."""
    return "|".join(sorted(word.id for word in words))


def puzzle_id_for(seed: str) -> str:
    return "puzzle-" + hashlib.sha1(seed.encode("utf-8")).hexdigest()[:12]


def can_form_puzzle(words: Sequence[Word]) -> bool:
    """Cheap pre-check: at least one letter must appear in two different words."""

    if not words:
        return False
    if len(words) == 1:
        return True
    seen: Set[str] = set()
    for word in words:
        letters = set(word.term)
        if letters & seen:
            return True
        seen |= letters
    return False


def crop_to_square(puzzle: Puzzle) -> Puzzle:
    """Crop a puzzle to the smallest square holding every word, content centred."""

    if not puzzle.placed_words:
        return puzzle
    min_x = min(placed.x for placed in puzzle.placed_words)
    min_y = min(placed.y for placed in puzzle.placed_words)
    max_x = max(placed.end[0] for placed in puzzle.placed_words)
    max_y = max(placed.end[1] for placed in puzzle.placed_words)
    width = max_x - min_x + 1
    height = max_y - min_y + 1
    side = max(width, height)
    shift_x = (side - width) // 2 - min_x
    shift_y = (side - height) // 2 - min_y

    rows: List[List[Optional[str]]] = [[None] * side for _ in range(side)]
    for y in range(min_y, max_y + 1):
        for x in range(min_x, max_x + 1):
            rows[y + shift_y][x + shift_x] = puzzle.grid[y][x]

    placed_words = tuple(
        PlacedWord(
            id=placed.id,
            word=placed.word,
            clue=placed.clue,
            x=placed.x + shift_x,
            y=placed.y + shift_y,
            direction=placed.direction,
            number=placed.number,
            crossings=placed.crossings,
        )
        for placed in puzzle.placed_words
    )
    return Puzzle(
        id=puzzle.id,
        grid_size=side,
        grid=tuple(tuple(row) for row in rows),
        placed_words=placed_words,
    )


class CrosswordGenerator:
    """Greedy, deterministic crossword builder for vocabulary lists."""

    def __init__(
        self,
        config: Optional[GeneratorConfig] = None,
        scorer: Optional[PlacementScorer] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or GeneratorConfig()
        self.scorer = scorer or PlacementScorer()
        self.logger = logger or LOGGER

    # ------------------------------------------------------------------
    # Single puzzle
    # ------------------------------------------------------------------
    def generate_puzzle(
        self, words: Sequence[Word], cancel_event: Optional[threading.Event] = None
    ) -> Puzzle:
        return self.generate_with_stats(words, cancel_event).puzzle

    def generate_with_stats(
        self,
        words: Sequence[Word],
        cancel_event: Optional[threading.Event] = None,
        deadline: Optional[float] = None,
    ) -> GenerationResult:
        """Build one puzzle from ``words``.

        ``deadline`` is a :func:`time.monotonic` timestamp shared by a whole
        batch; without it the call gets ``timeout_ms`` of its own.
        """

        words = list(words)
        ensure_unique_ids(words)
        if not words:
            raise GenerationFailed("No words to place")

        started = time.monotonic()
        if deadline is None:
            deadline = self.deadline_from(started)
        seed = self.seed_for(words)
        rng = random.Random(seed)
        # sorted() is stable: equally long words keep their input order.
        ordered = sorted(words, key=lambda word: len(word.term), reverse=True)
        grid_size = self.config.grid_size_for(len(ordered[0].term))

        best: Optional[_Attempt] = None
        orderings = 0
        attempts_made = 0
        timed_out = False
        for index in range(self.config.ordering_attempts):
            if index == 0:
                ordering = ordered
            else:
                if time.monotonic() >= deadline:
                    timed_out = True
                    break
                rest = ordered[1:]
                rng.shuffle(rest)
                ordering = [ordered[0]] + rest

            attempt = self._attempt(ordering, grid_size, deadline, cancel_event)
            orderings += 1
            attempts_made += attempt.failed_attempts
            timed_out = timed_out or attempt.timed_out
            placed = attempt.grid.placed_count
            self.logger.debug(
                "Ordering %d/%d placed %d/%d words",
                index + 1,
                self.config.ordering_attempts,
                placed,
                len(words),
            )

            if placed and self.config.strict_connectivity and not is_connected(attempt.grid):
                self.logger.debug("Rejected disconnected layout from ordering %d", index + 1)
            elif placed and (best is None or placed > best.grid.placed_count):
                best = attempt
            if best is not None and best.grid.placed_count == len(words):
                break
            if attempt.timed_out:
                break

        if best is None:
            raise GenerationFailed(f"Could not place any of {len(words)} word(s)")

        connected = is_connected(best.grid)
        if not connected:
            self.logger.warning("Generated puzzle has disconnected components")

        puzzle = Puzzle(
            id=puzzle_id_for(seed),
            grid_size=best.grid.size,
            grid=best.grid.export_grid(),
            placed_words=tuple(best.grid.placed_words()),
        )
        if self.config.crop_to_content:
            cropped = crop_to_square(puzzle)
            if cropped.grid_size < puzzle.grid_size:
                self.logger.debug("Cropped %dx%d grid to %dx%d", puzzle.grid_size,
                                  puzzle.grid_size, cropped.grid_size, cropped.grid_size)
            puzzle = cropped

        placed_ids = set(puzzle.word_ids)
        elapsed_ms = (time.monotonic() - started) * 1000
        self.logger.info(
            "Generated %s: %d/%d words on %dx%d grid in %.0fms (%d ordering(s)%s)",
            puzzle.id,
            len(placed_ids),
            len(words),
            puzzle.grid_size,
            puzzle.grid_size,
            elapsed_ms,
            orderings,
            ", timed out" if timed_out else "",
        )
        return GenerationResult(
            puzzle=puzzle,
            placed_word_ids=puzzle.word_ids,
            unplaced_words=[word for word in words if word.id not in placed_ids],
            grid_size=puzzle.grid_size,
            time_elapsed_ms=elapsed_ms,
            attempts_made=attempts_made,
            orderings_tried=orderings,
            connected=connected,
            timed_out=timed_out,
        )

    def seed_for(self, words: Sequence[Word]) -> str:
        base = derive_seed(words)
        if self.config.seed is None:
            return base
        return f"{self.config.seed}#{base}"

    def deadline_from(self, started: float) -> float:
        return started + self.config.timeout_ms / 1000

    def _attempt(
        self,
        ordering: Sequence[Word],
        grid_size: int,
        deadline: float,
        cancel_event: Optional[threading.Event],
    ) -> _Attempt:
        grid = CrosswordGrid(grid_size)
        per_word = self.config.max_attempts_per_word
        budget = per_word * len(ordering)
        # Counts rejected candidates plus words left unplaced; never reset.
        failed = 0
        for index, word in enumerate(ordering):
            self._check_cancelled(cancel_event)
            if index > 0 and time.monotonic() >= deadline:
                self.logger.debug("Timed out after %d placed word(s)", grid.placed_count)
                return _Attempt(grid, failed, True)
            if failed >= budget:
                self.logger.warning(
                    "Attempt budget of %d exhausted after %d word(s), stopping", budget, index
                )
                break

            options = find_placements(word, grid, self.config.min_crossings_per_word)
            placed = False
            for option in self.scorer.rank(options, grid)[:per_word]:
                try:
                    grid.place(word, option.x, option.y, option.direction)
                except PlacementError as exc:
                    failed += 1
                    self.logger.debug("Placement rejected: %s", exc)
                    continue
                placed = True
                break
            if not placed:
                failed += 1
                self.logger.debug("No legal placement for %s", word.term)
        return _Attempt(grid, failed, False)

    # ------------------------------------------------------------------
    # Multiple puzzles
    # ------------------------------------------------------------------
    def generate_puzzles(
        self,
        words: Sequence[Word],
        cluster_config: Optional[ClusterConfig] = None,
        cancel_event: Optional[threading.Event] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> PuzzleBatch:
        """Cover ``words`` with as few well-packed puzzles as the heuristics allow."""

        words = list(words)
        ensure_unique_ids(words)
        if not words:
            return PuzzleBatch(puzzles=[], total_words=0, total_placed=0)
        cluster_config = cluster_config or ClusterConfig()
        deadline = self.deadline_from(time.monotonic())

        self._report(progress, "clustering", 0, f"Clustering {len(words)} words")
        clusters = self._cluster(words, cluster_config)
        stats = clustering_stats(clusters)
        self.logger.info(
            "Created %d cluster(s), avg size %.1f, avg score %.1f, difficulty %s",
            stats.total_clusters,
            stats.avg_cluster_size,
            stats.avg_score,
            stats.difficulty_breakdown,
        )

        puzzles: List[Puzzle] = []
        failed: List[Word] = []
        timed_out = False
        index = 0
        while index < len(clusters):
            self._check_cancelled(cancel_event)
            if index > 0 and time.monotonic() >= deadline:
                self.logger.warning(
                    "Timed out after %d of %d cluster(s)", index, len(clusters)
                )
                timed_out = True
                break
            cluster = clusters[index]
            self._report(
                progress,
                "generating",
                10 + int(80 * index / len(clusters)),
                f"Puzzle {index + 1}/{len(clusters)} ({len(cluster)} words, "
                f"{cluster.difficulty.value})",
            )
            try:
                result = self.generate_with_stats(cluster.words, cancel_event, deadline)
            except GenerationFailed as exc:
                self.logger.warning("Cluster %d failed: %s", index + 1, exc)
                failed.extend(cluster.words)
                index += 1
                continue

            puzzles.append(result.puzzle)
            timed_out = timed_out or result.timed_out
            unplaced = result.unplaced_words
            if unplaced:
                self.logger.info(
                    "%d word(s) not placed: %s",
                    len(unplaced),
                    ", ".join(word.term for word in unplaced),
                )
                remaining = clusters[index + 1 :]
                if remaining and self.config.redistribute_failed:
                    clusters = clusters[: index + 1] + redistribute_failed_words(
                        unplaced, remaining, cluster_config.min_overlap
                    )
                else:
                    failed.extend(unplaced)
            index += 1

        if failed and not timed_out:
            self._report(progress, "retrying", 90, f"Retrying {len(failed)} unplaced word(s)")
            for cluster in self._cluster(failed, RETRY_CLUSTER_CONFIG):
                self._check_cancelled(cancel_event)
                if time.monotonic() >= deadline:
                    self.logger.warning("Timed out before retrying %d word(s)", len(cluster))
                    timed_out = True
                    break
                try:
                    result = self.generate_with_stats(cluster.words, cancel_event, deadline)
                except GenerationFailed as exc:
                    self.logger.warning("Retry cluster failed: %s", exc)
                    continue
                puzzles.append(result.puzzle)
                timed_out = timed_out or result.timed_out

        placed_ids = {placed.id for puzzle in puzzles for placed in puzzle.placed_words}
        batch = PuzzleBatch(
            puzzles=puzzles,
            total_words=len(words),
            total_placed=len(placed_ids),
            unplaced_words=[word for word in words if word.id not in placed_ids],
            timed_out=timed_out,
        )
        self.logger.info(
            "Generated %d puzzle(s): %d/%d words placed (%.1f%%)",
            len(puzzles),
            batch.total_placed,
            batch.total_words,
            batch.coverage,
        )
        self._report(progress, "complete", 100, f"{len(puzzles)} puzzle(s) generated")
        return batch

    def _cluster(self, words: List[Word], config: ClusterConfig) -> List[WordCluster]:
        if len(words) <= config.target_cluster_size:
            return [build_cluster(words)]
        try:
            return cluster_words(words, config)
        except ClusteringIncomplete as exc:
            self.logger.warning("%s; falling back to a single cluster", exc)
            return [build_cluster(words)]

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelled("Generation cancelled by caller")

    @staticmethod
    def _report(
        progress: Optional[ProgressCallback], stage: str, percent: int, message: str
    ) -> None:
        if progress is not None:
            progress(ProgressUpdate(stage=stage, percent=percent, message=message))
