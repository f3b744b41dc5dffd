"""Vocabulary crossword generator.

This package exposes the public API surface via:

- ``vocab_crossword.engine.generator.CrosswordGenerator``: builds one puzzle or
  a batch of puzzles covering a word list.
- ``vocab_crossword.engine.clustering``: groups words into puzzle-sized clusters.
- ``vocab_crossword.engine.worker.PuzzleWorker``: asyncio message shell around
  the generator with progress and cancellation.
- ``vocab_crossword.data.word_list`` helpers: load words from files.
"""

from .core.exceptions import (
    ClusteringIncomplete,
    CrosswordError,
    GenerationCancelled,
    GenerationFailed,
    PlacementError,
    WordListError,
)
from .core.models import Puzzle, PlacedWord, Word, WordCluster
from .engine.clustering import ClusterConfig, cluster_words
from .engine.generator import (
    CrosswordGenerator,
    GenerationResult,
    GeneratorConfig,
    PuzzleBatch,
    can_form_puzzle,
)
from .engine.worker import PuzzleWorker

__all__ = [
    "ClusterConfig",
    "ClusteringIncomplete",
    "CrosswordError",
    "CrosswordGenerator",
    "GenerationCancelled",
    "GenerationFailed",
    "GenerationResult",
    "GeneratorConfig",
    "PlacedWord",
    "PlacementError",
    "Puzzle",
    "PuzzleBatch",
    "PuzzleWorker",
    "Word",
    "WordCluster",
    "WordListError",
    "can_form_puzzle",
    "cluster_words",
]

__version__ = "0.1.0"
