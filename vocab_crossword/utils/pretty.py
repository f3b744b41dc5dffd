"""Pretty-print helpers for generated puzzles."""

from __future__ import annotations

import sys
from collections import Counter
from typing import TYPE_CHECKING

from ..core.constants import Direction

if TYPE_CHECKING:
    from ..core.models import Puzzle
    from ..engine.generator import PuzzleBatch


EMPTY_SYMBOL = "."


def format_grid(puzzle: Puzzle) -> str:
    size = puzzle.grid_size
    header_cells = [f"{c:>2}" for c in range(size)]
    lines = ["    " + " ".join(header_cells)]
    lines.append("    " + "-" * (3 * size - 1))
    for y, row in enumerate(puzzle.grid):
        row_render = " ".join(f"{letter or EMPTY_SYMBOL:>2}" for letter in row)
        lines.append(f"{y:>2} | {row_render}")
    return "\n".join(lines)


def format_clues(puzzle: Puzzle) -> str:
    lines = []
    for direction in Direction:
        entries = [placed for placed in puzzle.placed_words if placed.direction is direction]
        if not entries:
            continue
        lines.append(direction.value.capitalize())
        for placed in sorted(entries, key=lambda entry: entry.number):
            clue = placed.clue or "(no clue)"
            lines.append(f"  {placed.number:>2}. {clue} ({len(placed.word)})")
    return "\n".join(lines)


def pretty_print_puzzle(puzzle: Puzzle, *, label: str | None = None, stream=None) -> None:
    """Print the grid followed by numbered clues."""

    stream = stream or sys.stdout
    if label:
        print(label, file=stream)
    print(format_grid(puzzle), file=stream)
    print(file=stream)
    print(format_clues(puzzle), file=stream)


def print_batch_stats(batch: PuzzleBatch, *, stream=None) -> None:
    """Print every puzzle of a batch with its geometry, then coverage totals."""

    stream = stream or sys.stdout
    for index, puzzle in enumerate(batch.puzzles, start=1):
        pretty_print_puzzle(puzzle, label=f"=== Puzzle {index} ({puzzle.id}) ===", stream=stream)

        total_cells = puzzle.grid_size * puzzle.grid_size
        letter_cells = sum(1 for row in puzzle.grid for letter in row if letter)
        lengths = Counter(len(placed.word) for placed in puzzle.placed_words)
        crossings = sum(len(placed.crossings) for placed in puzzle.placed_words) // 2

        print(file=stream)
        print("--- Grid ---", file=stream)
        print(f"  Size:          {puzzle.grid_size} x {puzzle.grid_size} ({total_cells} cells)", file=stream)
        print(f"  Letters:       {letter_cells} ({letter_cells / total_cells * 100:.0f}%)", file=stream)
        print(f"  Words:         {len(puzzle.placed_words)}", file=stream)
        print(f"  Crossings:     {crossings}", file=stream)
        if lengths:
            dist_parts = [f"{length}:{count}" for length, count in sorted(lengths.items())]
            print(f"  Distribution:  {' '.join(dist_parts)}", file=stream)
        print(file=stream)

    print("--- Coverage ---", file=stream)
    print(f"  Puzzles:       {len(batch.puzzles)}", file=stream)
    print(f"  Placed:        {batch.total_placed}/{batch.total_words} ({batch.coverage:.1f}%)", file=stream)
    if batch.unplaced_words:
        print(f"  Unplaced:      {', '.join(word.term for word in batch.unplaced_words)}", file=stream)
    if batch.timed_out:
        print("  Timed out:     yes", file=stream)
