"""Connectivity checks over the crossing graph of placed words."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Set

from .grid import CrosswordGrid


@dataclass
class ConnectivityStats:
    is_fully_connected: bool
    total_words: int
    island_count: int
    largest_island_size: int
    average_crossings_per_word: float


def build_word_graph(grid: CrosswordGrid) -> Dict[str, Set[str]]:
    graph: Dict[str, Set[str]] = {entry.word.id: set() for entry in grid.entries()}
    for entry in grid.entries():
        for crossing in entry.crossings:
            graph[entry.word.id].add(crossing.other_word_id)
            graph.setdefault(crossing.other_word_id, set()).add(entry.word.id)
    return graph


def _reachable(start: str, graph: Dict[str, Set[str]]) -> List[str]:
    seen = {start}
    order = [start]
    stack = [start]
    while stack:
        current = stack.pop()
        for neighbour in sorted(graph.get(current, ())):
            if neighbour not in seen:
                seen.add(neighbour)
                order.append(neighbour)
                stack.append(neighbour)
    return order


def is_connected(grid: CrosswordGrid) -> bool:
    """True when every placed word is reachable from the seed word."""

    entries = grid.entries()
    if len(entries) <= 1:
        return True
    graph = build_word_graph(grid)
    return len(_reachable(entries[0].word.id, graph)) == len(entries)


def find_islands(grid: CrosswordGrid) -> List[List[str]]:
    """Connected components of word ids, ordered by their earliest placement."""

    graph = build_word_graph(grid)
    visited: Set[str] = set()
    islands: List[List[str]] = []
    for entry in grid.entries():
        if entry.word.id in visited:
            continue
        island = _reachable(entry.word.id, graph)
        visited.update(island)
        islands.append(island)
    return islands


def connectivity_stats(grid: CrosswordGrid) -> ConnectivityStats:
    entries = grid.entries()
    islands = find_islands(grid)
    # Every crossing is recorded on both words.
    unique_crossings = sum(len(entry.crossings) for entry in entries) / 2
    return ConnectivityStats(
        is_fully_connected=len(islands) <= 1,
        total_words=len(entries),
        island_count=len(islands),
        largest_island_size=max((len(island) for island in islands), default=0),
        average_crossings_per_word=unique_crossings / len(entries) if entries else 0.0,
    )


def validate_after_placement(grid: CrosswordGrid, word_id: str) -> bool:
    """Check that a freshly placed word keeps the puzzle in one piece."""

    if grid.placed_count <= 1:
        return True
    if not grid.has_word(word_id) or not grid.entry(word_id).crossings:
        return False
    return is_connected(grid)
