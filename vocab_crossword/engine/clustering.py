"""Group vocabulary words into puzzle-sized clusters by letter overlap."""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..core.constants import RARE_LETTERS, Difficulty
from ..core.exceptions import ClusteringIncomplete
from ..core.models import Word, WordCluster, ensure_unique_ids
from ..utils.logger import get_logger
from ..utils.mapping import dataclass_kwargs


LOGGER = get_logger(__name__)


@dataclass
class ClusterConfig:
    min_cluster_size: int = 8
    max_cluster_size: int = 15
    target_cluster_size: int = 12
    min_overlap: int = 1

    def __post_init__(self) -> None:
        if self.target_cluster_size < 1:
            raise ValueError("target_cluster_size must be at least 1")
        if self.max_cluster_size < 1:
            raise ValueError("max_cluster_size must be at least 1")
        if self.min_cluster_size < 1 or self.min_cluster_size > self.max_cluster_size:
            raise ValueError(
                f"min_cluster_size must be within 1..{self.max_cluster_size}, "
                f"got {self.min_cluster_size}"
            )
        if self.min_overlap < 0:
            raise ValueError("min_overlap must not be negative")

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "ClusterConfig":
        return cls(**dataclass_kwargs(cls, data or {}))


# Configuration used when words that failed every cluster get a second chance.
RETRY_CLUSTER_CONFIG = ClusterConfig(min_cluster_size=3, max_cluster_size=8, target_cluster_size=6)


@dataclass
class ClusteringStats:
    total_clusters: int
    total_words: int
    avg_cluster_size: float
    min_cluster_size: int
    max_cluster_size: int
    avg_score: float
    avg_overlap: float
    difficulty_breakdown: Dict[str, int] = field(default_factory=dict)


# ----------------------------------------------------------------------
# Pairwise compatibility
# ----------------------------------------------------------------------
def shared_letter_count(first: Word, second: Word) -> int:
    return len(set(first.term) & set(second.term))


def crossing_potential(first: Word, second: Word) -> int:
    """Number of (i, j) position pairs at which the two terms agree."""
    first_counts = Counter(first.term)
    second_counts = Counter(second.term)
    return sum(count * second_counts[letter] for letter, count in first_counts.items())


def compatibility_score(first: Word, second: Word, min_overlap: int = 1) -> float:
    shared = shared_letter_count(first, second)
    if shared == 0 or shared < min_overlap:
        return 0.0
    length_bonus = 10 if abs(len(first.term) - len(second.term)) <= 2 else 0
    return float(shared * 10 + crossing_potential(first, second) * 5 + length_bonus)


def _pair(first: str, second: str) -> Tuple[str, str]:
    return (first, second) if first <= second else (second, first)


class CompatibilityMatrix:
    """Symmetric lookup of compatibility scores for every pair of words."""

    def __init__(self, words: Sequence[Word], min_overlap: int = 1) -> None:
        self._scores: Dict[Tuple[str, str], float] = {}
        for index, first in enumerate(words):
            for second in words[index + 1 :]:
                self._scores[_pair(first.id, second.id)] = compatibility_score(
                    first, second, min_overlap
                )

    def score(self, first: Word, second: Word) -> float:
        return self._scores.get(_pair(first.id, second.id), 0.0)

    def average_with(self, word: Word, members: Sequence[Word]) -> float:
        if not members:
            return 0.0
        return sum(self.score(word, member) for member in members) / len(members)


# ----------------------------------------------------------------------
# Cluster metadata
# ----------------------------------------------------------------------
def _pairs(words: Sequence[Word]) -> Iterable[Tuple[Word, Word]]:
    for index, first in enumerate(words):
        for second in words[index + 1 :]:
            yield first, second


def cluster_score(words: Sequence[Word], matrix: CompatibilityMatrix) -> float:
    scores = [matrix.score(first, second) for first, second in _pairs(words)]
    return sum(scores) / len(scores) if scores else 0.0


def average_overlap(words: Sequence[Word]) -> float:
    overlaps = [shared_letter_count(first, second) for first, second in _pairs(words)]
    return sum(overlaps) / len(overlaps) if overlaps else 0.0


def assess_difficulty(words: Sequence[Word]) -> Difficulty:
    """Rate how hard a set of words is to interlock.

    Rare letters are counted once per word and letter. The cluster is hard when
    the rare-letter ratio exceeds 0.3 or the mean length exceeds 9, medium past
    0.1 or 7, easy otherwise.
    """

    if not words:
        return Difficulty.EASY
    avg_length = sum(len(word.term) for word in words) / len(words)
    rare_count = sum(len(RARE_LETTERS & set(word.term)) for word in words)
    rare_ratio = rare_count / len(words)
    if rare_ratio > 0.3 or avg_length > 9:
        return Difficulty.HARD
    if rare_ratio > 0.1 or avg_length > 7:
        return Difficulty.MEDIUM
    return Difficulty.EASY


def build_cluster(
    words: Sequence[Word], matrix: Optional[CompatibilityMatrix] = None
) -> WordCluster:
    if matrix is None:
        matrix = CompatibilityMatrix(words)
    return WordCluster(
        words=list(words),
        score=cluster_score(words, matrix),
        avg_letter_overlap=average_overlap(words),
        difficulty=assess_difficulty(words),
    )


# ----------------------------------------------------------------------
# Clustering
# ----------------------------------------------------------------------
def cluster_words(
    words: Sequence[Word], config: Optional[ClusterConfig] = None
) -> List[WordCluster]:
    """Partition ``words`` into balanced clusters of mutually compatible words.

    Each cluster is seeded with one of the longest words, then clusters take
    turns picking the unassigned word with the best average compatibility with
    their current members. When nothing scores above zero the longest
    unassigned word is taken instead. Full clusters are skipped.
    """

    config = config or ClusterConfig()
    if not words:
        return []
    ensure_unique_ids(words)

    target_count = math.ceil(len(words) / config.target_cluster_size)
    matrix = CompatibilityMatrix(words, config.min_overlap)
    # Stable: equal lengths keep input order.
    ordered = sorted(words, key=lambda word: len(word.term), reverse=True)
    remaining = {word.id for word in words}
    groups: List[List[Word]] = [[] for _ in range(target_count)]

    for group, seed in zip(groups, ordered):
        group.append(seed)
        remaining.discard(seed.id)

    index = 0
    while remaining:
        if all(len(group) >= config.max_cluster_size for group in groups):
            break
        while len(groups[index]) >= config.max_cluster_size:
            index = (index + 1) % target_count
        group = groups[index]

        best: Optional[Word] = None
        best_score = 0.0
        for word in ordered:
            if word.id not in remaining:
                continue
            score = matrix.average_with(word, group)
            if score > best_score:
                best, best_score = word, score
        if best is None:
            best = next(word for word in ordered if word.id in remaining)

        group.append(best)
        remaining.discard(best.id)
        index = (index + 1) % target_count

    clusters = [build_cluster(group, matrix) for group in groups if group]
    validate_clustering(clusters, words)
    LOGGER.debug(
        "Clustered %d words into %d cluster(s): %s",
        len(words),
        len(clusters),
        [len(cluster) for cluster in clusters],
    )
    return clusters


def validate_clustering(clusters: Sequence[WordCluster], words: Sequence[Word]) -> None:
    """Raise :class:`ClusteringIncomplete` unless every word sits in some cluster."""

    covered = {word.id for cluster in clusters for word in cluster.words}
    missing = [word.id for word in words if word.id not in covered]
    if missing:
        raise ClusteringIncomplete(missing)


def redistribute_failed_words(
    failed: Sequence[Word],
    clusters: Sequence[WordCluster],
    min_overlap: int = 1,
) -> List[WordCluster]:
    """Move each failed word into the cluster it is most compatible with.

    Returns new clusters with recomputed metadata; the inputs are not mutated.
    Ties go to the earliest cluster.
    """

    if not failed or not clusters:
        return list(clusters)

    groups = [list(cluster.words) for cluster in clusters]
    pool = list(failed) + [word for group in groups for word in group]
    matrix = CompatibilityMatrix(pool, min_overlap)

    for word in failed:
        best_index = 0
        best_score = -1.0
        for index, group in enumerate(groups):
            score = matrix.average_with(word, group)
            if score > best_score:
                best_index, best_score = index, score
        groups[best_index].append(word)
        LOGGER.debug("Redistributed %s into cluster %d", word.term, best_index)

    return [build_cluster(group, matrix) for group in groups]


def clustering_stats(clusters: Sequence[WordCluster]) -> ClusteringStats:
    breakdown = {difficulty.value: 0 for difficulty in Difficulty}
    for cluster in clusters:
        breakdown[cluster.difficulty.value] += 1
    if not clusters:
        return ClusteringStats(0, 0, 0.0, 0, 0, 0.0, 0.0, breakdown)

    sizes = [len(cluster) for cluster in clusters]
    return ClusteringStats(
        total_clusters=len(clusters),
        total_words=sum(sizes),
        avg_cluster_size=sum(sizes) / len(clusters),
        min_cluster_size=min(sizes),
        max_cluster_size=max(sizes),
        avg_score=sum(cluster.score for cluster in clusters) / len(clusters),
        avg_overlap=sum(cluster.avg_letter_overlap for cluster in clusters) / len(clusters),
        difficulty_breakdown=breakdown,
    )


def split_cluster(cluster: WordCluster, max_size: int) -> List[WordCluster]:
    """Cut an oversize cluster into consecutive chunks; chunks keep the parent score."""

    if max_size < 1:
        raise ValueError("max_size must be at least 1")
    chunks: List[WordCluster] = []
    for start in range(0, len(cluster.words), max_size):
        chunk = cluster.words[start : start + max_size]
        chunks.append(
            WordCluster(
                words=chunk,
                score=cluster.score,
                avg_letter_overlap=average_overlap(chunk),
                difficulty=assess_difficulty(chunk),
            )
        )
    return chunks


def optimize_cluster_sizes(
    clusters: Sequence[WordCluster], max_size: int = 15
) -> List[WordCluster]:
    optimized: List[WordCluster] = []
    for cluster in clusters:
        if len(cluster) <= max_size:
            optimized.append(cluster)
        else:
            optimized.extend(split_cluster(cluster, max_size))
    return optimized
