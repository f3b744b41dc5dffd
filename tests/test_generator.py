import threading
import time
import unittest
from dataclasses import replace

from vocab_crossword.core.constants import Direction
from vocab_crossword.core.exceptions import GenerationCancelled, GenerationFailed
from vocab_crossword.core.models import Puzzle, Word
from vocab_crossword.engine.clustering import ClusterConfig, build_cluster, cluster_words
from vocab_crossword.engine.generator import (
    CrosswordGenerator,
    GeneratorConfig,
    can_form_puzzle,
    crop_to_square,
    derive_seed,
)
from vocab_crossword.engine.scoring import PlacementScorer

SCENARIO_TERMS = [
    "TIME", "TEAM", "MATE", "METAL", "LATE", "TALE",
    "ALE", "EAT", "TEA", "MEAT", "STEAM", "MASTER",
]

MULTI_TERMS = [
    "ANIMAL", "BASKET", "CANDLE", "DINNER", "ENGINE", "FARMER", "GARDEN", "HAMMER",
    "ISLAND", "JACKET", "KITTEN", "LEMON", "MARKET", "NATURE", "ORANGE", "PENCIL",
    "RABBIT", "SALT", "TABLE", "TRAIN", "WINTER", "WINDOW", "WATER", "STONE",
    "RIVER", "PLANET", "SILVER", "MIRROR", "LETTER", "SISTER", "BREAD", "CHAIR",
    "DANCE", "EARTH", "HORSE", "LIGHT", "MONEY", "NORTH", "PAPER", "QUEEN",
    "SMILE", "TIGER", "UNCLE", "VOICE", "SUGAR",
]


def make_words(terms) -> list:
    return [Word(str(index), term, f"clue {index}") for index, term in enumerate(terms, start=1)]


def assert_puzzle_consistent(case: unittest.TestCase, puzzle: Puzzle) -> None:
    for index, placed in enumerate(puzzle.placed_words):
        dx, dy = placed.direction.step
        for offset, letter in enumerate(placed.word):
            case.assertEqual(puzzle.grid[placed.y + dy * offset][placed.x + dx * offset], letter)
        if index > 0:
            case.assertGreaterEqual(len(placed.crossings), 1, placed.word)


class SlowScorer(PlacementScorer):
    def __init__(self, delay: float) -> None:
        super().__init__()
        self.delay = delay

    def rank(self, options, grid):
        time.sleep(self.delay)
        return super().rank(options, grid)


class OffGridScorer(PlacementScorer):
    """Puts an out-of-bounds candidate first once the grid holds a word."""

    def rank(self, options, grid):
        ranked = super().rank(options, grid)
        if grid.placed_count and ranked:
            ranked.insert(0, replace(ranked[0], x=grid.size))
        return ranked


class RecordingGenerator(CrosswordGenerator):
    """Records the word ids handed to every single-puzzle call."""

    def __init__(self, config=None, clusters=None) -> None:
        super().__init__(config)
        self.fixed_clusters = clusters
        self.calls = []

    def _cluster(self, words, config):
        if self.fixed_clusters is not None:
            clusters, self.fixed_clusters = self.fixed_clusters, None
            return clusters
        return super()._cluster(words, config)

    def generate_with_stats(self, words, cancel_event=None, deadline=None):
        self.calls.append([word.id for word in words])
        return super().generate_with_stats(words, cancel_event, deadline)


class SinglePuzzleTests(unittest.TestCase):
    def test_scenario_anchors_longest_word_and_places_most(self) -> None:
        config = GeneratorConfig(min_grid_size=20, max_grid_size=20)
        result = CrosswordGenerator(config).generate_with_stats(make_words(SCENARIO_TERMS))
        puzzle = result.puzzle

        self.assertEqual(puzzle.grid_size, 20)
        first = puzzle.placed_words[0]
        self.assertEqual(first.word, "MASTER")
        self.assertEqual((first.x, first.y, first.direction), (7, 10, Direction.HORIZONTAL))
        self.assertEqual(first.number, 1)
        self.assertGreaterEqual(len(puzzle.placed_words), 10)
        self.assertEqual(
            [placed.number for placed in puzzle.placed_words],
            list(range(1, len(puzzle.placed_words) + 1)),
        )
        self.assertTrue(result.connected)
        self.assertFalse(result.timed_out)
        assert_puzzle_consistent(self, puzzle)

    def test_same_words_give_identical_puzzles(self) -> None:
        words = make_words(SCENARIO_TERMS)
        first = CrosswordGenerator().generate_puzzle(words)
        second = CrosswordGenerator().generate_puzzle(list(words))
        self.assertEqual(first, second)
        self.assertEqual(first.to_jsonable(), second.to_jsonable())

    def test_explicit_seed_changes_puzzle_id(self) -> None:
        words = make_words(SCENARIO_TERMS)
        plain = CrosswordGenerator().generate_puzzle(words)
        seeded = CrosswordGenerator(GeneratorConfig(seed="daily")).generate_puzzle(words)
        self.assertNotEqual(plain.id, seeded.id)

    def test_single_word(self) -> None:
        result = CrosswordGenerator().generate_with_stats([Word("1", "HELLO", "Hallo")])

        self.assertEqual(result.placed_word_ids, ["1"])
        self.assertEqual(result.puzzle.placed_words[0].crossings, ())
        self.assertTrue(result.connected)
        self.assertEqual(result.grid_size, 10)
        self.assertEqual(result.unplaced_words, [])

    def test_grid_size_is_clamped(self) -> None:
        generator = CrosswordGenerator()
        self.assertEqual(generator.generate_puzzle([Word("1", "CAT")]).grid_size, 10)
        self.assertEqual(generator.generate_puzzle([Word("1", "KINDERGARTEN")]).grid_size, 16)

    def test_placed_never_exceeds_input(self) -> None:
        words = make_words(SCENARIO_TERMS + ["QUIZ", "BOX"])
        result = CrosswordGenerator().generate_with_stats(words)
        self.assertLessEqual(len(result.placed_word_ids), len(words))
        self.assertEqual(
            len(result.placed_word_ids) + len(result.unplaced_words), len(words)
        )
        assert_puzzle_consistent(self, result.puzzle)

    def test_zero_placed_words_fail(self) -> None:
        with self.assertRaises(GenerationFailed):
            CrosswordGenerator().generate_puzzle([Word("1", "INTERNATIONALIZATION")])
        with self.assertRaises(GenerationFailed):
            CrosswordGenerator().generate_puzzle([])

    def test_duplicate_ids_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            CrosswordGenerator().generate_puzzle([Word("1", "CAT"), Word("1", "HAT")])

    def test_zero_timeout_keeps_only_the_anchor(self) -> None:
        config = GeneratorConfig(timeout_ms=0)
        result = CrosswordGenerator(config).generate_with_stats(make_words(SCENARIO_TERMS))

        self.assertTrue(result.timed_out)
        self.assertEqual(result.orderings_tried, 1)
        self.assertEqual([placed.word for placed in result.puzzle.placed_words], ["MASTER"])
        self.assertEqual(len(result.unplaced_words), 11)

    def test_timeout_mid_placement_returns_partial_puzzle(self) -> None:
        config = GeneratorConfig(timeout_ms=120)
        generator = CrosswordGenerator(config, scorer=SlowScorer(0.05))
        result = generator.generate_with_stats(make_words(SCENARIO_TERMS))

        self.assertTrue(result.timed_out)
        self.assertEqual(result.orderings_tried, 1)
        self.assertEqual(result.puzzle.placed_words[0].word, "MASTER")
        self.assertLess(len(result.placed_word_ids), len(SCENARIO_TERMS))
        self.assertEqual(
            len(result.placed_word_ids) + len(result.unplaced_words), len(SCENARIO_TERMS)
        )
        self.assertTrue(result.to_jsonable()["stats"]["timedOut"])

    def test_attempt_budget_stops_placement(self) -> None:
        words = make_words(["BANANA", "CAT", "HAT", "MAT", "RAT"])
        config = GeneratorConfig(max_attempts_per_word=1, ordering_attempts=1)
        generator = CrosswordGenerator(config, scorer=OffGridScorer())

        with self.assertLogs("vocab_crossword.engine.generator", level="WARNING") as logs:
            result = generator.generate_with_stats(words)

        self.assertTrue(any("budget of 5 exhausted" in line for line in logs.output))
        # CAT, HAT and MAT each lose one rejected candidate and end up unplaced.
        self.assertEqual(result.attempts_made, 6)
        self.assertEqual(result.placed_word_ids, ["1"])
        self.assertEqual([word.term for word in result.unplaced_words], ["CAT", "HAT", "MAT", "RAT"])
        self.assertFalse(result.timed_out)

    def test_cancel_event_stops_generation(self) -> None:
        event = threading.Event()
        event.set()
        with self.assertRaises(GenerationCancelled):
            CrosswordGenerator().generate_puzzle(make_words(SCENARIO_TERMS), cancel_event=event)

    def test_strict_connectivity_accepts_connected_layouts(self) -> None:
        config = GeneratorConfig(strict_connectivity=True)
        result = CrosswordGenerator(config).generate_with_stats(make_words(SCENARIO_TERMS))
        self.assertTrue(result.connected)

    def test_crop_to_content(self) -> None:
        words = make_words(SCENARIO_TERMS)
        full = CrosswordGenerator().generate_puzzle(words)
        cropped = CrosswordGenerator(GeneratorConfig(crop_to_content=True)).generate_puzzle(words)

        self.assertLessEqual(cropped.grid_size, full.grid_size)
        self.assertEqual(len(cropped.placed_words), len(full.placed_words))
        self.assertEqual(crop_to_square(cropped), cropped)
        assert_puzzle_consistent(self, cropped)


class GeneratorHelperTests(unittest.TestCase):
    def test_derive_seed_ignores_order(self) -> None:
        words = make_words(["CAT", "DOG", "EMU"])
        self.assertEqual(derive_seed(words), "1|2|3")
        self.assertEqual(derive_seed(list(reversed(words))), "1|2|3")

    def test_can_form_puzzle(self) -> None:
        self.assertFalse(can_form_puzzle([]))
        self.assertTrue(can_form_puzzle([Word("1", "CAT")]))
        self.assertFalse(can_form_puzzle(make_words(["CAT", "DOG"])))
        self.assertTrue(can_form_puzzle(make_words(["CAT", "DOG", "TOP"])))

    def test_config_from_mapping(self) -> None:
        config = GeneratorConfig.from_mapping({"maxGridSize": 20, "timeoutMs": 500, "seed": 7})
        self.assertEqual(config.max_grid_size, 20)
        self.assertEqual(config.timeout_ms, 500)
        self.assertEqual(config.seed, "7")
        self.assertEqual(config.min_grid_size, 10)

    def test_config_validation(self) -> None:
        with self.assertRaises(ValueError):
            GeneratorConfig(min_grid_size=12, max_grid_size=10)
        with self.assertRaises(ValueError):
            GeneratorConfig(timeout_ms=-1)
        with self.assertRaises(ValueError):
            GeneratorConfig.from_mapping({"gridWidth": 10})


class MultiPuzzleTests(unittest.TestCase):
    def setUp(self) -> None:
        self.words = make_words(MULTI_TERMS)
        self.config = GeneratorConfig(min_grid_size=16, max_grid_size=16, timeout_ms=30000)

    def test_clusters_stay_within_bounds(self) -> None:
        cluster_config = ClusterConfig()
        clusters = cluster_words(self.words, cluster_config)
        self.assertEqual(len(clusters), 4)
        for cluster in clusters:
            self.assertGreaterEqual(len(cluster), cluster_config.min_cluster_size)
            self.assertLessEqual(len(cluster), cluster_config.max_cluster_size)

    def test_batch_covers_most_words(self) -> None:
        updates = []
        batch = CrosswordGenerator(self.config).generate_puzzles(
            self.words, progress=updates.append
        )

        self.assertEqual(batch.total_words, 45)
        self.assertGreaterEqual(batch.coverage, 90.0)
        self.assertEqual(batch.total_placed + len(batch.unplaced_words), 45)
        placed_ids = [placed.id for puzzle in batch.puzzles for placed in puzzle.placed_words]
        self.assertEqual(len(placed_ids), len(set(placed_ids)))
        for puzzle in batch.puzzles:
            self.assertLessEqual(puzzle.grid_size, 16)
            assert_puzzle_consistent(self, puzzle)

        self.assertEqual(updates[0].stage, "clustering")
        self.assertEqual(updates[-1].stage, "complete")
        self.assertEqual(updates[-1].percent, 100)
        stats = batch.to_jsonable()["stats"]
        self.assertEqual(stats["totalWords"], 45)
        self.assertEqual(stats["totalPlaced"], batch.total_placed)
        self.assertEqual(stats["unplacedWordIds"], [word.id for word in batch.unplaced_words])
        self.assertFalse(stats["timedOut"])

    def test_batch_shares_one_deadline(self) -> None:
        config = GeneratorConfig(timeout_ms=300)
        generator = CrosswordGenerator(config, scorer=SlowScorer(0.02))

        started = time.monotonic()
        batch = generator.generate_puzzles(self.words)
        elapsed = time.monotonic() - started

        self.assertTrue(batch.timed_out)
        self.assertEqual(len(batch.puzzles), 1)
        self.assertLess(elapsed, 1.5)
        self.assertEqual(batch.total_placed + len(batch.unplaced_words), 45)
        stats = batch.to_jsonable()["stats"]
        self.assertTrue(stats["timedOut"])
        self.assertEqual(len(stats["unplacedWordIds"]), 45 - batch.total_placed)

    def test_dropped_words_move_to_later_clusters(self) -> None:
        words = make_words(["CAT", "ACT", "DOG", "GOOD", "GOLD"])
        clusters = [build_cluster(words[:3]), build_cluster(words[3:])]
        generator = RecordingGenerator(clusters=clusters)

        batch = generator.generate_puzzles(words)

        self.assertEqual(generator.calls[0], ["1", "2", "3"])
        self.assertIn("3", generator.calls[1])
        self.assertNotIn("3", batch.puzzles[0].word_ids)
        self.assertEqual(batch.total_words, 5)

    def test_dropped_words_are_retried_without_redistribution(self) -> None:
        words = make_words(["CAT", "ACT", "DOG", "GOOD", "GOLD"])
        clusters = [build_cluster(words[:3]), build_cluster(words[3:])]
        config = GeneratorConfig(redistribute_failed=False)
        generator = RecordingGenerator(config, clusters=clusters)

        generator.generate_puzzles(words)

        self.assertEqual(generator.calls[1], ["4", "5"])
        self.assertIn("3", generator.calls[2])

    def test_incomplete_clustering_falls_back_to_one_cluster(self) -> None:
        words = make_words(SCENARIO_TERMS)
        cluster_config = ClusterConfig(min_cluster_size=1, max_cluster_size=2, target_cluster_size=5)
        generator = RecordingGenerator()

        with self.assertLogs("vocab_crossword.engine.generator", level="WARNING") as logs:
            batch = generator.generate_puzzles(words, cluster_config)

        self.assertTrue(any("falling back to a single cluster" in line for line in logs.output))
        self.assertEqual(sorted(generator.calls[0], key=int), [word.id for word in words])
        self.assertGreaterEqual(len(batch.puzzles), 1)

    def test_small_input_forms_one_puzzle(self) -> None:
        batch = CrosswordGenerator().generate_puzzles(make_words(SCENARIO_TERMS))
        self.assertGreaterEqual(len(batch.puzzles), 1)
        self.assertEqual(batch.total_words, 12)

    def test_empty_batch(self) -> None:
        batch = CrosswordGenerator().generate_puzzles([])
        self.assertEqual(batch.puzzles, [])
        self.assertEqual(batch.coverage, 0.0)

    def test_cancelled_batch(self) -> None:
        event = threading.Event()
        event.set()
        with self.assertRaises(GenerationCancelled):
            CrosswordGenerator().generate_puzzles(self.words, cancel_event=event)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
