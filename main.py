"""CLI entrypoint for the vocabulary crossword generator."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from vocab_crossword.core.exceptions import CrosswordError
from vocab_crossword.core.models import Word
from vocab_crossword.data.word_list import load_words_file, parse_word_entries
from vocab_crossword.engine.clustering import ClusterConfig
from vocab_crossword.engine.generator import CrosswordGenerator, GeneratorConfig
from vocab_crossword.utils.logger import configure_logging, get_logger
from vocab_crossword.utils.pretty import pretty_print_puzzle, print_batch_stats


LOGGER = get_logger("vocab_crossword.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate interlocking crosswords from vocabulary lists",
    )
    parser.add_argument(
        "--words",
        nargs="+",
        metavar="WORD",
        help="Words to place (format: TERM or TERM:Clue)",
    )
    parser.add_argument(
        "--words-file",
        type=Path,
        metavar="FILE",
        help="TERM:Clue lines (# comments and blank lines ignored), or a .csv/.tsv table "
        "with term, clue/translation and optional id columns",
    )
    parser.add_argument(
        "--multi",
        action="store_true",
        help="Cluster the words and generate as many puzzles as needed to cover them",
    )
    parser.add_argument("--max-grid-size", type=int, default=16, help="Largest grid side")
    parser.add_argument("--min-grid-size", type=int, default=10, help="Smallest grid side")
    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=10000,
        help="Wall-clock budget per puzzle in milliseconds",
    )
    parser.add_argument(
        "--ordering-attempts",
        type=int,
        default=30,
        help="Word orderings to try per puzzle",
    )
    parser.add_argument("--min-cluster-size", type=int, default=8)
    parser.add_argument("--max-cluster-size", type=int, default=15)
    parser.add_argument("--target-cluster-size", type=int, default=12)
    parser.add_argument("--seed", type=str, default=None, help="Extra seed mixed into word ids")
    parser.add_argument(
        "--strict-connectivity",
        action="store_true",
        help="Reject layouts whose words do not form a single connected group",
    )
    parser.add_argument(
        "--crop",
        action="store_true",
        help="Crop each puzzle to the smallest square holding its words",
    )
    parser.add_argument("--output", type=Path, help="Optional path to JSON output")
    parser.add_argument(
        "--pretty",
        action="store_true",
        help="Print grids and clues to stderr in addition to the JSON output",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser


def collect_words(args: argparse.Namespace) -> List[Word]:
    words: List[Word] = []
    if args.words:
        words.extend(parse_word_entries(args.words))
    if args.words_file:
        file_words = load_words_file(args.words_file)
        if words:
            # Keep ids unique when both sources are given.
            file_words = [
                Word(id=f"f{word.id}", term=word.term, clue=word.clue) for word in file_words
            ]
        words.extend(file_words)
    return words


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = getattr(logging, args.log_level.upper(), logging.INFO)
    configure_logging(level)

    if not args.words and not args.words_file:
        parser.error("provide --words and/or --words-file")

    try:
        config = GeneratorConfig(
            max_grid_size=args.max_grid_size,
            min_grid_size=args.min_grid_size,
            timeout_ms=args.timeout_ms,
            ordering_attempts=args.ordering_attempts,
            strict_connectivity=args.strict_connectivity,
            crop_to_content=args.crop,
            seed=args.seed,
        )
        cluster_config = ClusterConfig(
            min_cluster_size=args.min_cluster_size,
            max_cluster_size=args.max_cluster_size,
            target_cluster_size=args.target_cluster_size,
        )
    except ValueError as exc:
        parser.error(str(exc))

    generator = CrosswordGenerator(config)
    try:
        words = collect_words(args)
        if args.multi:
            batch = generator.generate_puzzles(words, cluster_config)
            payload: Dict[str, Any] = batch.to_jsonable()
            if args.pretty:
                print_batch_stats(batch, stream=sys.stderr)
        else:
            result = generator.generate_with_stats(words)
            payload = result.to_jsonable()
            if args.pretty:
                pretty_print_puzzle(result.puzzle, stream=sys.stderr)
    except (CrosswordError, ValueError) as exc:
        LOGGER.error("%s", exc)
        return 1

    output_text = json.dumps(payload, ensure_ascii=False, indent=2)
    if args.output:
        args.output.write_text(output_text, encoding="utf-8")
    else:
        print(output_text)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
