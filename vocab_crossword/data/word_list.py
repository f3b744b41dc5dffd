"""Loading vocabulary lists from plain-text entries and word tables."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

import pandas as pd

from ..core.exceptions import WordListError
from ..core.models import Word

TABLE_SUFFIXES = {".csv": ",", ".tsv": "\t"}
TERM_COLUMNS = ("term", "word")
CLUE_COLUMNS = ("clue", "translation")


def parse_word_entries(lines: Iterable[str]) -> List[Word]:
    """Parse ``TERM`` or ``TERM:Clue`` entries, skipping blanks and ``#`` comments.

    Ids are the 1-based position of the entry among the kept lines.
    """

    words: List[Word] = []
    for raw in lines:
        item = raw.strip()
        if not item or item.startswith("#"):
            continue
        term, _, clue = item.partition(":")
        try:
            words.append(Word(id=str(len(words) + 1), term=term.strip(), clue=clue.strip()))
        except ValueError as exc:
            raise WordListError(f"Invalid entry {item!r}: {exc}") from exc
    return words


def load_word_table(path: Path | str) -> List[Word]:
    """Read a ``.csv`` or ``.tsv`` table with a term column and optional id/clue columns."""

    path = Path(path)
    sep = TABLE_SUFFIXES.get(path.suffix.lower(), ",")
    try:
        df = pd.read_csv(path, sep=sep, dtype=str, keep_default_na=False)
    except (OSError, pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise WordListError(f"Cannot read word table {path}: {exc}") from exc

    df.columns = [str(column).strip().lower() for column in df.columns]
    term_column = next((name for name in TERM_COLUMNS if name in df.columns), None)
    if term_column is None:
        raise WordListError(f"{path} has no 'term' column (found: {', '.join(df.columns)})")
    clue_column = next((name for name in CLUE_COLUMNS if name in df.columns), None)

    words: List[Word] = []
    for row_number, row in enumerate(df.to_dict(orient="records"), start=1):
        word_id = str(row.get("id") or row_number)
        try:
            words.append(
                Word(
                    id=word_id,
                    term=row[term_column],
                    clue=row[clue_column] if clue_column else "",
                )
            )
        except ValueError as exc:
            raise WordListError(f"{path}, row {row_number}: {exc}") from exc
    return words


def load_words_file(path: Path | str) -> List[Word]:
    """Load words from a table (by suffix) or from a ``TERM:Clue`` text file."""

    path = Path(path)
    if path.suffix.lower() in TABLE_SUFFIXES:
        return load_word_table(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise WordListError(f"Cannot read word list {path}: {exc}") from exc
    return parse_word_entries(text.splitlines())
