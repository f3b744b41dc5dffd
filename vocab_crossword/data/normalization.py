"""Shared helpers for vocabulary term normalization."""

from __future__ import annotations

import re
import unicodedata

# Letters that do not decompose into a base letter plus a combining mark.
SPECIAL_FOLDS = {
    "ß": "ss",
    "æ": "ae",
    "Æ": "AE",
    "œ": "oe",
    "Œ": "OE",
    "ø": "o",
    "Ø": "O",
    "ł": "l",
    "Ł": "L",
    "đ": "d",
    "Đ": "D",
}

WORD_RE = re.compile(r"[^A-Za-z]")


def clean_word(text: str) -> str:
    """Return a normalized uppercase A-Z representation of ``text``."""

    if not text:
        return ""
    folded = "".join(SPECIAL_FOLDS.get(char, char) for char in text)
    decomposed = unicodedata.normalize("NFKD", folded)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return WORD_RE.sub("", stripped).upper()


__all__ = ["clean_word", "SPECIAL_FOLDS"]
