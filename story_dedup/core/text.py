"""
Title normalization and character shingling.

Titles are reduced to a comparison-ready form before shingling:
1. Locale-aware case folding (Turkish/Azerbaijani dotted and dotless I)
2. Optional diacritic folding to ASCII base letters
3. Punctuation and symbol runs replaced by a single space (marks are kept)
4. Whitespace collapsed, stop words dropped
"""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable

from ..errors import ConfigError

MIN_SHINGLE_SIZE = 2
MAX_SHINGLE_SIZE = 10

_WHITESPACE_RE = re.compile(r"\s+")

# Mappings applied before str.lower(), which would otherwise turn "İ" into
# "i" + U+0307 and "I" into "i".
_LOCALE_CASE_MAP = {
    "tr": str.maketrans({"İ": "i", "I": "ı"}),
    "az": str.maketrans({"İ": "i", "I": "ı"}),
}

# Letters that NFKD does not decompose into base + combining mark.
_FOLD_MAP = str.maketrans(
    {
        "ı": "i",
        "ł": "l",
        "ø": "o",
        "đ": "d",
        "ß": "ss",
        "æ": "ae",
        "œ": "oe",
    }
)


def _language(locale: str | None) -> str:
    if not locale:
        return ""
    return re.split(r"[-_.]", locale, maxsplit=1)[0].lower()


def fold_case(text: str, locale: str | None) -> str:
    """Lowercase text, applying locale-specific letter pairs first."""
    table = _LOCALE_CASE_MAP.get(_language(locale))
    if table is not None:
        text = text.translate(table)
    return text.lower()


def fold_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.translate(_FOLD_MAP)


def strip_punctuation(text: str) -> str:
    """Replace punctuation and symbol characters with spaces.

    Letters, digits and combining or spacing marks (Mn, Mc, Me) are kept,
    so scripts that write vowels as marks stay in one word.
    """
    return "".join(" " if unicodedata.category(ch)[0] in "PS" else ch for ch in text)


class TextNormalizer:
    """Normalizes headlines for lexical comparison.

    Stop words are passed through the same case and diacritic folding as
    titles, so configured words match regardless of how they are written.
    """

    def __init__(
        self,
        locale: str | None = "tr_TR",
        stop_words: Iterable[str] = (),
        fold_accents: bool = True,
    ):
        self.locale = locale
        self.fold_accents = fold_accents
        self.stop_words = frozenset(
            word for word in (self._fold(w).strip() for w in stop_words) if word
        )

    def _fold(self, text: str) -> str:
        text = fold_case(unicodedata.normalize("NFC", text), self.locale)
        if self.fold_accents:
            text = fold_diacritics(text)
        return text

    def normalize(self, title: str | None) -> str:
        if not title:
            return ""
        text = self._fold(title)
        text = strip_punctuation(text)
        text = _WHITESPACE_RE.sub(" ", text)
        tokens = [token for token in text.split(" ") if token and token not in self.stop_words]
        return " ".join(tokens).strip()


def normalize_title(
    title: str | None,
    locale: str | None,
    stop_words: Iterable[str],
    fold_accents: bool = True,
) -> str:
    return TextNormalizer(locale, stop_words, fold_accents=fold_accents).normalize(title)


class ShingleGenerator:
    """Produces the set of overlapping character n-grams of a text."""

    def __init__(self, size: int = 4):
        if not MIN_SHINGLE_SIZE <= size <= MAX_SHINGLE_SIZE:
            raise ConfigError(
                f"Shingle size must be between {MIN_SHINGLE_SIZE} and {MAX_SHINGLE_SIZE}, got {size}"
            )
        self.size = size

    def generate(self, text: str | None) -> frozenset[str]:
        if not text:
            return frozenset()
        padded = f" {text} "
        n = self.size
        if len(padded) <= n:
            return frozenset({padded})
        return frozenset(padded[i : i + n] for i in range(len(padded) - n + 1))
