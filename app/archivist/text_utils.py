"""String normalisation helpers shared by the extractors and record builders."""
from __future__ import annotations

import re
import unicodedata
from typing import Iterable, Pattern, Sequence, Tuple

PLACEHOLDER_VALUES = frozenset({"-", "n/a"})

_WHITESPACE_RE = re.compile(r"\s+")
_DISAMBIGUATION_RE = re.compile(r"\s*\(\d{1,2}\)\s*$")
# Generational numerals only (I to XXXIX).
_ROMAN_NUMERAL_RE = re.compile(r"^X{0,3}(IX|IV|V?I{0,3})$", re.IGNORECASE)


def normalize_whitespace(value: str | None) -> str:
    """Collapse runs of whitespace (including non-breaking spaces) and trim."""

    if not value:
        return ""
    return _WHITESPACE_RE.sub(" ", value.replace("&nbsp;", " ")).strip()


def is_placeholder(value: str | None) -> bool:
    """Return ``True`` for blank values and the site's missing-data markers."""

    cleaned = normalize_whitespace(value).lower()
    return cleaned == "" or cleaned in PLACEHOLDER_VALUES


def clean_text(value: str | None) -> str:
    """Normalise whitespace and map placeholder values to an empty string."""

    if is_placeholder(value):
        return ""
    return normalize_whitespace(value)


def search_for_and_remove(value: str, patterns: Iterable[Pattern[str]]) -> Tuple[str, str]:
    """Return the first capture of the first matching pattern and the remainder.

    The full match is removed from ``value``; the returned capture is group 1
    without any optional decoration the pattern allowed around it.
    """

    for pattern in patterns:
        match = pattern.search(value)
        if match:
            remainder = value[: match.start()] + value[match.end() :]
            return match.group(1), remainder
    return "", value


def to_title_case(value: str | None) -> str:
    """Title-case each space separated word, keeping hyphen/apostrophe parts.

    Roman numerals such as ``III`` stay upper-case.
    """

    if not value:
        return ""

    def _word(word: str) -> str:
        if word and _ROMAN_NUMERAL_RE.match(word):
            return word.upper()
        parts = re.split(r"([\-'’])", word)
        return "".join(
            part[:1].upper() + part[1:].lower() if part not in {"-", "'", "’"} else part
            for part in parts
        )

    return " ".join(_word(word) for word in value.split(" "))


def remove_disambiguation_suffix(value: str | None) -> str:
    """Strip a trailing ``(N)`` or ``(NN)`` used to tell namesakes apart."""

    if not value:
        return ""
    return _DISAMBIGUATION_RE.sub("", value).strip()


def is_all_caps(value: str | None) -> bool:
    """Return ``True`` when every cased character in ``value`` is upper-case."""

    if not value:
        return False
    letters = [ch for ch in value if ch.isalpha()]
    return bool(letters) and all(ch == ch.upper() for ch in letters)


def _fold(value: str) -> str:
    return unicodedata.normalize("NFC", value).casefold()


def strings_equal(left: str | None, right: str | None) -> bool:
    """Unicode-normalised, case-insensitive string equality."""

    return _fold(left or "") == _fold(right or "")


def string_arrays_equal(left: Sequence[str], right: Sequence[str]) -> bool:
    """Element-wise :func:`strings_equal` over two sequences of equal length."""

    if len(left) != len(right):
        return False
    return all(strings_equal(a, b) for a, b in zip(left, right))


__all__ = [
    "clean_text",
    "is_all_caps",
    "is_placeholder",
    "normalize_whitespace",
    "remove_disambiguation_suffix",
    "search_for_and_remove",
    "string_arrays_equal",
    "strings_equal",
    "to_title_case",
]
