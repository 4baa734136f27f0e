from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Pattern, Tuple

from .isbn_utils import extract_isbn
from .text_utils import normalize_whitespace, search_for_and_remove

_MONTHS = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\.?"

# "12 Mar 1998", "3rd June, 2001", optionally wrapped in parentheses.
FULL_DATE_RE: Pattern[str] = re.compile(
    r"\(?\b(\d{1,2}(?:st|nd|rd|th)?\s+" + _MONTHS + r",?\s+\d{4})\b\)?",
    re.IGNORECASE,
)
YEAR_RE: Pattern[str] = re.compile(r"\(?\b([12]\d{3})\b\)?;?")
DATE_PATTERNS: Tuple[Pattern[str], ...] = (FULL_DATE_RE, YEAR_RE)

# Trailing "(born - died)" on a profile heading.
NAME_DATES_RE: Pattern[str] = re.compile(r"\s*\(([^-()]*?)\s*-\s*([^)]*?)\)$")

NOT_PUBLISHED_MARKERS: Tuple[str, ...] = (
    "i don't think it has been published",
    "i don’t think it has been published",
    "not yet published",
)

_ISBN_LABEL_RE = re.compile(r"\bISBN(?:-1[03])?\s*:?\s*", re.IGNORECASE)
_EMPTY_PARENS_RE = re.compile(r"\(\s*\)")
_EDGE_PUNCTUATION = " ,;:-–"


@dataclass(frozen=True)
class Publication:
    publisher: str = ""
    year: str = ""
    isbn: str = ""


def _tidy(value: str) -> str:
    value = _EMPTY_PARENS_RE.sub("", value)
    return normalize_whitespace(value).strip(_EDGE_PUNCTUATION)


def split_name_and_dates(text: str | None) -> Tuple[str, str, str]:
    """Split ``"Name (born - died)"`` into its name and the two year strings.

    Either year may be empty; the name is returned unchanged when no date
    range is present.
    """

    value = (text or "").strip()
    match = NAME_DATES_RE.search(value)
    if not match:
        return value, "", ""
    name = value[: match.start()].strip()
    return name, match.group(1).strip(), match.group(2).strip()


def extract_date(text: str, patterns: Iterable[Pattern[str]] = DATE_PATTERNS) -> Tuple[str, str]:
    """Return ``(date, remainder)`` preferring a full date over a bare year."""

    date, remainder = search_for_and_remove(text or "", patterns)
    return normalize_whitespace(date), remainder


def parse_production(text: str | None) -> Tuple[str, str]:
    """Split a combined production place/date string into ``(location, date)``."""

    value = normalize_whitespace(text)
    if not value:
        return "", ""
    date, remainder = extract_date(value)
    return _tidy(remainder), date


def is_not_published(text: str | None) -> bool:
    lowered = normalize_whitespace(text).lower()
    return any(marker in lowered for marker in NOT_PUBLISHED_MARKERS)


def parse_publication(text: str | None, *, find_isbn: bool = True) -> Publication:
    """Split a combined publisher string into publisher, year and ISBN.

    ISBN-like digit runs are removed before looking for a date so they are not
    mistaken for years.
    """

    value = normalize_whitespace(text)
    if not value or is_not_published(value):
        return Publication()

    isbn = ""
    if find_isbn:
        isbn, original = extract_isbn(value)
        if original:
            value = value.replace(original, " ")
            value = _ISBN_LABEL_RE.sub(" ", value)

    date, remainder = extract_date(value)
    year_match = re.search(r"[12]\d{3}", date)
    year = year_match.group(0) if year_match else ""
    return Publication(publisher=_tidy(remainder), year=year, isbn=isbn)


__all__ = [
    "DATE_PATTERNS",
    "Publication",
    "extract_date",
    "is_not_published",
    "parse_production",
    "parse_publication",
    "split_name_and_dates",
]
