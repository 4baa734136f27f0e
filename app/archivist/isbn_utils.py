from __future__ import annotations

import logging
import re
from typing import List, Tuple

from .utils import log_line

ISBN_13_PREFIXES = ("978", "979")

# Runs of digits and hyphens long enough to hold an ISBN-10, ending in a
# digit or the ISBN-10 check character.
_ISBN_CANDIDATE_RE = re.compile(r"\b\d[\d-]{8,}[\dXx]\b")


def extract_isbn(text: str | None) -> Tuple[str, str]:
    """Find the best ISBN candidate in ``text``.

    Returns ``(digits_only, as_written)``; both are empty when nothing
    plausible is present. ISBN-13 candidates with a 978/979 prefix win over
    ISBN-10 candidates; among several of one kind the first is used.
    """

    if not text:
        return "", ""

    isbn10: List[Tuple[str, str]] = []
    isbn13: List[Tuple[str, str]] = []

    for match in _ISBN_CANDIDATE_RE.finditer(text):
        original = match.group(0)
        digits = original.replace("-", "").upper()
        if len(digits) == 13 and digits[:3] in ISBN_13_PREFIXES:
            isbn13.append((digits, original))
        elif len(digits) == 10:
            isbn10.append((digits, original))

    for label, candidates in (("ISBN-13", isbn13), ("ISBN-10", isbn10)):
        if not candidates:
            continue
        if len(candidates) > 1:
            originals = ", ".join(original for _, original in candidates)
            log_line(
                f"[ISBN] Multiple {label} candidates; using the first of: {originals}",
                logging.WARNING,
            )
        return candidates[0]

    return "", ""


__all__ = ["extract_isbn", "ISBN_13_PREFIXES"]
