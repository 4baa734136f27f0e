from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence, TypeVar

from bs4 import BeautifulSoup, Tag

from .logging_utils import _scraper_event
from .text_utils import normalize_whitespace
from .utils import log_line

T = TypeVar("T")


def make_soup(html: str) -> BeautifulSoup:
    """Parse page markup the way a browser would."""

    return BeautifulSoup(html or "", "html5lib")


def text_of(node: Optional[Tag]) -> str:
    if node is None:
        return ""
    return normalize_whitespace(node.get_text(" "))


def text_at(nodes: Sequence[Tag], index: int) -> str:
    return text_of(nodes[index]) if index < len(nodes) else ""


def attr_of(node: Optional[Tag], name: str) -> str:
    if node is None:
        return ""
    value = node.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return (value or "").strip()


def inner_html(node: Optional[Tag]) -> str:
    if node is None:
        return ""
    return node.decode_contents()


def guarded(label: str, func: Callable[[], T], default: T, **fields: Any) -> T:
    """Run one extraction step; log and fall back to ``default`` if it fails.

    A page with a malformed field still yields the rest of its data.
    """

    try:
        return func()
    except Exception as exc:  # noqa: BLE001
        log_line(f"[EXTRACT] {label} failed: {exc}", logging.WARNING)
        _scraper_event("error", phase="extract", step=label, error=str(exc), **fields)
        return default


__all__ = ["attr_of", "guarded", "inner_html", "make_soup", "text_at", "text_of"]
