"""Works-list extraction for the standard and adaptation profile templates."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from .date_utils import Publication, parse_production, parse_publication
from .dom_utils import attr_of, guarded, text_at, text_of
from .isbn_utils import extract_isbn
from .selectors import (
    ADAPTATION_WORKS,
    STANDARD_WORKS,
    AdaptationWorkSelectors,
    StandardWorkSelectors,
)
from .text_utils import clean_text, normalize_whitespace

SENTINEL_PLAY_ID = "0000000"

_PARTS_RE = re.compile(r"Male:\s*(.+?)\s+Female:\s*(.+?)\s+Other:\s*(.+)$")
_ORIGINAL_AUTHOR_RE = re.compile(r"Original Playwright:\s*(.+?)(;|$)", re.IGNORECASE)
_LEADING_INT_RE = re.compile(r"\d+")


@dataclass(frozen=True)
class Parts:
    male: int
    female: int
    other: int
    male_text: str = ""
    female_text: str = ""
    other_text: str = ""

    @property
    def total(self) -> int:
        return self.male + self.female + self.other


@dataclass
class ScrapedWork:
    play_id: str = SENTINEL_PLAY_ID
    title: str = ""
    alt_title: str = ""
    adapting_author: str = ""
    original_author: str = ""
    synopsis: str = ""
    notes: str = ""
    organizations: str = ""
    music: str = ""
    genres: str = ""
    reference: str = ""
    production_info: str = ""
    production_location: str = ""
    production_year: str = ""
    publishing_info: str = ""
    publisher: str = ""
    publication_year: str = ""
    isbn: str = ""
    parts: Optional[Parts] = None


def resolve_play_id(value: str | None) -> str:
    return (value or "").strip() or SENTINEL_PLAY_ID


def _count(text: str) -> int:
    """Leading integer of a cast-size value; ``-``, blank and prose count as 0."""

    match = _LEADING_INT_RE.match(text.strip())
    return int(match.group(0)) if match else 0


def parse_parts(text: str | None) -> Optional[Parts]:
    """Parse ``"Male: 3 Female: 2 Other: 0"`` into a :class:`Parts` value.

    Returns ``None`` when the string carries no numbers or every count is
    zero. Raises ``ValueError`` for numeric text in an unexpected shape.
    """

    value = text or ""
    if not re.search(r"\d", value):
        return None

    normalized = normalize_whitespace(value)
    match = _PARTS_RE.search(normalized)
    if not match:
        raise ValueError(f"Parts text does not match expected format: {value!r}")

    male_text, female_text, other_text = (group.strip() for group in match.groups())
    parts = Parts(
        male=_count(male_text),
        female=_count(female_text),
        other=_count(other_text),
        male_text=male_text,
        female_text=female_text,
        other_text=other_text,
    )
    return parts if parts.total else None


def parse_part_cells(male_text: str, female_text: str, other_text: str) -> Optional[Parts]:
    """Build :class:`Parts` from the three separate cells of an adaptation table."""

    texts = [normalize_whitespace(t) for t in (male_text, female_text, other_text)]
    parts = Parts(
        male=_count(texts[0]),
        female=_count(texts[1]),
        other=_count(texts[2]),
        male_text=texts[0],
        female_text=texts[1],
        other_text=texts[2],
    )
    return parts if parts.total else None


def parse_original_author(notes: str | None) -> str:
    match = _ORIGINAL_AUTHOR_RE.search(notes or "")
    return match.group(1).strip() if match else ""


def _apply_production(work: ScrapedWork, info: str) -> None:
    work.production_info = info
    location, date = guarded(
        "works.production", lambda: parse_production(info), (clean_text(info), ""), play_id=work.play_id
    )
    work.production_location = location
    work.production_year = date


def _apply_publication(work: ScrapedWork, info: str, *, find_isbn: bool) -> None:
    work.publishing_info = info
    publication = guarded(
        "works.publication",
        lambda: parse_publication(info, find_isbn=find_isbn),
        Publication(publisher=clean_text(info)),
        play_id=work.play_id,
    )
    work.publisher = publication.publisher
    work.publication_year = publication.year
    if publication.isbn:
        work.isbn = publication.isbn


def extract_standard_works(
    soup: BeautifulSoup, selectors: StandardWorkSelectors = STANDARD_WORKS
) -> List[ScrapedWork]:
    """Extract every work from a standard profile page, in page order."""

    container = soup.select_one(selectors.container)
    if container is None:
        return []

    play_ids = container.select(selectors.play_id)
    titles = container.select(selectors.title)
    images = container.select(selectors.image_container)
    synopses = container.select(selectors.synopsis)
    notes = container.select(selectors.notes)
    productions = container.select(selectors.production)
    organizations = container.select(selectors.organizations)
    publishers = container.select(selectors.publisher)
    music = container.select(selectors.music)
    genres = container.select(selectors.genres)
    parts = container.select(selectors.parts)
    references = container.select(selectors.reference)

    works: List[ScrapedWork] = []
    for index, anchor in enumerate(play_ids):
        work = ScrapedWork(play_id=resolve_play_id(attr_of(anchor, "name")))
        work.title = text_at(titles, index)
        if index < len(images):
            work.alt_title = attr_of(images[index].select_one(selectors.image), "title")
        work.synopsis = clean_text(text_at(synopses, index))
        work.notes = clean_text(text_at(notes, index))
        work.organizations = clean_text(text_at(organizations, index))
        work.music = clean_text(text_at(music, index))
        work.genres = clean_text(text_at(genres, index))
        work.reference = clean_text(text_at(references, index))
        _apply_production(work, text_at(productions, index))
        _apply_publication(work, text_at(publishers, index), find_isbn=True)
        work.parts = guarded(
            "works.parts", lambda: parse_parts(text_at(parts, index)), None, play_id=work.play_id
        )
        works.append(work)
    return works


def _cell(table: Optional[Tag], position: Tuple[int, int]) -> str:
    if table is None:
        return ""
    row, column = position
    return text_of(table.select_one(f"tr:nth-of-type({row}) > td:nth-of-type({column})"))


def extract_adaptation_works(
    soup: BeautifulSoup, selectors: AdaptationWorkSelectors = ADAPTATION_WORKS
) -> List[ScrapedWork]:
    """Extract every adaptation from the header/body table pairs, in page order."""

    headers = soup.select(selectors.headers)
    bodies = soup.select(selectors.bodies)

    works: List[ScrapedWork] = []
    for index, header in enumerate(headers):
        links = header.select(selectors.author_links)
        body = bodies[index] if index < len(bodies) else None

        work = ScrapedWork(play_id=resolve_play_id(text_of(links[0]) if links else None))
        work.adapting_author = text_of(links[1]) if len(links) > 1 else ""
        work.title = text_of(header.select_one(selectors.title))
        work.organizations = clean_text(_cell(body, selectors.organizations))
        work.music = clean_text(_cell(body, selectors.music))
        work.genres = clean_text(_cell(body, selectors.genres))
        work.notes = clean_text(_cell(body, selectors.notes))
        work.synopsis = clean_text(_cell(body, selectors.synopsis))
        work.reference = clean_text(_cell(body, selectors.reference))
        if body is not None:
            work.alt_title = attr_of(body.select_one(selectors.image), "alt")
        work.original_author = guarded(
            "works.original_author", lambda: parse_original_author(work.notes), ""
        )

        work.production_info = _cell(body, selectors.production)
        work.production_location = clean_text(work.production_info)
        work.production_year = clean_text(_cell(body, selectors.production_date))
        _apply_publication(work, _cell(body, selectors.publisher), find_isbn=False)
        isbn_text = _cell(body, selectors.isbn)
        work.isbn = guarded("works.isbn", lambda: extract_isbn(isbn_text)[0], "") or clean_text(isbn_text)

        work.parts = guarded(
            "works.parts",
            lambda: parse_part_cells(
                _cell(body, selectors.parts_male),
                _cell(body, selectors.parts_female),
                _cell(body, selectors.parts_other),
            ),
            None,
            play_id=work.play_id,
        )
        works.append(work)
    return works


__all__ = [
    "SENTINEL_PLAY_ID",
    "Parts",
    "ScrapedWork",
    "extract_adaptation_works",
    "extract_standard_works",
    "parse_original_author",
    "parse_part_cells",
    "parse_parts",
    "resolve_play_id",
]
