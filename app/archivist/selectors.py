from __future__ import annotations

"""Selectors for the doollee.com page templates."""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class TemplateMarkers:
    """Marker elements that tell the two profile templates apart.

    Exactly one of them is visible on a well-formed profile page.
    """

    standard: str = "#osborne"
    adaptation: str = ".content > #table > table"


@dataclass(frozen=True)
class StandardBiographySelectors:
    section: str = "#osborne"
    image: str = "#osborne > img"
    name: str = "#osborne > .welcome > h1"
    name_and_dates: str = "#osborne > .welcome"
    blank_image_marker: str = "/Images-playwrights/Blank"


@dataclass(frozen=True)
class AdaptationBiographySelectors:
    table: str = "#table table"
    name: str = "tr:nth-of-type(1) > td:nth-of-type(2) > h1"
    image: str = "tr:nth-of-type(1) > td:nth-of-type(1) > p img"
    biography: str = "#table > p"
    blank_image_marker: str = "/Images-playwrights/Blank"


@dataclass(frozen=True)
class StandardWorkSelectors:
    """Works are index-aligned lists of repeated ids inside one container."""

    container: str = ".gridContainer > strong"
    play_id: str = "#playwrightTable > a"
    image_container: str = "#synopsisTitle"
    image: str = "center > img"
    title: str = "#playTable"
    synopsis: str = "#synopsisName"
    notes: str = "#notesName"
    production: str = "#producedPlace"
    organizations: str = "#companyName"
    publisher: str = "#publishedName"
    music: str = "#musicName"
    genres: str = "#genreName"
    parts: str = "#partsMaletitle"
    reference: str = "#refname"


@dataclass(frozen=True)
class AdaptationWorkSelectors:
    """Adaptation works come as (header table, body table, spacer) triplets.

    Body fields are addressed by ``(row, cell)`` pairs, both 1-based.
    """

    headers: str = "#table > h2 ~ table:nth-of-type(3n-2)"
    bodies: str = "#table > h2 ~ table:nth-of-type(3n-1)"
    author_links: str = "tr:nth-of-type(1) > td:nth-of-type(1) > p > strong > a"
    title: str = "tr:nth-of-type(1) > td:nth-of-type(2)"
    image: str = "tr:nth-of-type(11) > td:nth-of-type(1) > p > img"
    production: Tuple[int, int] = (1, 2)
    production_date: Tuple[int, int] = (1, 3)
    organizations: Tuple[int, int] = (2, 2)
    publisher: Tuple[int, int] = (3, 2)
    isbn: Tuple[int, int] = (3, 4)
    music: Tuple[int, int] = (4, 2)
    genres: Tuple[int, int] = (7, 2)
    parts_male: Tuple[int, int] = (8, 3)
    parts_female: Tuple[int, int] = (8, 5)
    parts_other: Tuple[int, int] = (9, 2)
    notes: Tuple[int, int] = (10, 2)
    synopsis: Tuple[int, int] = (11, 2)
    reference: Tuple[int, int] = (12, 2)


@dataclass(frozen=True)
class ListingSelectors:
    """Selectors for the alphabetical author index pages."""

    range_links: str = "p > a"
    range_containers: Tuple[str, ...] = (
        ".content > h2 > center",
        ".content > center > center > h2",
        ".content > #table",
    )
    rows: str = "#table > table > tbody > tr"
    first_paragraph: str = "td > p"
    link: str = "td > p > a"


TEMPLATE_MARKERS = TemplateMarkers()
STANDARD_BIOGRAPHY = StandardBiographySelectors()
ADAPTATION_BIOGRAPHY = AdaptationBiographySelectors()
STANDARD_WORKS = StandardWorkSelectors()
ADAPTATION_WORKS = AdaptationWorkSelectors()
LISTING = ListingSelectors()

__all__ = [
    "TemplateMarkers",
    "StandardBiographySelectors",
    "AdaptationBiographySelectors",
    "StandardWorkSelectors",
    "AdaptationWorkSelectors",
    "ListingSelectors",
    "TEMPLATE_MARKERS",
    "STANDARD_BIOGRAPHY",
    "ADAPTATION_BIOGRAPHY",
    "STANDARD_WORKS",
    "ADAPTATION_WORKS",
    "LISTING",
]
