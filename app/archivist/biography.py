"""Biography extraction for both profile page templates.

Both layouts put bold labels (``<strong>Nationality:</strong> British``) in
front of short facts and follow them with the narrative biography; they
differ in where the name, image and narrative live.
"""
from __future__ import annotations

import html
import re
from dataclasses import dataclass, fields
from typing import Dict

from bs4 import BeautifulSoup

from .dom_utils import attr_of, guarded, inner_html, text_of
from .date_utils import split_name_and_dates
from .selectors import (
    ADAPTATION_BIOGRAPHY,
    STANDARD_BIOGRAPHY,
    AdaptationBiographySelectors,
    StandardBiographySelectors,
)
from .text_utils import normalize_whitespace

LABEL_FIELDS: Dict[str, str] = {
    "nationality": "nationality",
    "email": "email",
    "website": "website",
    "literary agent": "literary_agent",
    "research": "research",
    "address": "address",
    "telephone": "telephone",
}

_LABEL_RE = re.compile(
    r"<strong>(" + "|".join(LABEL_FIELDS) + r")[^<]*</strong>"
    r"\s*(?:<a[^>]*>)?([^<]+)(?:</a>)?",
    re.IGNORECASE,
)
# Bold label plus the optional link that follows it (literary agents).
_LAST_LABEL_RE = re.compile(r"<strong[^>]*>.*?</strong>(?:\s*<a[^>]*>.*?</a>)?")
_TAG_RE = re.compile(r"<[^>]*>")

PLACEHOLDER_BIOGRAPHIES = (
    "including biography, theatres, agent, synopses, cast sizes, production and published dates",
    "please send me a biography and information about this playwright",
    "i do not have a biography of this playwright",
    "please help doollee to become even more complete",
)


@dataclass
class ScrapedBiography:
    heading_name: str = ""
    alt_name: str = ""
    year_born: str = ""
    year_died: str = ""
    nationality: str = ""
    email: str = ""
    website: str = ""
    literary_agent: str = ""
    research: str = ""
    address: str = ""
    telephone: str = ""
    biography: str = ""

    def update(self, values: Dict[str, str]) -> None:
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            if key in known:
                setattr(self, key, value)


def parse_labeled_content(section_html: str) -> Dict[str, str]:
    """Map each bold-labelled fact in ``section_html`` to its field name.

    Values that are blank or ``n/a`` come back as empty strings.
    """

    results: Dict[str, str] = {}
    for match in _LABEL_RE.finditer(section_html or ""):
        key = LABEL_FIELDS.get(match.group(1).lower())
        if not key:
            continue
        raw = html.unescape(match.group(2) or "")
        squashed = re.sub(r"\s", "", raw).lower()
        if squashed in ("", "n/a"):
            results[key] = ""
            continue
        results[key] = normalize_whitespace(raw)
    return results


def text_after_last_label(section_html: str) -> str:
    matches = list(_LAST_LABEL_RE.finditer(section_html or ""))
    if not matches:
        return ""
    return section_html[matches[-1].end() :]


def normalize_biography(bio: str) -> str:
    """Strip markup and whitespace; known boilerplate becomes an empty string."""

    text = normalize_whitespace(html.unescape(_TAG_RE.sub("", bio or "")))
    lowered = text.lower()
    if any(placeholder in lowered for placeholder in PLACEHOLDER_BIOGRAPHIES):
        return ""
    return text


def image_alt_name(src: str, alt: str, blank_marker: str) -> str:
    """Return ``alt`` unless the image is missing or the blank placeholder."""

    if not src or blank_marker in src:
        return ""
    return normalize_whitespace(alt)


def extract_standard_biography(
    soup: BeautifulSoup, selectors: StandardBiographySelectors = STANDARD_BIOGRAPHY
) -> ScrapedBiography:
    data = ScrapedBiography()
    section = soup.select_one(selectors.section)
    section_html = inner_html(section)

    heading = guarded(
        "biography.name",
        lambda: split_name_and_dates(text_of(soup.select_one(selectors.name)))[0],
        "",
    )
    _, born, died = guarded(
        "biography.dates",
        lambda: split_name_and_dates(text_of(soup.select_one(selectors.name_and_dates))),
        ("", "", ""),
    )
    image = soup.select_one(selectors.image)
    data.heading_name = heading
    data.year_born = born
    data.year_died = died
    data.alt_name = image_alt_name(
        attr_of(image, "src"), attr_of(image, "alt"), selectors.blank_image_marker
    )
    data.update(guarded("biography.labels", lambda: parse_labeled_content(section_html), {}))
    data.biography = guarded(
        "biography.text",
        lambda: normalize_biography(text_after_last_label(section_html)),
        "",
    )
    return data


def extract_adaptation_biography(
    soup: BeautifulSoup, selectors: AdaptationBiographySelectors = ADAPTATION_BIOGRAPHY
) -> ScrapedBiography:
    data = ScrapedBiography()
    table = soup.select_one(selectors.table)

    name, born, died = guarded(
        "biography.name",
        lambda: split_name_and_dates(text_of(table.select_one(selectors.name) if table else None)),
        ("", "", ""),
    )
    image = table.select_one(selectors.image) if table else None
    data.heading_name = name
    data.year_born = born
    data.year_died = died
    data.alt_name = image_alt_name(
        attr_of(image, "src"), attr_of(image, "alt"), selectors.blank_image_marker
    )
    data.update(guarded("biography.labels", lambda: parse_labeled_content(inner_html(table)), {}))
    data.biography = guarded(
        "biography.text",
        lambda: normalize_biography(text_of(soup.select_one(selectors.biography))),
        "",
    )
    return data


__all__ = [
    "PLACEHOLDER_BIOGRAPHIES",
    "ScrapedBiography",
    "extract_adaptation_biography",
    "extract_standard_biography",
    "image_alt_name",
    "normalize_biography",
    "parse_labeled_content",
    "text_after_last_label",
]
