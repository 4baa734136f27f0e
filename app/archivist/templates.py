"""Profile page template detection and dispatch.

A profile page uses one of two layouts. The layout is resolved once per page
from two mutually exclusive marker elements and then mapped to the pair of
extractor functions that understand it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from bs4 import BeautifulSoup
from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PWTimeout

from .biography import ScrapedBiography, extract_adaptation_biography, extract_standard_biography
from .config import ScraperConfig
from .dom_utils import make_soup
from .errors import TemplateError
from .logging_utils import _scraper_event
from .selectors import TEMPLATE_MARKERS, TemplateMarkers
from .utils import log_line
from .works import ScrapedWork, extract_adaptation_works, extract_standard_works


class Template(str, Enum):
    STANDARD = "standard"
    ADAPTATION = "adaptation"


@dataclass(frozen=True)
class TemplateExtractors:
    biography: Callable[[BeautifulSoup], ScrapedBiography]
    works: Callable[[BeautifulSoup], List[ScrapedWork]]


TEMPLATES: Dict[Template, TemplateExtractors] = {
    Template.STANDARD: TemplateExtractors(extract_standard_biography, extract_standard_works),
    Template.ADAPTATION: TemplateExtractors(extract_adaptation_biography, extract_adaptation_works),
}


@dataclass
class ProfileData:
    """Extraction result for one profile page.

    ``biography`` or ``works`` is ``None`` when that half of the page could not
    be extracted at all.
    """

    template: Template
    biography: Optional[ScrapedBiography]
    works: Optional[List[ScrapedWork]]

    @property
    def is_complete(self) -> bool:
        return self.biography is not None and self.works is not None


def resolve_template(standard_visible: bool, adaptation_visible: bool) -> Template:
    if standard_visible and adaptation_visible:
        raise TemplateError("Both standard and table templates are visible.")
    if not standard_visible and not adaptation_visible:
        raise TemplateError("Neither standard nor table templates are visible.")
    return Template.STANDARD if standard_visible else Template.ADAPTATION


def classify_template(
    page: Page, cfg: ScraperConfig, markers: TemplateMarkers = TEMPLATE_MARKERS
) -> Template:
    """Wait for either marker and return the template of the loaded page."""

    standard = page.locator(markers.standard)
    adaptation = page.locator(markers.adaptation)
    try:
        standard.or_(adaptation).first.wait_for(timeout=cfg.element_timeout_ms)
    except PWTimeout as exc:
        raise TemplateError(f"No template marker appeared: {exc}") from exc
    # Markers can match several tables; strict locators need a single element.
    return resolve_template(standard.first.is_visible(), adaptation.first.is_visible())


def extract_profile(html: str, template: Template) -> ProfileData:
    """Run the extractor pair registered for ``template`` over ``html``."""

    soup = make_soup(html)
    extractors = TEMPLATES[template]
    biography: Optional[ScrapedBiography] = None
    works: Optional[List[ScrapedWork]] = None

    try:
        biography = extractors.biography(soup)
    except Exception as exc:  # noqa: BLE001
        log_line(f"[EXTRACT] Biography extraction failed: {exc}", logging.WARNING)
        _scraper_event("error", phase="extract", step="biography", template=template.value, error=str(exc))

    try:
        works = extractors.works(soup)
    except Exception as exc:  # noqa: BLE001
        log_line(f"[EXTRACT] Works extraction failed: {exc}", logging.WARNING)
        _scraper_event("error", phase="extract", step="works", template=template.value, error=str(exc))

    return ProfileData(template=template, biography=biography, works=works)


def scrape_profile(page: Page, cfg: ScraperConfig) -> ProfileData:
    """Classify the page already loaded in ``page`` and extract it."""

    template = classify_template(page, cfg)
    _scraper_event("extract", template=template.value, url=page.url)
    return extract_profile(page.content(), template)


__all__ = [
    "ProfileData",
    "TEMPLATES",
    "Template",
    "TemplateExtractors",
    "classify_template",
    "extract_profile",
    "resolve_template",
    "scrape_profile",
]
