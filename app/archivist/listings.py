"""Author index scraping.

Each index letter has a page of range links (``(aa - af)``); each range page
lists playwrights as ``LAST First`` links to their profile slugs. The result
is written as one JSON file per range under ``AUTHOR_INDEX_DIR/<letter>/`` and
later merged by :func:`load_author_index` into the orchestrator's batches.
"""
from __future__ import annotations

import argparse
import json
import logging
import re
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Tuple
from urllib.parse import urljoin

import requests

from .config import ScraperConfig, load_config
from .config_validation import validate_runtime_config
from .dom_utils import attr_of, make_soup, text_of
from .errors import FileWriteError, SetupError
from .file_writer import FileWriter
from .logging_utils import _scraper_event
from .selectors import LISTING, ListingSelectors
from .utils import ensure_dirs, log_line, save_json_file, utc_now

AuthorIndex = Dict[str, Dict[str, str]]

_RANGE_RE = re.compile(r"\(([a-z]{2}) - ([a-z]{2})\)")
_SLUG_RE = re.compile(r"Playwrights[A-Z]/([a-z0-9\-\(\)]+)\.php")
METADATA_FILENAME = "__metadata.json"


def build_http_session(cfg: ScraperConfig) -> requests.Session:
    """Return a requests session configured for index page fetches."""

    session = requests.Session()
    session.headers.update(cfg.headers)
    return session


def index_url(letter: str, base_url: str) -> str:
    upper = letter.upper()
    return f"{base_url}/Playwrights{upper}/3Playwrights{upper}data.php"


def fetch_page(session: requests.Session, url: str, cfg: ScraperConfig) -> Tuple[int, str]:
    """GET ``url``; HTTP errors are returned as status codes, not raised."""

    _scraper_event("nav", step="http_get", url=url)
    response = session.get(url, timeout=cfg.http_timeout_seconds)
    if response.status_code >= 400:
        log_line(f"[LISTINGS] HTTP {response.status_code}: {url}", logging.WARNING)
    return response.status_code, response.text


def parse_index_ranges(
    html: str, page_url: str, selectors: ListingSelectors = LISTING
) -> Dict[str, str]:
    """Map ``"aa-af"`` style range keys to absolute listing page URLs."""

    soup = make_soup(html)
    containers = [node for sel in selectors.range_containers for node in soup.select(sel)]
    if not containers:
        raise ValueError("No index link container found")

    ranges: Dict[str, str] = {}
    for link in soup.select(selectors.range_links):
        href = attr_of(link, "href")
        match = _RANGE_RE.search(text_of(link))
        if not href or not match:
            continue
        ranges[f"{match.group(1)}-{match.group(2)}"] = urljoin(page_url, href)
    return ranges


def fetch_index_ranges(
    session: requests.Session, letter: str, cfg: ScraperConfig
) -> Dict[str, str]:
    url = index_url(letter, cfg.base_url)
    status, html = fetch_page(session, url, cfg)
    if status >= 400:
        return {}
    return parse_index_ranges(html, url)


def parse_listing_page(html: str, selectors: ListingSelectors = LISTING) -> Dict[str, str]:
    """Return ``{listing name: profile slug}`` in page order."""

    soup = make_soup(html)
    playwrights: Dict[str, str] = {}
    for row in soup.select(selectors.rows):
        first_paragraph = row.select_one(selectors.first_paragraph)
        if first_paragraph is None or first_paragraph.find("a") is None:
            continue
        link = row.select_one(selectors.link)
        name = text_of(link)
        if not name or "Top of Page" in name:
            continue
        match = _SLUG_RE.search(attr_of(link, "href"))
        if match:
            playwrights[name] = match.group(1)
    return playwrights


def scrape_listings(
    cfg: ScraperConfig,
    letters: Optional[Iterable[str]] = None,
    *,
    session: Optional[requests.Session] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, int]:
    """Scrape every range page for ``letters`` into the author index directory.

    Waits ``cfg.rate_limit_delay`` seconds between requests. Returns totals for
    files written, playwrights found and pages with errors.
    """

    session = session or build_http_session(cfg)
    root = Path(cfg.author_index_dir)
    root.mkdir(parents=True, exist_ok=True)
    error_metadata: Dict[str, Dict[str, object]] = {}
    totals = {"files": 0, "playwrights": 0, "errors": 0}

    for letter in letters or cfg.letters:
        letter = letter.upper()
        log_line(f"[LISTINGS] Scraping playwrights for letter {letter}")
        try:
            ranges = fetch_index_ranges(session, letter, cfg)
        except (requests.RequestException, ValueError) as exc:
            log_line(f"[LISTINGS] Failed to read index for {letter}: {exc}", logging.ERROR)
            error_metadata[letter] = {"url": index_url(letter, cfg.base_url), "error": str(exc)}
            continue
        sleep(cfg.rate_limit_delay)

        writer = FileWriter(letter, root)
        for range_key, url in ranges.items():
            suffix = ""
            page_metadata: Dict[str, object] = {}
            playwrights: Dict[str, str] = {}
            try:
                status, html = fetch_page(session, url, cfg)
                if status >= 400:
                    page_metadata = {"statusCode": status, "error": f"HTTP {status}"}
                else:
                    playwrights = parse_listing_page(html)
            except requests.RequestException as exc:
                page_metadata = {"error": str(exc)}
                suffix = "_error"
            except Exception as exc:  # noqa: BLE001
                log_line(f"[LISTINGS] Error scraping page {url}: {exc}", logging.ERROR)
                page_metadata = {"error": str(exc)}
                suffix = "_error"

            data = {
                "metadata": {
                    **page_metadata,
                    "results": len(playwrights),
                    "timeStamp": utc_now(),
                    "url": url,
                },
                "playwrights": playwrights,
            }
            filename = f"{range_key}{suffix}.json"
            try:
                writer.write_file(filename, data)
            except FileWriteError as exc:
                log_line(f"[LISTINGS] Error writing {filename}: {exc}", logging.ERROR)

            totals["files"] += 1
            totals["playwrights"] += len(playwrights)
            if page_metadata:
                error_metadata[range_key] = {"url": url, **page_metadata}
            _scraper_event("listing", letter=letter, range=range_key, results=len(playwrights))
            sleep(cfg.rate_limit_delay)
        writer.close()

    totals["errors"] = len(error_metadata)
    if error_metadata:
        save_json_file(root / METADATA_FILENAME, error_metadata)
    log_line(
        f"[LISTINGS] Files written={totals['files']}, playwrights={totals['playwrights']}, "
        f"errors={totals['errors']}"
    )
    return totals


def load_author_index(directory: Path | str, letters: Iterable[str]) -> AuthorIndex:
    """Merge per-range listing files into ``{letter: {listing name: slug}}``.

    Files are read in filename order and entries keep their page order. Range
    files marked ``_error`` are skipped.
    """

    root = Path(directory)
    if not root.is_dir():
        raise SetupError(f"Author index directory not found: {root}")

    index: AuthorIndex = {}
    for letter in letters:
        letter = letter.upper()
        entries: Dict[str, str] = {}
        letter_dir = root / letter
        if not letter_dir.is_dir():
            log_line(f"[SETUP] No author index for letter {letter}", logging.WARNING)
            index[letter] = entries
            continue
        for path in sorted(letter_dir.glob("*.json")):
            if path.name == "index.json" or path.stem.endswith("_error"):
                continue
            try:
                with path.open("r", encoding="utf-8") as handle:
                    payload = json.load(handle)
            except (OSError, json.JSONDecodeError) as exc:
                raise SetupError(f"Failed to load author index file {path}", exc) from exc
            entries.update(payload.get("playwrights") or {})
        index[letter] = entries
    return index


def _cli_entrypoint(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Scrape the doollee author index pages")
    parser.add_argument("--letters", default=None, help="Index letters to scrape, e.g. ABC")
    parser.add_argument("--base-url", default=None, help="Override the site base URL")
    args = parser.parse_args(argv)

    cfg = load_config(letters=args.letters, base_url=args.base_url)
    try:
        cfg = validate_runtime_config(cfg, entrypoint="listings")
    except ValueError:
        return 1
    ensure_dirs(cfg)
    scrape_listings(cfg)
    return 0


__all__ = [
    "build_http_session",
    "fetch_index_ranges",
    "index_url",
    "load_author_index",
    "parse_index_ranges",
    "parse_listing_page",
    "scrape_listings",
]


if __name__ == "__main__":
    raise SystemExit(_cli_entrypoint())
