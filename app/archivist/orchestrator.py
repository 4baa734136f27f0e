"""Batch scraping orchestrator.

Drives ``Setup -> {Batch -> {Author -> {Play}*}}* -> Teardown``. Setup
failures are fatal; scraping, processing and write failures skip the current
author or play, are recorded in the review queue and the run continues.
Anything unrecognised is re-raised after teardown.

Work ids for an author are collected in a :class:`WorkAccumulator` returned by
:meth:`ScrapingOrchestrator.process_plays` and attached to the author just
before it is written, so only successfully written plays are referenced.
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from playwright.sync_api import Error as PWError
from playwright.sync_api import TimeoutError as PWTimeout

from .browser import BrowserSession, goto
from .config import ScraperConfig
from .error_codes import ErrorCode
from .errors import (
    ArchivistError,
    AuthorProcessingError,
    FileWriteError,
    PlayProcessingError,
    ScrapingError,
    SetupError,
    TemplateError,
    WriteAuthorError,
    WritePlayError,
)
from .file_writer import FileWriter
from .listings import AuthorIndex, load_author_index
from .logging_utils import _scraper_event
from .progress import ProgressDisplay
from .records import (
    DEFAULT_NAME_POLICY,
    AuthorRecord,
    NamePolicy,
    PlayRecord,
    WorkAccumulator,
    build_author,
    build_play,
)
from .review_queue import ReviewQueue, review_file_path
from .stats import RunStats
from .store import DocumentStore, upsert_document
from .templates import ProfileData, scrape_profile
from .utils import log_line, save_json_file, utc_now
from .works import ScrapedWork

Batch = List[Tuple[str, str]]

# Store failures that indicate the connection rather than the document.
_STORE_NETWORK_ERRORS = (sqlite3.OperationalError, RuntimeError)
_STORE_WRITE_ERRORS = (sqlite3.Error, RuntimeError, ValueError, TypeError)

_SKIP_AUTHOR_REASONS: Dict[type, str] = {
    ScrapingError: "scraping error",
    WriteAuthorError: "writing error",
    AuthorProcessingError: "processing error",
}
_SKIP_PLAY_REASONS: Dict[type, str] = {
    WritePlayError: "writing error",
    PlayProcessingError: "processing error",
}


@dataclass
class Services:
    """Collaborators owned by one run; the orchestrator tears them all down."""

    browser: BrowserSession
    display: ProgressDisplay
    store: Optional[DocumentStore] = None
    author_writer: Optional[FileWriter] = None
    play_writer: Optional[FileWriter] = None


def author_url(slug: str, base_url: str) -> str:
    """Profile URL for ``slug``; numeric-leading slugs are filed under ``A``."""

    prefix = "A" if slug[:1].isdigit() else slug[:1].upper()
    return f"{base_url}/Playwrights{prefix}/{slug}.php".strip()


def build_batches(
    index: AuthorIndex, letters: Iterable[str], batch_size: int, max_batches: int = 0
) -> List[Batch]:
    """Partition the author index into ordered batches of ``batch_size``.

    ``max_batches`` of 0 means no cap.
    """

    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    batches: List[Batch] = []
    for letter in letters:
        entries = list((index.get(letter.upper()) or {}).items())
        for start in range(0, len(entries), batch_size):
            if max_batches > 0 and len(batches) >= max_batches:
                return batches
            batches.append(entries[start : start + batch_size])
    return batches


class ScrapingOrchestrator:
    def __init__(
        self,
        cfg: ScraperConfig,
        services: Services,
        *,
        stats: Optional[RunStats] = None,
        policy: NamePolicy = DEFAULT_NAME_POLICY,
        index_loader: Callable[[Path, Iterable[str]], AuthorIndex] = load_author_index,
        navigate: Callable[..., Optional[int]] = goto,
        profile_scraper: Callable[..., ProfileData] = scrape_profile,
    ) -> None:
        self.cfg = cfg
        self.services = services
        self.stats = stats or RunStats()
        self.policy = policy
        self._index_loader = index_loader
        self._navigate = navigate
        self._profile_scraper = profile_scraper

        self.batches: List[Batch] = []
        self.review: Optional[ReviewQueue] = None
        self.status = "pending"
        self._profile_name = ""
        self._profile_slug = ""
        self._torn_down = False

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def run(self) -> Dict[str, Any]:
        """Process every batch and return the final summary payload.

        ``SetupError`` and unexpected errors propagate after teardown.
        """

        try:
            self.setup()
            self.status = "running"
            for index, batch in enumerate(self.batches):
                self.process_batch(index, batch)
            self.status = "completed"
        except SetupError as exc:
            self.status = "failed"
            log_line("Fatal setup error encountered. Terminating process.", logging.ERROR)
            self._log_error(exc)
            raise
        except KeyboardInterrupt:
            self.status = "interrupted"
            raise
        except Exception:
            self.status = "failed"
            raise
        finally:
            summary = self.finish()
            self.teardown()
            if self.status == "completed":
                self.services.display.show_summary(self.review.path if self.review else None)
        return summary

    def setup(self) -> None:
        """Load the author index, build batches and check every service."""

        try:
            index = self._index_loader(self.cfg.author_index_dir, self.cfg.letters)
        except SetupError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise SetupError(
                f"Failed to load author list index from path: {self.cfg.author_index_dir}", exc
            ) from exc

        try:
            self.batches = build_batches(
                index, self.cfg.letters, self.cfg.batch_size, self.cfg.max_batches
            )
        except (ValueError, TypeError, AttributeError) as exc:
            raise SetupError("Error preparing batches from author list data", exc) from exc

        started = utc_now()
        g = self.stats.globals
        g.start_time = started
        g.batch_size = self.cfg.batch_size
        g.batch_count = len(self.batches)

        self.check_dependencies()
        self.review = ReviewQueue(review_file_path(self.cfg.review_dir, started), created_at=started)
        self.review.path.parent.mkdir(parents=True, exist_ok=True)

        authors = sum(len(batch) for batch in self.batches)
        log_line(
            f"[RUN] Setup complete: batches={len(self.batches)}, authors={authors}, "
            f"write_to={self.cfg.write_to}"
        )
        _scraper_event(
            "plan",
            batches=len(self.batches),
            authors=authors,
            batch_size=self.cfg.batch_size,
            write_to=self.cfg.write_to,
        )

    def check_dependencies(self) -> None:
        services = self.services

        if self.cfg.writes_to_db():
            store = services.store
            if store is None:
                raise SetupError("DocumentStore is not configured for database output")
            if not store.is_connected():
                try:
                    store.connect()
                except Exception as exc:  # noqa: BLE001
                    self.stats.record_error(ErrorCode.NETWORK)
                    raise SetupError("DocumentStore failed to connect", exc) from exc
                if not store.is_connected():
                    raise SetupError("DocumentStore connection attempt failed")

        if not services.browser.is_connected():
            raise SetupError("Browser session is not connected")

        if self.cfg.writes_to_file():
            if services.author_writer is None or not services.author_writer.is_ready:
                raise SetupError("Author FileWriter is not ready")
            if services.play_writer is None or not services.play_writer.is_ready:
                raise SetupError("Play FileWriter is not ready")

        try:
            services.display.start()
        except OSError as exc:
            raise SetupError("ProgressDisplay failed to start", exc) from exc
        if not services.display.is_ready:
            raise SetupError("ProgressDisplay is not ready")

    def finish(self) -> Dict[str, Any]:
        """Record the end time, close the display and flush the review file."""

        self.stats.globals.end_time = utc_now()
        try:
            self.services.display.close()
        except Exception as exc:  # noqa: BLE001
            log_line(f"[RUN] Error closing progress display: {exc}", logging.WARNING)

        review_path: Optional[str] = None
        if self.review is not None:
            self.review.write()
            review_path = None if self.review.has_error else str(self.review.path)

        summary = {
            "status": self.status,
            "writeTo": self.cfg.write_to,
            "reviewFile": review_path,
            "review": self.review.counts() if self.review is not None else None,
            "stats": self.stats.to_dict(),
        }
        try:
            save_json_file(self.cfg.summary_file, summary)
        except OSError as exc:
            log_line(f"[RUN][WARN] Unable to write summary: {exc}", logging.WARNING)

        a = self.stats.authors
        p = self.stats.plays
        log_line(
            f"[RUN] Totals: status={self.status}, authors_written={a.total_written}, "
            f"authors_skipped={a.total_skipped}, authors_flagged={a.total_flagged}, "
            f"plays_written={p.total_written}, plays_skipped={p.total_skipped}, "
            f"plays_flagged={p.total_flagged}"
        )
        return summary

    def teardown(self) -> None:
        """Close every service once; close failures are logged, never raised."""

        if self._torn_down:
            return
        self._torn_down = True

        services = self.services
        steps: List[Tuple[str, Optional[Callable[[], Any]]]] = [
            ("progress display", services.display.close),
            ("browser session", services.browser.close),
            ("document store", services.store.close if services.store else None),
            ("author writer", services.author_writer.close if services.author_writer else None),
            ("play writer", services.play_writer.close if services.play_writer else None),
        ]
        for name, close in steps:
            if close is None:
                continue
            try:
                close()
            except Exception as exc:  # noqa: BLE001
                log_line(f"[RUN] Error closing {name}: {exc}", logging.WARNING)
        _scraper_event("state", phase="teardown", status=self.status)

    # ------------------------------------------------------------------
    # Batches and authors
    # ------------------------------------------------------------------

    def process_batch(self, index: int, batch: Sequence[Tuple[str, str]]) -> None:
        first = batch[0][0] if batch else ""
        last = batch[-1][0] if batch else ""
        self.stats.start_batch(index, len(batch), first, last)
        log_line(f"[RUN] Batch {index + 1}/{len(self.batches)}: {first} - {last}")

        for position, (profile_name, slug) in enumerate(batch):
            self.stats.current.author_index = position
            try:
                self.process_author(profile_name, slug)
            except ArchivistError as exc:
                self.handle_error(exc)
        self.stats.globals.completed_batch_count += 1
        self.services.display.update(force=True)

    def process_author(self, profile_name: str, slug: str) -> AuthorRecord:
        """Scrape, build and write one author and its plays."""

        url = author_url(slug, self.cfg.base_url)
        self._profile_name = profile_name
        self._profile_slug = slug
        current = self.stats.current
        current.author_url = url
        current.play_index = 0
        current.plays_for_author = 0
        self.services.display.update(force=True)

        profile = self.scrape_author(profile_name, url)
        author, works = self.create_author(profile_name, slug, url, profile)
        current.plays_for_author = len(works)
        self.services.display.update(force=True)

        accumulated = self.process_plays(author, works, url)
        author.add_works(accumulated)
        self.write_author(author)
        self.services.display.update()
        return author

    def scrape_author(self, profile_name: str, url: str) -> ProfileData:
        """Navigate to the profile and extract it.

        Raises :class:`ScrapingError`, after counting the failure under the
        matching error bucket.
        """

        try:
            page = self.services.browser.get_page()
        except RuntimeError as exc:
            self.stats.record_error(ErrorCode.OTHER)
            raise ScrapingError(
                f"Failed to get a browser page for author: {profile_name} at {url}", exc
            ) from exc

        try:
            self._navigate(page, url, self.cfg)
        except (PWTimeout, PWError) as exc:
            self.stats.record_error(ErrorCode.NETWORK)
            raise ScrapingError(
                f"Failed to navigate to author profile: {profile_name} at {url}", exc
            ) from exc

        try:
            return self._profile_scraper(page, self.cfg)
        except (TemplateError, PWError) as exc:
            self.stats.record_error(ErrorCode.SCRAPE)
            raise ScrapingError(
                f"Failed to scrape author profile: {profile_name} at {url}", exc
            ) from exc

    def create_author(
        self, profile_name: str, slug: str, url: str, profile: ProfileData
    ) -> Tuple[AuthorRecord, List[ScrapedWork]]:
        if profile is None or profile.biography is None or profile.works is None:
            self.stats.record_error(ErrorCode.PROCESS)
            raise AuthorProcessingError(
                f"Incomplete author data scraped for author: {profile_name} at {url}"
            )
        try:
            author = build_author(
                profile_name, slug, profile.biography, source_url=url, policy=self.policy
            )
        except (ValueError, TypeError, AttributeError) as exc:
            self.stats.record_error(ErrorCode.PROCESS)
            raise AuthorProcessingError(
                f"Failed to build author record for: {profile_name} at {url}", exc
            ) from exc
        return author, list(profile.works)

    # ------------------------------------------------------------------
    # Plays
    # ------------------------------------------------------------------

    def process_plays(
        self, author: AuthorRecord, works: Sequence[ScrapedWork], url: str
    ) -> WorkAccumulator:
        """Build and write each play; a failing play is skipped on its own.

        Returns the ids of the plays that were written, in page order.
        """

        accumulated = WorkAccumulator()
        for position, work in enumerate(works):
            self.stats.current.play_index = position
            play: Optional[PlayRecord] = None
            try:
                play = self.create_play(work, author, url)
                self.write_play(play, author)
            except (PlayProcessingError, WritePlayError) as exc:
                self.handle_error(exc, work=work)
                continue
            accumulated.add(play)
            if play.is_adaptation:
                self.stats.globals.total_adaptations += 1
            self.services.display.update()
        return accumulated

    def create_play(self, work: ScrapedWork, author: AuthorRecord, url: str) -> PlayRecord:
        if not author.id or not author.display_name:
            self.stats.record_error(ErrorCode.PROCESS)
            raise PlayProcessingError("Author reference data is incomplete when creating play.")
        try:
            return build_play(work, author, source_url=url, scraped_at=author.scraped_at)
        except (ValueError, TypeError, AttributeError) as exc:
            self.stats.record_error(ErrorCode.PROCESS)
            raise PlayProcessingError(
                f"Malformed play data for author {author.display_name}: {exc}", exc
            ) from exc

    def write_play(self, play: PlayRecord, author: AuthorRecord) -> None:
        """Persist ``play`` to the configured target and update the counters.

        When the store already holds the play, ``play.id`` is replaced by the
        stored id so the author references the existing document.
        """

        document = play.to_document()

        if self.cfg.writes_to_db():
            try:
                stored = upsert_document(self._collection("plays"), play.upsert_filter(), document)
            except _STORE_WRITE_ERRORS as exc:
                self._record_store_error(exc)
                raise WritePlayError(self._write_error_message("play", document), exc) from exc
            play.id = str(stored.get("_id") or play.id)
        elif self.cfg.writes_to_file():
            writer = self.services.play_writer
            if writer is None:
                raise WritePlayError("Play FileWriter is not initialized for file output")
            try:
                writer.write_file(play.filename, document)
            except FileWriteError as exc:
                self.stats.record_error(ErrorCode.WRITE)
                raise WritePlayError(self._write_error_message("play", document), exc) from exc

        if play.needs_review:
            self.stats.plays.written(flagged=True)
            if self.review is not None:
                self.review.add_flagged_play(
                    self._profile_name,
                    title=play.title,
                    play_id=play.play_id,
                    author_name=author.display_name,
                    author_id=author.id,
                    url=play.source_url,
                    filename=play.filename,
                )
        else:
            self.stats.plays.written()
        self.stats.globals.files_written += 1

    def write_author(self, author: AuthorRecord) -> None:
        document = author.to_document()

        if self.cfg.writes_to_db():
            try:
                upsert_document(self._collection("authors"), {"_id": author.id}, document)
            except _STORE_WRITE_ERRORS as exc:
                self._record_store_error(exc)
                raise WriteAuthorError(self._write_error_message("author", document), exc) from exc
        elif self.cfg.writes_to_file():
            writer = self.services.author_writer
            if writer is None:
                raise WriteAuthorError("Author FileWriter is not initialized for file output")
            try:
                writer.write_file(author.filename, document)
            except FileWriteError as exc:
                self.stats.record_error(ErrorCode.WRITE)
                raise WriteAuthorError(self._write_error_message("author", document), exc) from exc

        if author.needs_review:
            self.stats.authors.written(flagged=True)
            if self.review is not None:
                self.review.add_flagged_author(
                    self._profile_name, document, filename=author.filename, url=author.source_url
                )
        else:
            self.stats.authors.written()
        self.stats.globals.files_written += 1

    # ------------------------------------------------------------------
    # Error routing
    # ------------------------------------------------------------------

    def handle_error(self, exc: BaseException, *, work: Optional[ScrapedWork] = None) -> None:
        """Route a recoverable error to its skip action; re-raise anything else."""

        if isinstance(exc, SetupError):
            raise exc

        reason = _SKIP_AUTHOR_REASONS.get(type(exc))
        if reason is not None:
            self._skip_author(reason, exc)
            return

        reason = _SKIP_PLAY_REASONS.get(type(exc))
        if reason is not None:
            self._skip_play(reason, exc, work)
            return

        self.stats.record_error(ErrorCode.OTHER)
        log_line(f"Unexpected error encountered: {exc!r}", logging.ERROR)
        raise exc

    def _skip_author(self, reason: str, exc: BaseException) -> None:
        self._log_error(exc)
        self.stats.authors.skipped()
        if self.review is not None:
            self.review.add_skipped_author(self._profile_name, self.stats.current.author_url, reason)
        _scraper_event(
            "skip",
            unit="author",
            reason=reason,
            profile=self._profile_name,
            url=self.stats.current.author_url,
        )
        self.services.display.update(force=True)

    def _skip_play(self, reason: str, exc: BaseException, work: Optional[ScrapedWork]) -> None:
        log_line(f"Skipping play due to {reason}", logging.WARNING)
        self._log_error(exc)
        self.stats.plays.skipped()
        play_id = work.play_id if work is not None else None
        title = work.title if work is not None else None
        if self.review is not None:
            self.review.add_skipped_play(
                self._profile_name,
                self.stats.current.author_url,
                reason,
                play_id=play_id,
                title=title,
            )
        _scraper_event("skip", unit="play", reason=reason, play_id=play_id, title=title)
        self.services.display.update(force=True)

    @staticmethod
    def _log_error(exc: BaseException) -> None:
        log_line(str(exc), logging.ERROR)
        cause = getattr(exc, "cause", None)
        if cause is not None:
            log_line(f"Original error cause: {cause!r}", logging.ERROR)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _collection(self, name: str):
        store = self.services.store
        if store is None:
            raise RuntimeError("Document store is not configured")
        return store.get_collection(name)

    def _record_store_error(self, exc: BaseException) -> None:
        if isinstance(exc, _STORE_NETWORK_ERRORS):
            self.stats.record_error(ErrorCode.NETWORK)
        else:
            self.stats.record_error(ErrorCode.WRITE)

    def _write_error_message(self, kind: str, document: Mapping[str, Any]) -> str:
        metadata = document.get("metadata") or {}
        if self.cfg.writes_to_db():
            summary = f"Error writing {kind} to database:"
        else:
            summary = f"Error writing {kind} to file {self._profile_slug}.json:"
        label = f"Name: {document.get('name')}" if kind == "author" else f"Title: {document.get('title')}"
        return (
            f"{summary}\n"
            f"    Document ID: {document.get('_id')}\n"
            f"    {label}\n"
            f"    Source URL: {metadata.get('sourceUrl')}\n"
            f"    Scraped At: {metadata.get('scrapedAt')}"
        )


__all__ = [
    "Batch",
    "ScrapingOrchestrator",
    "Services",
    "author_url",
    "build_batches",
]
