"""Live terminal dashboard fed by the shared ``archivist`` logger.

The display is a :class:`logging.Handler`. While it is active the console and
file handlers of the shared logger are detached so nothing but the dashboard
reaches stdout; log records are instead written to the run log file with the
current author URL attached to warnings and errors, and the newest lines are
kept as a tail for rendering. :meth:`ProgressDisplay.close` restores the
detached handlers.
"""
from __future__ import annotations

import logging
import sys
import time
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import IO, Deque, List, Optional

from .config import ScraperConfig
from .stats import RunStats, success_rate
from .utils import LOGGER, get_current_log_path, utc_now

RENDER_INTERVAL_SECONDS = 0.2
CLEAR_SCREEN = "\x1b[2J\x1b[H"
# Exact types installed by utils._configure_logger.
_CONSOLE_HANDLER_TYPES = (logging.StreamHandler, logging.FileHandler)


def _pad(value: int, width: int) -> str:
    return str(value).rjust(width, "0")


def _elapsed(start: Optional[datetime], end: Optional[datetime] = None, hour_width: int = 3) -> str:
    if start is None:
        return "N/A"
    seconds = int(((end or utc_now()) - start).total_seconds())
    hours, remainder = divmod(max(seconds, 0), 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{_pad(hours, hour_width)}:{_pad(minutes, 2)}:{_pad(secs, 2)}"


def _short(value: str, width: int) -> str:
    return "".join(value.lower().split())[:width]


def format_log_line(record: logging.LogRecord, author_url: str, base_url: str) -> str:
    """``[iso] LEVEL: (url) - message`` with the URL only on warnings and errors."""

    timestamp = datetime.fromtimestamp(record.created).astimezone().isoformat(timespec="milliseconds")
    severity = "WARN" if record.levelno == logging.WARNING else record.levelname
    url = author_url.replace(base_url, "") if author_url else ""
    include_url = record.levelno >= logging.WARNING and url
    prefix = f" ({url}) -" if include_url else ""
    return f"[{timestamp}] {severity}:{prefix} {record.getMessage()}"


class ProgressDisplay(logging.Handler):
    is_display_sink = True

    def __init__(
        self,
        cfg: ScraperConfig,
        stats: RunStats,
        *,
        stream: IO[str] | None = None,
        logger: logging.Logger = LOGGER,
        log_path: Path | None = None,
        render_interval: float = RENDER_INTERVAL_SECONDS,
    ) -> None:
        super().__init__(level=logging.INFO)
        self.cfg = cfg
        self.stats = stats
        self.stream = stream or sys.stdout
        self.logger = logger
        self.log_path = Path(log_path) if log_path else get_current_log_path()
        self.render_interval = render_interval
        self.tail: Deque[str] = deque(maxlen=max(cfg.tail_length, 1))
        self.warnings_logged = 0
        self.errors_logged = 0
        self._detached: List[logging.Handler] = []
        self._log_file: Optional[IO[str]] = None
        self._last_render = 0.0
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    def start(self) -> "ProgressDisplay":
        if self._ready:
            return self
        if self.stats.globals.start_time is None:
            self.stats.globals.start_time = utc_now()
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._log_file = self.log_path.open("a", encoding="utf-8")
        for handler in list(self.logger.handlers):
            # Only the console and run-log sinks are replaced; capture handlers stay.
            if type(handler) not in _CONSOLE_HANDLER_TYPES:
                continue
            self.logger.removeHandler(handler)
            self._detached.append(handler)
        self.logger.addHandler(self)
        self._ready = True
        return self

    # logging.Handler ---------------------------------------------------

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = format_log_line(record, self.stats.current.author_url, self.cfg.base_url)
            self.tail.append(line)
            if record.levelno >= logging.ERROR:
                self.errors_logged += 1
            elif record.levelno == logging.WARNING:
                self.warnings_logged += 1
            if self._log_file is not None:
                self._log_file.write(line + "\n")
                self._log_file.flush()
        except Exception:  # noqa: BLE001
            self.handleError(record)

    def close(self) -> None:
        if self._ready:
            self.logger.removeHandler(self)
            for handler in self._detached:
                self.logger.addHandler(handler)
            self._detached = []
            if self._log_file is not None:
                self._log_file.close()
                self._log_file = None
            self._ready = False
        super().close()

    # rendering ---------------------------------------------------------

    def update(self, force: bool = False) -> None:
        if not self._ready:
            return
        now = time.monotonic()
        if not force and now - self._last_render < self.render_interval:
            return
        self._last_render = now
        self.stream.write(CLEAR_SCREEN + self.render())
        self.stream.flush()

    def render(self) -> str:
        return "\n".join(
            [
                self._render_header("Doollee Archivist Author & Works Scraper"),
                self._render_global(),
                "",
                self._render_current(),
                self._render_output(),
                "",
                self._render_logging(),
                "",
            ]
        )

    @staticmethod
    def _render_header(title: str) -> str:
        return (
            "╒═══════════════════════════════════════════════════════════════════════╕\n"
            f"│ {title.ljust(70)}│\n"
            "╘═══════════════════════════════════════════════════════════════════════╛"
        )

    def _render_global(self) -> str:
        g = self.stats.globals
        started = g.start_time.astimezone().strftime("%H:%M:%S") if g.start_time else ""
        return (
            f"┌─ Time Started:  {started}       ┌─ Batch Size:     {_pad(g.batch_size, 4)}\n"
            f"└─ Duration:     {_elapsed(g.start_time)}       └─ Total Batches:  {_pad(g.batch_count, 3)}"
        )

    def _render_current(self) -> str:
        c = self.stats.current
        total = _pad(self.stats.globals.batch_count, 3)
        url = c.author_url.replace(self.cfg.base_url, "")[:21]
        return (
            f"┌─ Current Batch:    {_pad(c.batch_index + 1, 3)} /  {total}  "
            f"({_short(c.first_author_name, 10)} - {_short(c.last_author_name, 10)})\n"
            f"├─ Current Author:  {_pad(c.author_index + 1, 4)} / {_pad(c.authors_in_batch, 4)}  ({url})\n"
            f"└─ Current Play:     {_pad(c.play_index + 1, 3)} /  {_pad(c.plays_for_author, 3)}"
        )

    def _render_output(self) -> str:
        a = self.stats.authors
        p = self.stats.plays
        return (
            "          ┌─────── Current Batch ───────┐ ┌─────── All Batches ─────────┐\n"
            "          │ Written │ Skipped │ Flagged │ │ Written │ Skipped │ Flagged │\n"
            "┌─────────┼─────────┼─────────┼─────────┤ ├─────────┼─────────┼─────────┤\n"
            f"│ Authors │   {_pad(a.batch_written, 4)}  │   {_pad(a.batch_skipped, 4)}  │   {_pad(a.batch_flagged, 4)}  │ "
            f"│   {_pad(a.total_written, 5)} │   {_pad(a.total_skipped, 5)} │   {_pad(a.total_flagged, 5)} │\n"
            f"│ Plays   │   {_pad(p.batch_written, 5)} │   {_pad(p.batch_skipped, 5)} │   {_pad(p.batch_flagged, 5)} │ "
            f"│  {_pad(p.total_written, 6)} │  {_pad(p.total_skipped, 6)} │  {_pad(p.total_flagged, 6)} │\n"
            "└─────────┴─────────┴─────────┴─────────┘ └─────────┴─────────┴─────────┘"
        )

    def _render_logging(self) -> str:
        tail = "\n".join(f"  {line}" for line in self.tail)
        return (
            f"┌─ Log Output: {self.log_path}\n"
            f"├─ {_pad(self.warnings_logged, 5)} Warnings  /  {_pad(self.errors_logged, 5)} Errors\n"
            f"└─ Tail:\n{tail}"
        )

    # summary -----------------------------------------------------------

    def _log_file_data(self) -> tuple[str, int]:
        try:
            content = self.log_path.read_text(encoding="utf-8")
        except OSError:
            return "0.00", 0
        size_kb = f"{len(content.encode('utf-8')) / 1024:.2f}"
        return size_kb, len(content.split("\n"))

    def render_summary(self, review_file: Path | str | None = None) -> str:
        g = self.stats.globals
        a = self.stats.authors
        p = self.stats.plays
        errors = self.stats.errors
        runtime = _elapsed(g.start_time, g.end_time, hour_width=2) if g.end_time else "N/A"

        if self.cfg.writes_to_db():
            location = f"Database:   {self.cfg.db_path}"
            write_errors = "errors encountered when inserting documents"
        elif self.cfg.writes_to_file():
            location = f"Files:      Directories written to {self.cfg.output_dir}/"
            write_errors = "errors encountered when writing files"
        else:
            location = "Stage:      Nothing written (dry run)"
            write_errors = "errors encountered when writing"
        size_kb, line_count = self._log_file_data()

        return "\n".join(
            [
                self._render_header("Doollee Archivist - Scraping Complete"),
                "SUMMARY STATISTICS",
                f"├─ Total Runtime:         {runtime}",
                f"├─ Authors Processed:     {a.total_written} authors across {g.completed_batch_count} batches",
                f"├─ Plays Catalogued:      {p.total_written} plays (including {g.total_adaptations} adaptations)",
                f"├─ Author Success Rate:   {success_rate(a.total_written, a.total_skipped)}% "
                f"({a.total_skipped} authors skipped due to errors)",
                f"└─ Play Success Rate:     {success_rate(p.total_written, p.total_skipped)}% "
                f"({p.total_skipped} plays skipped due to errors)",
                "",
                "OUTPUT LOCATIONS",
                f"┌─ {location}",
                f"├─ Logs:      {self.log_path}",
                f"└─ Log Size:      {size_kb} KB ({line_count} lines)",
                "",
                "REVIEW REQUIRED",
                f"┌─ Flagged Authors:   {a.total_flagged} authors need manual review",
                f"├─ Flagged Plays:     {p.total_flagged} plays need verification",
                f"├─ Scrape Errors:     {errors.get('scrape_error', 0)} profile pages failed extraction",
                f"├─ Process Errors:    {errors.get('process_error', 0)} records had incomplete required fields",
                f"├─ Write Errors:      {errors.get('write_error', 0)} {write_errors}",
                f"├─ Network Errors:    {errors.get('network_error', 0)} navigation or connection failures",
                f"├─ Other Errors:      {errors.get('other_error', 0)} other errors encountered",
                f"└─ Review File:       {review_file or 'N/A'}",
                "",
            ]
        )

    def show_summary(self, review_file: Path | str | None = None) -> None:
        """Write the end-of-run summary once, after the dashboard is closed."""

        self.stream.write(CLEAR_SCREEN + self.render_summary(review_file))
        self.stream.flush()


__all__ = ["ProgressDisplay", "format_log_line"]
