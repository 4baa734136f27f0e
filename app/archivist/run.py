"""Command-line entry point for a full profile scraping run."""
from __future__ import annotations

import argparse
import logging
import signal
from typing import Any, Dict, List, Optional

from .browser import BrowserSession
from .config import WRITE_TARGETS, ScraperConfig, load_config
from .config_validation import validate_runtime_config
from .errors import SetupError
from .file_writer import FileWriter
from .logging_utils import _scraper_event
from .orchestrator import ScrapingOrchestrator, Services
from .progress import ProgressDisplay
from .stats import RunStats
from .store import DocumentStore
from .utils import ensure_dirs, log_line, setup_run_logger

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_INTERRUPTED = 130


def _handle_sigint(signum: int, frame: Any) -> None:
    raise KeyboardInterrupt


def install_signal_handlers() -> None:
    signal.signal(signal.SIGINT, _handle_sigint)


def build_services(cfg: ScraperConfig, stats: RunStats, *, headless: bool = True) -> Services:
    """Create the collaborators for ``cfg.write_to``.

    The store is created only for database output and the file writers only
    for file output; the store is connected later by the orchestrator.
    """

    store = DocumentStore(cfg.db_path) if cfg.writes_to_db() else None
    author_writer: Optional[FileWriter] = None
    play_writer: Optional[FileWriter] = None
    if cfg.writes_to_file():
        author_writer = FileWriter("authors", cfg.output_dir)
        play_writer = FileWriter("plays", cfg.output_dir)

    try:
        browser = BrowserSession.create(cfg, headless=headless)
    except Exception as exc:  # noqa: BLE001
        raise SetupError("Failed to launch the browser session", exc) from exc

    return Services(
        browser=browser,
        display=ProgressDisplay(cfg, stats),
        store=store,
        author_writer=author_writer,
        play_writer=play_writer,
    )


def run_scrape(cfg: ScraperConfig, *, headless: bool = True) -> Dict[str, Any]:
    """Scrape every configured author and return the run summary."""

    ensure_dirs(cfg)
    log_path = setup_run_logger(cfg)
    _scraper_event(
        "config",
        write_to=cfg.write_to,
        batch_size=cfg.batch_size,
        max_batches=cfg.max_batches,
        letters=cfg.letters,
        base_url=cfg.base_url,
        log_path=str(log_path),
    )

    stats = RunStats()
    services = build_services(cfg, stats, headless=headless)
    orchestrator = ScrapingOrchestrator(cfg, services, stats=stats)
    return orchestrator.run()


def _cli_entrypoint(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Scrape doollee playwright profiles")
    parser.add_argument("--write-to", choices=WRITE_TARGETS, default=None)
    parser.add_argument("--batch-size", type=int, default=None)
    parser.add_argument("--max-batches", type=int, default=None, help="0 means unlimited")
    parser.add_argument("--letters", default=None, help="Index letters to process, e.g. ABC")
    parser.add_argument("--base-url", default=None)
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    args = parser.parse_args(argv)

    cfg = load_config(
        write_to=args.write_to,
        batch_size=args.batch_size,
        max_batches=args.max_batches,
        letters=args.letters,
        base_url=args.base_url,
    )
    try:
        cfg = validate_runtime_config(cfg, entrypoint="cli")
    except ValueError:
        return EXIT_FATAL

    install_signal_handlers()
    try:
        run_scrape(cfg, headless=not args.headed)
    except SetupError as exc:
        log_line(f"[RUN] Fatal setup error: {exc}", logging.ERROR)
        return EXIT_FATAL
    except KeyboardInterrupt:
        log_line("[RUN] Interrupted; services closed.", logging.WARNING)
        return EXIT_INTERRUPTED
    except Exception as exc:  # noqa: BLE001
        log_line(f"[RUN] Top-level scrape error: {exc!r}", logging.ERROR)
        return EXIT_FATAL
    return EXIT_OK


__all__ = ["build_services", "run_scrape", "_cli_entrypoint"]


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(_cli_entrypoint())
