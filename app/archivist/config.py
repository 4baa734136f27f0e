"""Configuration for the doollee archivist scraper.

Environment values are read once at import into module constants; a run
builds a :class:`ScraperConfig` from them via :func:`load_config` and passes
that value explicitly to every collaborator.
"""
from __future__ import annotations

import os
import string
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Tuple


def _parse_int_env(env_var: str, default: int, *, minimum: int = 0) -> int:
    """Parse an integer from the environment; malformed values fall back to ``default``."""

    try:
        value = int(os.getenv(env_var, str(default)))
    except ValueError:
        return default
    return max(minimum, value)


def _parse_float_env(env_var: str, default: float, *, minimum: float = 0.0) -> float:
    try:
        value = float(os.getenv(env_var, str(default)))
    except ValueError:
        return default
    return max(minimum, value)


def _parse_timeout_seconds(env_var: str, default: int, *, minimum: int = 1) -> int:
    """Parse a timeout value in seconds from the environment with bounds."""

    return _parse_int_env(env_var, default, minimum=minimum)


DATA_DIR: Path = Path(os.getenv("ARCHIVIST_DATA_DIR", "data"))
LOG_DIR: Path = Path(os.getenv("ARCHIVIST_LOG_DIR", str(DATA_DIR / "logs")))
LOG_FILE: Path = LOG_DIR / "latest.log"
OUTPUT_DIR: Path = Path(os.getenv("ARCHIVIST_OUTPUT_DIR", "output"))
AUTHOR_INDEX_DIR: Path = Path(
    os.getenv("ARCHIVIST_AUTHOR_INDEX_DIR", str(OUTPUT_DIR / "profile-urls"))
)
SUMMARY_FILE: Path = DATA_DIR / "last_summary.json"
DB_PATH: Path = Path(os.getenv("ARCHIVIST_DB_PATH", str(DATA_DIR / "archivist.db")))

DEFAULT_BASE_URL: str = "https://www.doollee.com"
BASE_URL: str = os.getenv("ARCHIVIST_BASE_URL", DEFAULT_BASE_URL).strip().rstrip("/")

WRITE_TARGETS: Tuple[str, ...] = ("db", "file", "stage")
WRITE_TO: str = os.getenv("ARCHIVIST_WRITE_TO", "stage").strip().lower() or "stage"

BATCH_SIZE: int = _parse_int_env("ARCHIVIST_BATCH_SIZE", 20, minimum=1)
# 0 means no cap on the number of batches.
MAX_BATCHES: int = _parse_int_env("ARCHIVIST_MAX_BATCHES", 0)

# There is no index page for playwrights under "V".
DEFAULT_LETTERS: str = "".join(ch for ch in string.ascii_uppercase if ch != "V")
LETTERS: str = os.getenv("ARCHIVIST_LETTERS", DEFAULT_LETTERS).strip().upper()

RATE_LIMIT_DELAY: float = _parse_float_env("ARCHIVIST_RATE_LIMIT_DELAY", 3.0)

# Log file override; blank means a timestamped file under LOG_DIR.
LOG_FILE_OVERRIDE: str = os.getenv("ARCHIVIST_LOG_FILE", "").strip()
TAIL_LENGTH: int = _parse_int_env("ARCHIVIST_TAIL_LENGTH", 1)

# Environment name; destructive store resets are refused in production.
ENVIRONMENT: str = os.getenv("ARCHIVIST_ENV", "development").strip().lower()


# Playwright timeouts (seconds)
# Navigation timeout for page.goto calls.
PAGE_TIMEOUT_SECONDS: int = _parse_timeout_seconds("ARCHIVIST_PAGE_TIMEOUT_SECONDS", 60)
# Element waits (template markers, listing containers).
ELEMENT_TIMEOUT_SECONDS: int = _parse_timeout_seconds("ARCHIVIST_ELEMENT_TIMEOUT_SECONDS", 30)
# Plain HTTP fetches of listing pages.
HTTP_TIMEOUT_SECONDS: int = _parse_timeout_seconds("ARCHIVIST_HTTP_TIMEOUT_SECONDS", 30)

COMMON_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Connection": "keep-alive",
}


@dataclass(frozen=True)
class ScraperConfig:
    """Immutable run configuration passed to the orchestrator and services."""

    write_to: str = WRITE_TO
    batch_size: int = BATCH_SIZE
    max_batches: int = MAX_BATCHES
    letters: str = LETTERS
    base_url: str = BASE_URL
    page_timeout_seconds: int = PAGE_TIMEOUT_SECONDS
    element_timeout_seconds: int = ELEMENT_TIMEOUT_SECONDS
    http_timeout_seconds: int = HTTP_TIMEOUT_SECONDS
    rate_limit_delay: float = RATE_LIMIT_DELAY
    data_dir: Path = DATA_DIR
    log_dir: Path = LOG_DIR
    log_file: str = LOG_FILE_OVERRIDE
    tail_length: int = TAIL_LENGTH
    output_dir: Path = OUTPUT_DIR
    author_index_dir: Path = AUTHOR_INDEX_DIR
    db_path: Path = DB_PATH
    summary_file: Path = SUMMARY_FILE
    headers: dict[str, str] = field(default_factory=lambda: dict(COMMON_HEADERS))

    @property
    def page_timeout_ms(self) -> int:
        return self.page_timeout_seconds * 1000

    @property
    def element_timeout_ms(self) -> int:
        return self.element_timeout_seconds * 1000

    @property
    def review_dir(self) -> Path:
        return self.output_dir / "review-queue"

    def writes_to_db(self) -> bool:
        return self.write_to == "db"

    def writes_to_file(self) -> bool:
        return self.write_to == "file"


def load_config(**overrides: Any) -> ScraperConfig:
    """Build the run configuration from module constants and ``overrides``.

    ``None`` overrides are ignored so CLI flags can be forwarded as-is.
    """

    cfg = ScraperConfig(
        write_to=WRITE_TO,
        batch_size=BATCH_SIZE,
        max_batches=MAX_BATCHES,
        letters=LETTERS,
        base_url=BASE_URL,
        page_timeout_seconds=PAGE_TIMEOUT_SECONDS,
        element_timeout_seconds=ELEMENT_TIMEOUT_SECONDS,
        http_timeout_seconds=HTTP_TIMEOUT_SECONDS,
        rate_limit_delay=RATE_LIMIT_DELAY,
        data_dir=DATA_DIR,
        log_dir=LOG_DIR,
        log_file=LOG_FILE_OVERRIDE,
        tail_length=TAIL_LENGTH,
        output_dir=OUTPUT_DIR,
        author_index_dir=AUTHOR_INDEX_DIR,
        db_path=DB_PATH,
        summary_file=SUMMARY_FILE,
    )
    updates = {key: value for key, value in overrides.items() if value is not None}
    if "write_to" in updates:
        updates["write_to"] = str(updates["write_to"]).strip().lower()
    if "letters" in updates:
        updates["letters"] = str(updates["letters"]).strip().upper()
    if "base_url" in updates:
        updates["base_url"] = str(updates["base_url"]).strip().rstrip("/")
    return replace(cfg, **updates) if updates else cfg


__all__ = [
    "ScraperConfig",
    "load_config",
    "WRITE_TARGETS",
    "DEFAULT_LETTERS",
]
