from __future__ import annotations

import json
import logging
import re
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from . import config

LOGGER = logging.getLogger("archivist")
LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_LOGGER_INITIALISED = False
_CURRENT_LOG_FILE: Path = config.LOG_FILE


def _detach_run_handlers() -> None:
    # A live ProgressDisplay stays attached across log rotation.
    for handler in list(LOGGER.handlers):
        if getattr(handler, "is_display_sink", False):
            continue
        LOGGER.removeHandler(handler)
        try:
            handler.close()
        except Exception:  # noqa: BLE001
            continue


def _configure_logger(log_path: Path) -> None:
    """Point the ``archivist`` logger at stdout and ``log_path``."""

    global _LOGGER_INITIALISED, _CURRENT_LOG_FILE

    log_path.parent.mkdir(parents=True, exist_ok=True)
    _detach_run_handlers()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    for handler in (
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(log_path, encoding="utf-8"),
    ):
        handler.setFormatter(formatter)
        LOGGER.addHandler(handler)

    LOGGER.setLevel(logging.INFO)
    LOGGER.propagate = False
    _CURRENT_LOG_FILE = log_path
    _LOGGER_INITIALISED = True


def _ensure_logger() -> None:
    """Fall back to ``config.LOG_FILE`` when no run logger was set up."""

    if not _LOGGER_INITIALISED:
        _configure_logger(config.LOG_FILE)


def setup_run_logger(cfg: config.ScraperConfig | None = None) -> Path:
    """Rotate to a fresh log file for the current run.

    ``cfg.log_file`` names the file explicitly; otherwise a timestamped file is
    created under ``cfg.log_dir``.
    """

    log_dir = Path(cfg.log_dir if cfg else config.LOG_DIR)
    override = cfg.log_file if cfg else config.LOG_FILE_OVERRIDE
    if override:
        log_path = log_dir / override
    else:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        log_path = log_dir / f"scrape_{timestamp}.log"
    _configure_logger(log_path)
    LOGGER.info("Logging to %s", log_path)
    return log_path


def get_current_log_path() -> Path:
    """Return the path to the log file currently receiving log lines."""

    _ensure_logger()
    return _CURRENT_LOG_FILE


def ensure_dirs(cfg: config.ScraperConfig | None = None) -> None:
    """Ensure that the application's expected directory structure exists."""

    data_dir = cfg.data_dir if cfg else config.DATA_DIR
    log_dir = cfg.log_dir if cfg else config.LOG_DIR
    output_dir = cfg.output_dir if cfg else config.OUTPUT_DIR

    Path(data_dir).mkdir(parents=True, exist_ok=True)
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    Path(output_dir).mkdir(parents=True, exist_ok=True)


def log_line(message: str, level: int = logging.INFO) -> None:
    """Write a timestamped log line to stdout and the active log file."""

    _ensure_logger()
    LOGGER.log(level, message)


def utc_now() -> datetime:
    """Return an aware UTC timestamp."""

    return datetime.now(timezone.utc)


def file_timestamp(moment: datetime) -> str:
    """Return ``moment`` as an ISO string safe for use in filenames."""

    return re.sub(r"[:.\-+]", "_", moment.isoformat(timespec="milliseconds"))


def json_default(value: Any) -> Any:
    """``json.dumps`` fallback that renders dates as ISO-8601 strings."""

    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def save_json_file(path: Path, payload: Any) -> None:
    """Persist ``payload`` to ``path`` atomically."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")

    with tmp_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, ensure_ascii=False, indent=2, default=json_default)

    tmp_path.replace(path)


def load_json_file(path: Path) -> Any:
    """Load JSON from ``path``; errors propagate to the caller."""

    with Path(path).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def slugify_title(title: str, max_chars: int = 16) -> str:
    """Return a filename-safe slug from the first ``max_chars`` of ``title``."""

    truncated = (title or "")[:max_chars].lower()
    truncated = re.sub(r"\s+", "-", truncated)
    return re.sub(r"[^a-z0-9\-]", "", truncated)


def play_filename(title: str, play_id: str) -> str:
    """Return the output filename for a play document."""

    padded = (play_id or "0000000").rjust(6, "0")
    return f"{padded}-{slugify_title(title)}.json"
