from __future__ import annotations

import logging
import sqlite3
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .config import ScraperConfig, load_config
from .config_validation import validate_runtime_config
from .errors import SetupError
from .listings import load_author_index
from .logging_utils import _scraper_event
from .store import DocumentStore
from .utils import ensure_dirs, log_line


@dataclass
class HealthResult:
    ok: bool
    checks: dict[str, dict[str, Any]]


def _directory_writable(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=path):
            pass
    except OSError:
        return False
    return True


def run_health_checks(
    cfg: Optional[ScraperConfig] = None, entrypoint: str = "healthcheck"
) -> HealthResult:
    """Check config, output directories, the document store and the author index.

    The store check is only required when the run writes to the database.
    """

    cfg = cfg or load_config()
    checks: dict[str, dict[str, Any]] = {}

    try:
        cfg = validate_runtime_config(cfg, entrypoint=entrypoint)
        checks["config"] = {"ok": True, "write_to": cfg.write_to}
    except ValueError as exc:
        checks["config"] = {"ok": False, "error": str(exc)}

    try:
        ensure_dirs(cfg)
    except OSError as exc:
        log_line(f"[HEALTH] Unable to create directories: {exc}")
    checks["filesystem"] = {
        "ok": _directory_writable(Path(cfg.output_dir)) and _directory_writable(Path(cfg.log_dir)),
        "output_dir": str(cfg.output_dir),
        "log_dir": str(cfg.log_dir),
    }

    store = DocumentStore(cfg.db_path)
    try:
        store.connect()
        checks["store"] = {
            "ok": store.is_connected() and store.has_collections(),
            "db_path": str(cfg.db_path),
            "plays": store.get_collection("plays").count(),
            "authors": store.get_collection("authors").count(),
        }
    except (sqlite3.Error, RuntimeError, OSError) as exc:
        checks["store"] = {"ok": False, "error": str(exc)}
    finally:
        store.close()

    try:
        index = load_author_index(cfg.author_index_dir, cfg.letters)
        authors = sum(len(entries) for entries in index.values())
        checks["author_index"] = {"ok": authors > 0, "authors": authors}
    except SetupError as exc:
        checks["author_index"] = {"ok": False, "error": str(exc)}

    strict_store = cfg.writes_to_db()
    overall_ok = all(
        check.get("ok", False)
        for name, check in checks.items()
        if strict_store or name != "store"
    )

    _scraper_event(
        "state" if overall_ok else "error",
        phase="health",
        context="healthcheck",
        ok=overall_ok,
        checks=checks,
        level=logging.INFO if overall_ok else logging.WARNING,
    )

    return HealthResult(ok=overall_ok, checks=checks)


if __name__ == "__main__":  # pragma: no cover
    result = run_health_checks()
    for name, info in result.checks.items():
        status = "OK" if info.get("ok") else "FAIL"
        log_line(f"[HEALTH] {name}: {status} {info}")
    raise SystemExit(0 if result.ok else 1)
