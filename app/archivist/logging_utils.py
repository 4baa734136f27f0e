from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

from .utils import log_line


def _render(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return repr(value.isoformat())
    if isinstance(value, Path):
        return repr(str(value))
    return repr(value)


def _scraper_event(
    label: str = "", *, phase: str | None = None, level: int = logging.INFO, **fields: Any
) -> None:
    """Emit one ``[SCRAPER][LABEL] key=value, ...`` line.

    ``phase`` stands in for the label when no label is given; with both, the
    phase is carried in the payload. Fields are sorted by key. Errors while
    formatting are dropped so an event can never interrupt a run.
    """

    try:
        event = label or (phase or "")
        if phase and label:
            fields.setdefault("phase", phase)
        payload = ", ".join(f"{key}={_render(value)}" for key, value in sorted(fields.items()))
        message = f"[SCRAPER][{event.upper()}] {payload}"
        if level == logging.INFO:
            log_line(message)
        else:
            log_line(message, level)
    except Exception:  # noqa: BLE001
        return


__all__ = ["_scraper_event"]
