import logging
from datetime import datetime, timezone
from pathlib import Path

from app.archivist import logging_utils


def test_scraper_event_label_and_phase(monkeypatch):
    events: list[str] = []
    monkeypatch.setattr(logging_utils, "log_line", lambda msg, *args: events.append(msg))

    logging_utils._scraper_event("state", phase="teardown", status="completed")

    assert events
    line = events[-1]
    assert line.startswith("[SCRAPER][STATE]")
    assert "phase='teardown'" in line
    assert "status='completed'" in line


def test_scraper_event_renders_dates_and_paths(monkeypatch):
    events: list[str] = []
    monkeypatch.setattr(logging_utils, "log_line", lambda msg, *args: events.append(msg))

    logging_utils._scraper_event(
        "config", started=datetime(2024, 1, 2, tzinfo=timezone.utc), log_path=Path("logs/run.log")
    )

    assert events[-1] == (
        "[SCRAPER][CONFIG] log_path='logs/run.log', started='2024-01-02T00:00:00+00:00'"
    )


def test_scraper_event_forwards_level(monkeypatch):
    calls: list[tuple] = []
    monkeypatch.setattr(logging_utils, "log_line", lambda *args: calls.append(args))

    logging_utils._scraper_event("skip", level=logging.WARNING, unit="play")

    assert calls == [("[SCRAPER][SKIP] unit='play'", logging.WARNING)]


def test_scraper_event_never_raises(monkeypatch):
    def _broken(*_args):
        raise OSError("disk full")

    monkeypatch.setattr(logging_utils, "log_line", _broken)

    logging_utils._scraper_event("state", kind="summary")


def test_log_line_writes_to_run_log(_temp_log_file):
    from app.archivist.utils import log_line

    log_line("[TEST] hello archivist")

    assert "[TEST] hello archivist" in _temp_log_file.read_text(encoding="utf-8")
