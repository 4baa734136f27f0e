from __future__ import annotations

import pytest

from app.archivist import run
from app.archivist.errors import SetupError


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch):
    calls: dict = {}

    def _run_scrape(cfg, *, headless=True):
        calls["cfg"] = cfg
        calls["headless"] = headless
        return {"status": "completed"}

    monkeypatch.setattr(run, "run_scrape", _run_scrape)
    monkeypatch.setattr(run, "install_signal_handlers", lambda: None)
    return calls


def test_cli_forwards_flags_to_config(captured) -> None:
    code = run._cli_entrypoint(
        ["--write-to", "file", "--batch-size", "5", "--max-batches", "2", "--letters", "ab", "--headed"]
    )

    assert code == run.EXIT_OK
    cfg = captured["cfg"]
    assert (cfg.write_to, cfg.batch_size, cfg.max_batches, cfg.letters) == ("file", 5, 2, "AB")
    assert captured["headless"] is False


def test_cli_rejects_invalid_config_before_running(captured) -> None:
    assert run._cli_entrypoint(["--batch-size", "0"]) == run.EXIT_FATAL
    assert "cfg" not in captured


def test_cli_rejects_unknown_write_target() -> None:
    with pytest.raises(SystemExit) as excinfo:
        run._cli_entrypoint(["--write-to", "mongo"])

    assert excinfo.value.code == 2


@pytest.mark.parametrize(
    "error, expected",
    [
        (SetupError("Browser session is not connected"), run.EXIT_FATAL),
        (KeyboardInterrupt(), run.EXIT_INTERRUPTED),
        (RuntimeError("unexpected"), run.EXIT_FATAL),
    ],
)
def test_cli_maps_run_outcomes_to_exit_codes(monkeypatch: pytest.MonkeyPatch, error, expected) -> None:
    def _fail(cfg, *, headless=True):
        raise error

    monkeypatch.setattr(run, "run_scrape", _fail)
    monkeypatch.setattr(run, "install_signal_handlers", lambda: None)

    assert run._cli_entrypoint([]) == expected


def test_build_services_wraps_browser_launch_failure(cfg, monkeypatch: pytest.MonkeyPatch) -> None:
    def _no_browser(cfg, *, headless=True):
        raise RuntimeError("Executable doesn't exist")

    monkeypatch.setattr(run.BrowserSession, "create", _no_browser)

    with pytest.raises(SetupError):
        run.build_services(cfg, run.RunStats())


def test_build_services_only_creates_outputs_for_target(cfg, monkeypatch: pytest.MonkeyPatch) -> None:
    from dataclasses import replace

    monkeypatch.setattr(run.BrowserSession, "create", lambda cfg, *, headless=True: object())

    file_services = run.build_services(cfg, run.RunStats())
    db_services = run.build_services(replace(cfg, write_to="db"), run.RunStats())

    assert file_services.store is None
    assert file_services.author_writer is not None and file_services.play_writer is not None
    assert db_services.store is not None
    assert db_services.author_writer is None and db_services.play_writer is None


def test_sigint_handler_raises_keyboard_interrupt() -> None:
    with pytest.raises(KeyboardInterrupt):
        run._handle_sigint(2, None)
