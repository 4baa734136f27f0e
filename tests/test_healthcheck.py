from __future__ import annotations

from dataclasses import replace

from app.archivist import healthcheck
from app.archivist.utils import save_json_file


def _seed_index(cfg) -> None:
    save_json_file(
        cfg.author_index_dir / "A" / "aa-af.json",
        {"metadata": {"results": 1}, "playwrights": {"ADAMS Ann": "adams-ann"}},
    )


def test_run_health_checks_happy_path(cfg) -> None:
    _seed_index(cfg)

    result = healthcheck.run_health_checks(replace(cfg, write_to="db"), entrypoint="tests")

    assert result.ok is True
    assert result.checks["config"]["ok"] is True
    assert result.checks["filesystem"]["ok"] is True
    assert result.checks["store"] == {
        "ok": True,
        "db_path": str(cfg.db_path),
        "plays": 0,
        "authors": 0,
    }
    assert result.checks["author_index"] == {"ok": True, "authors": 1}


def test_run_health_checks_handles_invalid_config(cfg) -> None:
    _seed_index(cfg)

    result = healthcheck.run_health_checks(replace(cfg, batch_size=0), entrypoint="cli")

    assert result.ok is False
    assert result.checks["config"]["ok"] is False


def test_missing_author_index_is_unhealthy(cfg) -> None:
    result = healthcheck.run_health_checks(cfg, entrypoint="tests")

    assert result.ok is False
    assert result.checks["author_index"]["ok"] is False


def test_store_failure_only_matters_for_database_output(cfg, monkeypatch) -> None:
    _seed_index(cfg)

    def _refuse(self):
        raise RuntimeError("store offline")

    monkeypatch.setattr(healthcheck.DocumentStore, "connect", _refuse)

    file_result = healthcheck.run_health_checks(cfg, entrypoint="tests")
    db_result = healthcheck.run_health_checks(replace(cfg, write_to="db"), entrypoint="tests")

    assert file_result.checks["store"]["ok"] is False
    assert file_result.ok is True
    assert db_result.ok is False
