from __future__ import annotations

from pathlib import Path

import pytest

from app.archivist import utils
from app.archivist.config import ScraperConfig, load_config


@pytest.fixture(autouse=True)
def _temp_log_file(tmp_path: Path) -> Path:
    """Send the shared logger to a per-test file instead of ``data/logs``."""

    cfg = load_config(log_dir=tmp_path / "logs", log_file="test.log")
    return utils.setup_run_logger(cfg)


@pytest.fixture
def cfg(tmp_path: Path) -> ScraperConfig:
    return load_config(
        write_to="file",
        batch_size=2,
        max_batches=0,
        letters="AB",
        base_url="https://www.doollee.com",
        rate_limit_delay=0.0,
        tail_length=3,
        data_dir=tmp_path / "data",
        log_dir=tmp_path / "logs",
        log_file="run.log",
        output_dir=tmp_path / "output",
        author_index_dir=tmp_path / "output" / "profile-urls",
        db_path=tmp_path / "data" / "archivist.db",
        summary_file=tmp_path / "data" / "last_summary.json",
    )
