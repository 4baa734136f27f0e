from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from playwright.sync_api import TimeoutError as PWTimeout

from app.archivist.biography import ScrapedBiography
from app.archivist.errors import FileWriteError, SetupError, TemplateError
from app.archivist.file_writer import FileWriter
from app.archivist.orchestrator import ScrapingOrchestrator, Services, author_url, build_batches
from app.archivist.stats import RunStats
from app.archivist.store import DocumentStore
from app.archivist.templates import ProfileData, Template
from app.archivist.works import ScrapedWork


class FakeDisplay:
    def __init__(self) -> None:
        self._ready = False
        self.updates = 0
        self.closed = 0
        self.summary_path: Optional[Path] = None

    @property
    def is_ready(self) -> bool:
        return self._ready

    def start(self) -> "FakeDisplay":
        self._ready = True
        return self

    def update(self, force: bool = False) -> None:
        self.updates += 1

    def close(self) -> None:
        self._ready = False
        self.closed += 1

    def show_summary(self, review_file=None) -> None:
        self.summary_path = review_file


class FakeBrowser:
    def __init__(self, connected: bool = True) -> None:
        self.connected = connected
        self.closed = 0

    def get_page(self) -> str:
        return "page"

    def is_connected(self) -> bool:
        return self.connected

    def close(self) -> None:
        self.closed += 1


class FlakyWriter(FileWriter):
    def __init__(self, module_name: str, output_dir: Path, fail_on: tuple = ()) -> None:
        super().__init__(module_name, output_dir)
        self.fail_on = set(fail_on)

    def write_file(self, filename, data, **kwargs):
        if filename in self.fail_on:
            raise FileWriteError(f"disk full while writing {filename}")
        return super().write_file(filename, data, **kwargs)


def _profile(heading: str, works: List[ScrapedWork]) -> ProfileData:
    return ProfileData(
        template=Template.STANDARD,
        biography=ScrapedBiography(heading_name=heading, nationality="British"),
        works=works,
    )


def _works(*ids: str) -> List[ScrapedWork]:
    return [ScrapedWork(play_id=play_id, title=f"Play {play_id}") for play_id in ids]


class FakeSite:
    """Profile pages keyed by slug; an exception value is raised instead."""

    def __init__(self, pages: Dict[str, object]) -> None:
        self.pages = pages
        self.visited: List[str] = []
        self._current = ""

    def navigate(self, page, url, cfg) -> int:
        self.visited.append(url)
        self._current = url.rsplit("/", 1)[-1][: -len(".php")]
        return 200

    def scrape(self, page, cfg) -> ProfileData:
        result = self.pages[self._current]
        if isinstance(result, BaseException):
            raise result
        return result


def _orchestrator(cfg, site: FakeSite, index, *, browser=None, store=None, play_writer=None):
    display = FakeDisplay()
    services = Services(
        browser=browser or FakeBrowser(),
        display=display,
        store=store,
        author_writer=FileWriter("authors", cfg.output_dir) if cfg.writes_to_file() else None,
        play_writer=play_writer or (FileWriter("plays", cfg.output_dir) if cfg.writes_to_file() else None),
    )
    orchestrator = ScrapingOrchestrator(
        cfg,
        services,
        stats=RunStats(),
        index_loader=lambda directory, letters: index,
        navigate=site.navigate,
        profile_scraper=site.scrape,
    )
    return orchestrator, services, display


def _read(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def test_author_url_files_numeric_slugs_under_a() -> None:
    base = "https://www.doollee.com"
    assert author_url("smith-john", base) == f"{base}/PlaywrightsS/smith-john.php"
    assert author_url("7-84-theatre", base) == f"{base}/PlaywrightsA/7-84-theatre.php"


def test_build_batches_partitions_each_letter_in_order() -> None:
    index = {
        "A": {"ADAMS Ann": "adams-ann", "ALLEN Bob": "allen-bob", "AMES Cy": "ames-cy"},
        "B": {"BROWN Di": "brown-di"},
    }

    batches = build_batches(index, "AB", 2)

    assert batches == [
        [("ADAMS Ann", "adams-ann"), ("ALLEN Bob", "allen-bob")],
        [("AMES Cy", "ames-cy")],
        [("BROWN Di", "brown-di")],
    ]
    assert len(build_batches(index, "AB", 2, max_batches=2)) == 2
    with pytest.raises(ValueError):
        build_batches(index, "AB", 0)


def test_play_write_failure_skips_only_that_play(cfg) -> None:
    site = FakeSite({"adams-ann": _profile("Ann Adams", _works("1", "2", "3", "4", "5"))})
    play_writer = FlakyWriter("plays", cfg.output_dir, fail_on=("000002-play-2.json",))
    orchestrator, services, display = _orchestrator(
        cfg, site, {"A": {"ADAMS Ann": "adams-ann"}, "B": {}}, play_writer=play_writer
    )

    summary = orchestrator.run()

    stats = orchestrator.stats
    assert summary["status"] == "completed"
    assert (stats.plays.total_written, stats.plays.total_skipped) == (4, 1)
    assert stats.authors.total_written == 1
    assert stats.errors["write_error"] == 1

    author_doc = _read(cfg.output_dir / "authors" / "adams-ann.json")
    written_ids = sorted(_read(path)["_id"] for path in (cfg.output_dir / "plays").glob("0*.json"))
    assert sorted(author_doc["works"]["plays"]) == written_ids
    assert author_doc["works"]["doolleeIds"] == ["1", "3", "4", "5"]

    review = _read(orchestrator.review.path)
    (skipped,) = review["skippedEntries"]["plays"]
    assert skipped["id"] == "2"
    assert skipped["reason"] == "writing error"
    assert display.summary_path == orchestrator.review.path


def test_scraping_error_skips_author_and_run_continues(cfg) -> None:
    site = FakeSite(
        {
            "adams-ann": TemplateError("Neither standard nor table templates are visible."),
            "allen-bob": _profile("Bob Allen", _works("10")),
        }
    )
    index = {"A": {"ADAMS Ann": "adams-ann", "ALLEN Bob": "allen-bob"}, "B": {}}
    orchestrator, _, _ = _orchestrator(cfg, site, index)

    orchestrator.run()

    stats = orchestrator.stats
    assert len(site.visited) == 2
    assert (stats.authors.total_written, stats.authors.total_skipped) == (1, 1)
    assert stats.errors["scrape_error"] == 1
    (skipped,) = orchestrator.review.skipped["authors"]
    assert skipped == {
        "profileName": "ADAMS Ann",
        "url": "https://www.doollee.com/PlaywrightsA/adams-ann.php",
        "reason": "scraping error",
    }
    assert (cfg.output_dir / "authors" / "allen-bob.json").exists()
    assert not (cfg.output_dir / "authors" / "adams-ann.json").exists()


def test_navigation_timeout_counts_as_network_error(cfg) -> None:
    site = FakeSite({})

    def _timeout(page, url, cfg):
        raise PWTimeout("Timeout 60000ms exceeded")

    site.navigate = _timeout
    orchestrator, _, _ = _orchestrator(cfg, site, {"A": {"ADAMS Ann": "adams-ann"}, "B": {}})

    orchestrator.run()

    assert orchestrator.stats.errors["network_error"] == 1
    assert orchestrator.review.skipped["authors"][0]["reason"] == "scraping error"


def test_incomplete_profile_is_a_processing_error(cfg) -> None:
    incomplete = ProfileData(template=Template.STANDARD, biography=None, works=_works("1"))
    site = FakeSite({"adams-ann": incomplete})
    orchestrator, _, _ = _orchestrator(cfg, site, {"A": {"ADAMS Ann": "adams-ann"}, "B": {}})

    orchestrator.run()

    assert orchestrator.stats.errors["process_error"] == 1
    assert orchestrator.review.skipped["authors"][0]["reason"] == "processing error"
    assert orchestrator.stats.plays.total_written == 0


def test_setup_failure_halts_before_any_batch(cfg) -> None:
    site = FakeSite({"adams-ann": _profile("Ann Adams", _works("1"))})
    browser = FakeBrowser(connected=False)
    orchestrator, services, display = _orchestrator(
        cfg, site, {"A": {"ADAMS Ann": "adams-ann"}, "B": {}}, browser=browser
    )

    with pytest.raises(SetupError):
        orchestrator.run()

    assert site.visited == []
    assert orchestrator.status == "failed"
    assert browser.closed == 1
    assert services.author_writer.is_ready is False
    assert display.summary_path is None
    assert _read(cfg.summary_file)["status"] == "failed"


def test_missing_author_index_is_fatal(cfg) -> None:
    orchestrator, _, _ = _orchestrator(cfg, FakeSite({}), {})

    def _missing(directory, letters):
        raise FileNotFoundError(directory)

    orchestrator._index_loader = _missing

    with pytest.raises(SetupError):
        orchestrator.run()


def test_unexpected_error_is_reraised_after_teardown(cfg) -> None:
    site = FakeSite({"adams-ann": KeyError("layout")})
    browser = FakeBrowser()
    orchestrator, _, _ = _orchestrator(cfg, site, {"A": {"ADAMS Ann": "adams-ann"}, "B": {}}, browser=browser)

    with pytest.raises(KeyError):
        orchestrator.run()

    assert orchestrator.status == "failed"
    assert browser.closed == 1


def test_handle_error_routes_unknown_errors_to_other(cfg) -> None:
    orchestrator, _, _ = _orchestrator(cfg, FakeSite({}), {})

    with pytest.raises(RuntimeError):
        orchestrator.handle_error(RuntimeError("boom"))
    with pytest.raises(SetupError):
        orchestrator.handle_error(SetupError("store down"))
    assert orchestrator.stats.errors["other_error"] == 1


def test_teardown_runs_once(cfg) -> None:
    browser = FakeBrowser()
    orchestrator, _, display = _orchestrator(cfg, FakeSite({}), {}, browser=browser)

    orchestrator.teardown()
    orchestrator.teardown()

    assert browser.closed == 1
    assert display.closed == 1


def test_batch_counters_reset_while_totals_accumulate(cfg) -> None:
    site = FakeSite(
        {
            "adams-ann": _profile("Ann Adams", _works("1")),
            "allen-bob": _profile("Bob Allen", _works("2")),
            "brown-di": _profile("Di Brown", _works("3")),
        }
    )
    index = {"A": {"ADAMS Ann": "adams-ann", "ALLEN Bob": "allen-bob"}, "B": {"BROWN Di": "brown-di"}}
    orchestrator, _, _ = _orchestrator(cfg, site, index)

    summary = orchestrator.run()

    stats = orchestrator.stats
    assert stats.globals.completed_batch_count == 2
    assert (stats.authors.batch_written, stats.authors.total_written) == (1, 3)
    assert (stats.plays.batch_written, stats.plays.total_written) == (1, 3)
    assert summary["stats"]["globals"]["batch_count"] == 2


def test_flagged_author_and_sentinel_play_are_queued_for_review(cfg) -> None:
    works = [ScrapedWork(title="Untitled Draft")]
    site = FakeSite({"smith-john": _profile("Jon Smith", works)})
    orchestrator, _, _ = _orchestrator(cfg, site, {"A": {}, "B": {"SMITH John": "smith-john"}})

    orchestrator.run()

    stats = orchestrator.stats
    assert (stats.authors.total_flagged, stats.authors.total_written) == (1, 0)
    assert (stats.plays.total_flagged, stats.plays.total_written) == (1, 0)
    flagged_author = orchestrator.review.flagged["authors"][0]
    assert flagged_author["filename"] == "smith-john.json"
    assert "First Name" in flagged_author["needsReviewData"]
    assert orchestrator.review.flagged["plays"][0]["id"] == "0000000"


def test_database_output_reuses_stored_play_ids(cfg) -> None:
    db_cfg = replace(cfg, write_to="db")
    store = DocumentStore(db_cfg.db_path, environment="development")
    site = FakeSite(
        {
            "adams-ann": _profile("Ann Adams", _works("777")),
            "allen-bob": _profile("Bob Allen", _works("777")),
        }
    )
    index = {"A": {"ADAMS Ann": "adams-ann", "ALLEN Bob": "allen-bob"}, "B": {}}
    orchestrator, _, _ = _orchestrator(db_cfg, site, index, store=store)

    orchestrator.run()

    store.connect()
    try:
        plays = store.get_collection("plays").find()
        authors = store.get_collection("authors").find()
    finally:
        store.close()
    assert len(plays) == 1
    assert len(authors) == 2
    assert {author["works"]["plays"][0] for author in authors} == {plays[0]["_id"]}
