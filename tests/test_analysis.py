from __future__ import annotations

import pandas as pd
import pytest

from app.archivist import analysis
from app.archivist.errors import SetupError
from app.archivist.store import DocumentStore, upsert_document

PLAYS = [
    {"_id": "p1", "genres": "Drama", "publisher": "Faber", "partsTextMale": "3", "partsTextFemale": "2"},
    {
        "_id": "p2",
        "genres": "Drama",
        "publisher": "Oberon",
        "partsTextMale": "2",
        "partsTextFemale": "2",
        "partsTextOther": "1",
    },
    {"_id": "p3", "genres": "Comedy", "publisher": "Faber"},
    {"_id": "p4", "genres": " "},
]


def test_frequency_table_counts_non_empty_values() -> None:
    table = analysis.frequency_table(analysis.plays_frame(PLAYS), "genres")

    assert table.to_dict("records") == [{"genres": "Drama", "count": 2}, {"genres": "Comedy", "count": 1}]


def test_frequency_table_can_sort_by_value() -> None:
    frame = analysis.plays_frame(PLAYS)

    ascending = analysis.frequency_table(frame, "publisher", sort_by_field=True, descending=False)
    descending = analysis.frequency_table(frame, "publisher", sort_by_field=True)

    assert list(ascending["publisher"]) == ["Faber", "Oberon"]
    assert list(descending["publisher"]) == ["Oberon", "Faber"]


def test_frequency_table_handles_missing_field() -> None:
    table = analysis.frequency_table(pd.DataFrame(), "genres")

    assert table.empty
    assert list(table.columns) == ["genres", "count"]


def test_parts_table_splits_counts_by_part_type() -> None:
    table = analysis.parts_table(analysis.plays_frame(PLAYS))

    assert list(table.columns) == ["text", "frequency", "maleParts", "femaleParts", "otherParts"]
    assert table.to_dict("records")[0] == {
        "text": "2",
        "frequency": 3,
        "maleParts": 1,
        "femaleParts": 2,
        "otherParts": 0,
    }
    assert set(table["text"]) == {"1", "2", "3"}


def test_run_analysis_writes_csv_and_workbook(cfg) -> None:
    store = DocumentStore(cfg.db_path, environment="development")
    store.connect()
    plays = store.get_collection("plays")
    for doc in PLAYS:
        upsert_document(plays, {"_id": doc["_id"]}, doc)

    written = analysis.run_analysis(cfg, store)

    out_dir = cfg.output_dir / "analysis"
    assert [path.name for path in written] == [
        "genres-frequencies.csv",
        "publisher-frequencies.csv",
        "parts-frequencies.csv",
        "analysis.xlsx",
    ]
    genres = pd.read_csv(out_dir / "genres-frequencies.csv")
    assert genres.to_dict("records")[0] == {"genres": "Drama", "count": 2}
    sheets = pd.read_excel(out_dir / "analysis.xlsx", sheet_name=None, engine="openpyxl")
    assert set(sheets) == {"Genres", "Publisher", "Parts"}
    assert store.is_connected() is False


def test_run_analysis_store_failure_is_setup_error(cfg) -> None:
    class BrokenStore:
        def is_connected(self) -> bool:
            return False

        def connect(self) -> None:
            raise RuntimeError("database is locked")

        def close(self) -> None:
            pass

    with pytest.raises(SetupError):
        analysis.run_analysis(cfg, BrokenStore())


def test_cli_returns_one_on_store_failure(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    def _fail(cfg, store=None):
        raise SetupError("DocumentStore failed to connect")

    monkeypatch.setattr(analysis, "run_analysis", _fail)

    assert analysis._cli_entrypoint(["--db-path", str(tmp_path / "x.db")]) == 1
