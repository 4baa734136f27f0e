from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from app.archivist import store as store_module
from app.archivist.store import DocumentStore, split_for_upsert, upsert_document


@pytest.fixture
def store(tmp_path: Path):
    db = DocumentStore(tmp_path / "archivist.db", environment="development")
    db.connect()
    yield db
    db.close()


def _doc(doc_id: str, created: datetime, updated: datetime, **fields) -> dict:
    return {
        "_id": doc_id,
        "metadata": {"createdAt": created, "updatedAt": updated},
        **fields,
    }


def test_split_for_upsert_separates_insert_only_fields() -> None:
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    set_fields, set_on_insert = split_for_upsert(
        {"_id": "a", "name": "X", "metadata": {"createdAt": created, "sourceUrl": "u"}}
    )

    assert set_on_insert == {"_id": "a", "metadata.createdAt": created}
    assert set_fields == {"name": "X", "metadata.sourceUrl": "u"}


def test_upsert_preserves_created_at_and_updates_fields(store: DocumentStore) -> None:
    authors = store.get_collection("authors")
    first = datetime(2024, 1, 1, tzinfo=timezone.utc)
    second = datetime(2024, 6, 1, tzinfo=timezone.utc)

    upsert_document(authors, {"_id": "a1"}, _doc("a1", first, first, name="John Smith"))
    stored = upsert_document(authors, {"_id": "a1"}, _doc("a1", second, second, name="John Smyth"))

    assert stored["metadata"]["createdAt"] == first.isoformat()
    assert stored["metadata"]["updatedAt"] == second.isoformat()
    assert stored["name"] == "John Smyth"
    assert authors.count() == 1
    assert authors.find_one({"_id": "a1"}) == stored


def test_plays_with_same_source_id_share_the_first_record(store: DocumentStore) -> None:
    plays = store.get_collection("plays")
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    first = upsert_document(plays, {"playId": "12345"}, _doc("p1", now, now, playId="12345", title="The Sea"))
    second = upsert_document(plays, {"playId": "12345"}, _doc("p2", now, now, playId="12345", title="The Sea (rev)"))

    assert first["_id"] == "p1"
    assert second["_id"] == "p1"
    assert second["title"] == "The Sea (rev)"
    assert plays.count({"playId": "12345"}) == 1


def test_sentinel_plays_are_kept_apart_by_record_id(store: DocumentStore) -> None:
    plays = store.get_collection("plays")
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    upsert_document(plays, {"_id": "s1"}, _doc("s1", now, now, playId="0000000", title="Draft A"))
    upsert_document(plays, {"_id": "s2"}, _doc("s2", now, now, playId="0000000", title="Draft B"))

    assert sorted(doc["title"] for doc in plays.find({"playId": "0000000"})) == ["Draft A", "Draft B"]


def test_find_one_and_update_without_upsert_returns_none(store: DocumentStore) -> None:
    authors = store.get_collection("authors")

    assert authors.find_one_and_update({"_id": "missing"}, {"name": "x"}, upsert=False) is None
    assert authors.count() == 0


def test_unknown_collection_is_rejected(store: DocumentStore) -> None:
    with pytest.raises(ValueError):
        store.get_collection("cases")


def test_reset_clears_documents_outside_production(store: DocumentStore) -> None:
    authors = store.get_collection("authors")
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    upsert_document(authors, {"_id": "a1"}, _doc("a1", now, now))

    store.reset()

    assert store.has_collections()
    assert authors.count() == 0


def test_reset_is_refused_in_production(tmp_path: Path) -> None:
    db = DocumentStore(tmp_path / "prod.db", environment="production")
    db.connect()
    try:
        with pytest.raises(RuntimeError):
            db.reset()
    finally:
        db.close()


def test_connection_state(tmp_path: Path) -> None:
    db = DocumentStore(tmp_path / "state.db")

    assert db.is_connected() is False
    with pytest.raises(RuntimeError):
        db.get_collection("authors").count()
    db.connect()
    assert db.is_connected() is True
    db.close()
    assert db.is_connected() is False


def test_cli_init_creates_schema(tmp_path: Path) -> None:
    db_path = tmp_path / "cli.db"

    assert store_module._cli_entrypoint(["--init", "--db-path", str(db_path)]) == 0
    assert db_path.exists()
