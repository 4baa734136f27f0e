"""SQLite-backed document store for author and play records.

Each collection is a set of JSON documents keyed by ``_id`` in a single
``documents`` table. Upserts follow ``findOneAndUpdate`` semantics: fields in
``set_fields`` are written on every call while ``set_on_insert`` fields are
only written when the document is created, so ``metadata.createdAt``
survives re-scrapes.
"""
from __future__ import annotations

import argparse
import json
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

from . import config
from .logging_utils import _scraper_event
from .utils import json_default, log_line

COLLECTIONS: Sequence[str] = ("authors", "plays")
INSERT_ONLY_FIELDS: Sequence[str] = ("_id", "metadata.createdAt")

_SCHEMA: Iterable[str] = (
    """
    CREATE TABLE IF NOT EXISTS documents (
        collection  TEXT NOT NULL,
        id          TEXT NOT NULL,
        body        TEXT NOT NULL,
        PRIMARY KEY (collection, id)
    );
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_documents_collection
        ON documents(collection);
    """,
)


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=json_default)


def _plain(value: Any) -> Any:
    """Round-trip ``value`` through JSON so stored and returned values agree."""

    return json.loads(_dumps(value))


def set_path(document: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = document
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def _flatten(prefix: str, value: Any, out: Dict[str, Any]) -> None:
    if isinstance(value, Mapping) and value:
        for key, item in value.items():
            _flatten(f"{prefix}.{key}" if prefix else key, item, out)
    else:
        out[prefix] = value


def split_for_upsert(document: Mapping[str, Any]) -> tuple[Dict[str, Any], Dict[str, Any]]:
    """Split ``document`` into ``(set_fields, set_on_insert)`` dotted-path maps."""

    flat: Dict[str, Any] = {}
    _flatten("", document, flat)
    set_on_insert = {path: flat.pop(path) for path in INSERT_ONLY_FIELDS if path in flat}
    return flat, set_on_insert


class Collection:
    def __init__(self, store: "DocumentStore", name: str) -> None:
        self._store = store
        self.name = name

    def _rows(self, filter: Mapping[str, Any]) -> Iterator[sqlite3.Row]:
        conn = self._store.connection
        clauses = ["collection = ?"]
        params: List[Any] = [self.name]
        for key, value in filter.items():
            if key == "_id":
                clauses.append("id = ?")
                params.append(str(value))
            else:
                clauses.append("json_extract(body, ?) = ?")
                params.extend([f"$.{key}", _plain(value)])
        sql = f"SELECT id, body FROM documents WHERE {' AND '.join(clauses)} ORDER BY rowid"
        yield from conn.execute(sql, params)

    def find_one(self, filter: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        for row in self._rows(filter):
            return json.loads(row["body"])
        return None

    def find(self, filter: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        return [json.loads(row["body"]) for row in self._rows(filter or {})]

    def count(self, filter: Optional[Mapping[str, Any]] = None) -> int:
        return sum(1 for _ in self._rows(filter or {}))

    def find_one_and_update(
        self,
        filter: Mapping[str, Any],
        set_fields: Mapping[str, Any],
        set_on_insert: Optional[Mapping[str, Any]] = None,
        *,
        upsert: bool = True,
    ) -> Optional[Dict[str, Any]]:
        """Update the first document matching ``filter`` or insert a new one.

        Keys of ``set_fields`` and ``set_on_insert`` may be dotted paths.
        Returns the document as stored, or ``None`` when nothing matched and
        ``upsert`` is false.
        """

        conn = self._store.connection
        matches = list(self._rows(filter))
        existing = matches[0] if matches else None

        if existing is not None:
            document = json.loads(existing["body"])
            doc_id = existing["id"]
        elif upsert:
            document = {}
            for key, value in filter.items():
                set_path(document, key, _plain(value))
            for path, value in (set_on_insert or {}).items():
                set_path(document, path, _plain(value))
            doc_id = str(document.get("_id") or "")
            if not doc_id:
                raise ValueError(f"Cannot insert into {self.name!r} without an _id")
        else:
            return None

        for path, value in set_fields.items():
            set_path(document, path, _plain(value))
        document["_id"] = doc_id

        with conn:
            conn.execute(
                """
                INSERT INTO documents (collection, id, body) VALUES (?, ?, ?)
                ON CONFLICT(collection, id) DO UPDATE SET body = excluded.body
                """,
                (self.name, doc_id, _dumps(document)),
            )
        return document


def upsert_document(
    collection: Collection, filter: Mapping[str, Any], document: Mapping[str, Any]
) -> Dict[str, Any]:
    """Insert-or-update ``document`` keeping ``_id`` and ``createdAt`` from the first write."""

    set_fields, set_on_insert = split_for_upsert(document)
    for key in filter:
        set_fields.pop(key, None)
    return collection.find_one_and_update(filter, set_fields, set_on_insert, upsert=True) or {}


class DocumentStore:
    """Connection owner for the document collections."""

    def __init__(self, db_path: Path | str | None = None, *, environment: str | None = None) -> None:
        self.db_path = Path(db_path or config.DB_PATH)
        self.environment = (environment or config.ENVIRONMENT).lower()
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Document store is not connected")
        return self._conn

    def connect(self) -> None:
        if self._conn is not None:
            return
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        self._conn = conn
        self.initialize_schema()
        _scraper_event("store", step="connect", path=str(self.db_path))

    def is_connected(self) -> bool:
        if self._conn is None:
            return False
        try:
            self._conn.execute("SELECT 1").fetchone()
        except sqlite3.Error:
            return False
        return True

    def close(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.close()
        finally:
            self._conn = None

    def initialize_schema(self) -> None:
        """Create the documents table; safe to call repeatedly."""

        with self.connection as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    def has_collections(self) -> bool:
        row = self.connection.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'documents'"
        ).fetchone()
        return row is not None

    def reset(self) -> None:
        """Drop every stored document. Refused in production."""

        if self.environment == "production":
            raise RuntimeError("Refusing to reset the document store in production")
        with self.connection as conn:
            conn.execute("DROP TABLE IF EXISTS documents")
        self.initialize_schema()
        log_line(f"[STORE] Reset document store at {self.db_path}")

    def get_collection(self, name: str) -> Collection:
        if name not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {name!r}")
        return Collection(self, name)


def _cli_entrypoint(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Manage the archivist document store")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--init", action="store_true", help="Create the store schema")
    group.add_argument("--reset", action="store_true", help="Drop all documents (not in production)")
    parser.add_argument("--db-path", default=None, help="Override the store path")
    args = parser.parse_args(argv)

    store = DocumentStore(args.db_path)
    try:
        store.connect()
        if args.reset:
            store.reset()
        else:
            store.initialize_schema()
            log_line(f"[STORE] Schema ready at {store.db_path}")
    except (RuntimeError, sqlite3.Error) as exc:
        log_line(f"[STORE] {exc}")
        return 1
    finally:
        store.close()
    return 0


__all__ = [
    "COLLECTIONS",
    "Collection",
    "DocumentStore",
    "split_for_upsert",
    "upsert_document",
]


if __name__ == "__main__":
    raise SystemExit(_cli_entrypoint())
