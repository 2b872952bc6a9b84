"""SQLiteStore: local file-based document store.

Why SQLite as the default store:
- Batteries included: ships with Python, no extra dependencies.
- Indexed scans: every index declared in the schema becomes an expression
  index over the JSON body, so `by_user` lookups don't parse every row.
- Real transactions: `atomic()` takes the database write lock with
  BEGIN IMMEDIATE, which also serializes writers in other processes.

Schema:
  documents: one row per document of any collection; the body is kept as
             JSON text and the system fields get their own columns.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterable, Iterator

from codecraft_store.base import BaseStore, DocumentNotFoundError
from codecraft_store.schema import SCHEMA, Schema, SchemaError

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id              TEXT PRIMARY KEY,
    collection      TEXT NOT NULL,
    creation_time   INTEGER NOT NULL,
    data            TEXT NOT NULL DEFAULT '{}'
);
CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents (collection, creation_time);
"""

# SQLite caps bound parameters per statement; stay well under the old 999 limit.
_MAX_IN_PARAMS = 500


def _json_path(field: str) -> str:
    return f"json_extract(data, '$.{field}')"


class SQLiteStore(BaseStore):
    """Stores documents in a local SQLite database file.

    The database file path defaults to `.codecraft.db` in the current working
    directory. Configure via .codecraft.yml: `store_path: /path/to/codecraft.db`.
    """

    def __init__(self, db_path: str = ".codecraft.db", schema: Schema = SCHEMA):
        super().__init__(schema)
        # Autocommit mode: explicit transactions only, opened by atomic().
        self._conn = sqlite3.connect(db_path, isolation_level=None, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._depth = 0
        self._conn.executescript(_SCHEMA + self._index_ddl())

    def _index_ddl(self) -> str:
        statements = []
        for name, collection in self.schema.collections.items():
            for index, fields in collection.indexes.items():
                columns = ", ".join(_json_path(f) for f in fields)
                statements.append(
                    f"CREATE INDEX IF NOT EXISTS idx_{name}_{index} ON documents (collection, {columns});"
                )
        return "\n".join(statements)

    def get(self, collection: str, doc_id: str) -> dict | None:
        self.schema.collection(collection)
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM documents WHERE collection=? AND id=?",
                (collection, doc_id),
            ).fetchone()
        return self._row_to_document(row) if row is not None else None

    def get_many(self, collection: str, doc_ids: Iterable[str]) -> dict[str, dict]:
        self.schema.collection(collection)
        ids = list(dict.fromkeys(doc_ids))
        found: dict[str, dict] = {}
        with self._lock:
            for start in range(0, len(ids), _MAX_IN_PARAMS):
                chunk = ids[start : start + _MAX_IN_PARAMS]
                placeholders = ", ".join("?" for _ in chunk)
                rows = self._conn.execute(
                    f"SELECT * FROM documents WHERE collection=? AND id IN ({placeholders})",
                    (collection, *chunk),
                ).fetchall()
                for row in rows:
                    found[row["id"]] = self._row_to_document(row)
        return found

    def query(self, collection: str, index: str, *values, order: str = "asc") -> list[dict]:
        fields = self.schema.index_fields(collection, index)
        if len(values) > len(fields):
            raise SchemaError(f"Index {index!r} has {len(fields)} field(s), got {len(values)} value(s)")
        if order not in ("asc", "desc"):
            raise ValueError(f"order must be 'asc' or 'desc', not {order!r}")

        where = ["collection=?"] + [f"{_json_path(f)}=?" for f in fields[: len(values)]]
        direction = "DESC" if order == "desc" else "ASC"
        order_by = [f"{_json_path(f)} {direction}" for f in fields] + [
            f"creation_time {direction}",
            f"rowid {direction}",
        ]
        sql = f"SELECT * FROM documents WHERE {' AND '.join(where)} ORDER BY {', '.join(order_by)}"
        with self._lock:
            rows = self._conn.execute(sql, (collection, *values)).fetchall()
        return [self._row_to_document(r) for r in rows]

    def insert(self, collection: str, document: dict) -> str:
        doc = self._prepare_insert(collection, document)
        body = {k: v for k, v in doc.items() if not k.startswith("_")}
        with self._lock:
            self._conn.execute(
                "INSERT INTO documents (id, collection, creation_time, data) VALUES (?, ?, ?, ?)",
                (doc["_id"], collection, doc["_creationTime"], json.dumps(body)),
            )
        logger.debug("Inserted %s/%s", collection, doc["_id"])
        return doc["_id"]

    def patch(self, collection: str, doc_id: str, fields: dict) -> None:
        with self.atomic():
            existing = self.get(collection, doc_id)
            if existing is None:
                raise DocumentNotFoundError(collection, doc_id)
            merged = self._prepare_patch(collection, existing, fields)
            body = {k: v for k, v in merged.items() if not k.startswith("_")}
            self._conn.execute(
                "UPDATE documents SET data=? WHERE collection=? AND id=?",
                (json.dumps(body), collection, doc_id),
            )

    def delete(self, collection: str, doc_id: str) -> None:
        self.schema.collection(collection)
        with self._lock:
            cursor = self._conn.execute(
                "DELETE FROM documents WHERE collection=? AND id=?",
                (collection, doc_id),
            )
        if cursor.rowcount == 0:
            raise DocumentNotFoundError(collection, doc_id)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            self._conn.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            else:
                self._conn.execute("COMMIT")
            finally:
                self._depth = 0

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_document(row: sqlite3.Row) -> dict:
        doc = json.loads(row["data"] or "{}")
        doc["_id"] = row["id"]
        doc["_creationTime"] = row["creation_time"]
        return doc
