"""In-process store. Documents live in dicts and vanish with the process.

Used by the test suite and by `codecraft --store memory` for throwaway
sessions. Behaves exactly like the persistent backends from the caller's
point of view (same validation, ordering and copy semantics).
"""

from __future__ import annotations

import copy

from codecraft_store.base import BaseStore, DocumentNotFoundError
from codecraft_store.schema import SCHEMA, Schema


class MemoryStore(BaseStore):
    def __init__(self, schema: Schema = SCHEMA):
        super().__init__(schema)
        self._data: dict[str, dict[str, dict]] = {name: {} for name in schema.collections}

    def _table(self, collection: str) -> dict[str, dict]:
        self.schema.collection(collection)
        return self._data[collection]

    def get(self, collection: str, doc_id: str) -> dict | None:
        doc = self._table(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def query(self, collection: str, index: str, *values, order: str = "asc") -> list[dict]:
        with self._lock:
            return self._select(collection, self._table(collection).values(), index, values, order)

    def insert(self, collection: str, document: dict) -> str:
        with self._lock:
            table = self._table(collection)
            doc = self._prepare_insert(collection, document)
            table[doc["_id"]] = doc
            return doc["_id"]

    def patch(self, collection: str, doc_id: str, fields: dict) -> None:
        with self._lock:
            table = self._table(collection)
            if doc_id not in table:
                raise DocumentNotFoundError(collection, doc_id)
            table[doc_id] = self._prepare_patch(collection, table[doc_id], fields)

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            table = self._table(collection)
            if table.pop(doc_id, None) is None:
                raise DocumentNotFoundError(collection, doc_id)
