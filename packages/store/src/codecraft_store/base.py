"""Abstract document store interface.

Every backend (in-memory, SQLite, Gist) implements this interface. The
review operations in codecraft_core depend on BaseStore, not on a concrete
backend, so backends are swappable without touching the query layer.

Documents are plain dicts. The store owns two system fields:
  _id            opaque string id assigned on insert
  _creationTime  epoch milliseconds at insert, never changed by patch
"""

from __future__ import annotations

import copy
import threading
import time
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterable, Iterator

from codecraft_store.schema import SCHEMA, Schema, SchemaError


class StoreError(Exception):
    """Base class for errors raised by a store backend."""


class DocumentNotFoundError(StoreError):
    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"No document {doc_id!r} in {collection!r}")


__all__ = ["BaseStore", "DocumentNotFoundError", "SchemaError", "StoreError"]


class BaseStore(ABC):
    """Pluggable document database for users, reviews and bookmarks.

    Implementations validate every write against the schema, and must return
    copies of stored documents so callers can't mutate state by accident.
    """

    def __init__(self, schema: Schema = SCHEMA):
        self.schema = schema
        self._lock = threading.RLock()

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> dict | None:
        """Point lookup by id. Returns None if absent."""

    def get_many(self, collection: str, doc_ids: Iterable[str]) -> dict[str, dict]:
        """Batch point lookup. Ids that don't resolve are left out of the result."""
        found = {}
        for doc_id in dict.fromkeys(doc_ids):
            doc = self.get(collection, doc_id)
            if doc is not None:
                found[doc_id] = doc
        return found

    @abstractmethod
    def query(self, collection: str, index: str, *values, order: str = "asc") -> list[dict]:
        """Indexed scan.

        ``values`` match a prefix of the index fields. Results are ordered by
        the index fields, then by _creationTime; ``order="desc"`` reverses.
        Returns an empty list when nothing matches.
        """

    @abstractmethod
    def insert(self, collection: str, document: dict) -> str:
        """Validate and store a new document, returning its id."""

    @abstractmethod
    def patch(self, collection: str, doc_id: str, fields: dict) -> None:
        """Shallow-merge ``fields`` into an existing document."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document. Raises DocumentNotFoundError if it doesn't exist."""

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Serialize a read-then-write sequence against other writers of this store.

        Re-entrant. Backends with real transactions extend this.
        """
        with self._lock:
            yield

    def close(self) -> None:
        """Release any resources held by the store (connections, clients).

        Optional. Subclasses that need cleanup should override this.
        """

    # ------------------------------------------------------------------
    # Helpers shared by the backends that keep documents in Python dicts.
    # ------------------------------------------------------------------

    def _prepare_insert(self, collection: str, document: dict) -> dict:
        self.schema.validate(collection, document)
        doc = {k: copy.deepcopy(v) for k, v in document.items() if not k.startswith("_")}
        doc["_id"] = _new_id()
        doc["_creationTime"] = int(time.time() * 1000)
        return doc

    def _prepare_patch(self, collection: str, existing: dict, fields: dict) -> dict:
        if any(k.startswith("_") for k in fields):
            raise SchemaError("System fields (_id, _creationTime) cannot be patched")
        merged = {**existing, **copy.deepcopy(fields)}
        self.schema.validate(collection, merged)
        return merged

    def _select(self, collection: str, documents: Iterable[dict], index: str, values: tuple, order: str) -> list[dict]:
        """Filter and order documents for ``query`` the same way an index scan would."""
        fields = self.schema.index_fields(collection, index)
        if len(values) > len(fields):
            raise SchemaError(f"Index {index!r} has {len(fields)} field(s), got {len(values)} value(s)")
        if order not in ("asc", "desc"):
            raise ValueError(f"order must be 'asc' or 'desc', not {order!r}")

        matched = [d for d in documents if all(d.get(f) == v for f, v in zip(fields, values))]
        matched.sort(key=lambda d: (tuple(_sort_key(d.get(f)) for f in fields), d["_creationTime"]))
        if order == "desc":
            matched.reverse()
        return [copy.deepcopy(d) for d in matched]


def _new_id() -> str:
    return uuid.uuid4().hex


def _sort_key(value) -> tuple:
    # None sorts before everything else, mirroring SQLite's NULL ordering.
    return (0, "") if value is None else (1, value)
