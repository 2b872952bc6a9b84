"""GistStore: zero-infrastructure shared store via a GitHub Gist.

Why a Gist:
- Zero infra: no DB to provision, no server to maintain.
- Built-in access control: whoever can read the Gist can read the dashboard
  data, so a small team shares one review history without a separate login.
- Readable: the whole database is one pretty-printed JSON file.

Data format: a single JSON file named `codecraft_db.json` inside the Gist,
holding one array of documents per collection:

    {"users": [...], "reviews": [...], "savedReviews": [...]}

Every write reads the file, applies the change and writes it back. Good for
hundreds of documents; switch to SQLiteStore beyond that. Writes from two
processes at once can lose one of the updates. `atomic()` only serializes
callers sharing this GistStore instance.
"""

from __future__ import annotations

import json
import logging

from github import Github, InputFileContent

from codecraft_store.base import BaseStore, DocumentNotFoundError, StoreError
from codecraft_store.schema import SCHEMA, Schema

logger = logging.getLogger(__name__)

_GIST_FILENAME = "codecraft_db.json"


class GistStore(BaseStore):
    """Stores every collection in one JSON file inside a GitHub Gist.

    The Gist ID is stored in .codecraft.yml under `gist_id`. The token needs
    the `gist` scope; the GITHUB_TOKEN injected by Actions does not have it.
    """

    def __init__(self, gist_id: str, token: str, schema: Schema = SCHEMA):
        super().__init__(schema)
        self._gist_id = gist_id
        self._gh = Github(token)

    def _get_gist(self):
        return self._gh.get_gist(self._gist_id)

    def get(self, collection: str, doc_id: str) -> dict | None:
        self.schema.collection(collection)
        for doc in self._read_data(self._get_gist()).get(collection, []):
            if doc.get("_id") == doc_id:
                return doc
        return None

    def get_many(self, collection: str, doc_ids) -> dict[str, dict]:
        self.schema.collection(collection)
        wanted = set(doc_ids)
        docs = self._read_data(self._get_gist()).get(collection, [])
        return {d["_id"]: d for d in docs if d.get("_id") in wanted}

    def query(self, collection: str, index: str, *values, order: str = "asc") -> list[dict]:
        docs = self._read_data(self._get_gist()).get(collection, [])
        return self._select(collection, docs, index, values, order)

    def insert(self, collection: str, document: dict) -> str:
        doc = self._prepare_insert(collection, document)
        with self.atomic():
            gist = self._get_gist()
            data = self._read_data(gist)
            data.setdefault(collection, []).append(doc)
            self._write_data(gist, data)
        logger.debug("Inserted %s/%s into Gist %s", collection, doc["_id"], self._gist_id)
        return doc["_id"]

    def patch(self, collection: str, doc_id: str, fields: dict) -> None:
        self.schema.collection(collection)
        with self.atomic():
            gist = self._get_gist()
            data = self._read_data(gist)
            docs = data.get(collection, [])
            for i, doc in enumerate(docs):
                if doc.get("_id") == doc_id:
                    docs[i] = self._prepare_patch(collection, doc, fields)
                    break
            else:
                raise DocumentNotFoundError(collection, doc_id)
            self._write_data(gist, data)

    def delete(self, collection: str, doc_id: str) -> None:
        self.schema.collection(collection)
        with self.atomic():
            gist = self._get_gist()
            data = self._read_data(gist)
            docs = data.get(collection, [])
            remaining = [d for d in docs if d.get("_id") != doc_id]
            if len(remaining) == len(docs):
                raise DocumentNotFoundError(collection, doc_id)
            data[collection] = remaining
            self._write_data(gist, data)

    def _read_data(self, gist) -> dict[str, list[dict]]:
        """Read the current collections from the Gist file, or return empty ones.

        A file that exists but doesn't hold a JSON object raises StoreError.
        """
        file_obj = gist.files.get(_GIST_FILENAME)
        if file_obj is None:
            return {}
        try:
            data = json.loads(file_obj.content) or {}
        except (json.JSONDecodeError, AttributeError) as e:
            raise StoreError(f"Gist {self._gist_id} holds unreadable {_GIST_FILENAME}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Gist {self._gist_id}: {_GIST_FILENAME} is not a JSON object")
        return data

    @staticmethod
    def _write_data(gist, data: dict) -> None:
        gist.edit(files={_GIST_FILENAME: InputFileContent(json.dumps(data, indent=2))})
