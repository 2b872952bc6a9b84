"""Document schema for the CodeCraft store.

Three collections, each with typed top-level fields and named indexes:

  users         one per external identity (the sign-in subject id)
  reviews       one per (user, repository) analysis
  savedReviews  a user's bookmarks onto reviews

Nested review payloads are validated by the models layer; the schema only
checks that ``reviewData`` is an object. Every backend validates against
the same Schema instance, so a document accepted by SQLite is accepted by
the Gist store too.
"""

from __future__ import annotations

from dataclasses import dataclass, field


class SchemaError(Exception):
    """Raised for unknown collections/indexes or documents that don't fit the schema."""


@dataclass(frozen=True)
class Collection:
    """Field types and declared indexes for one collection."""

    fields: dict[str, type | tuple[type, ...]]
    optional: frozenset[str] = frozenset()
    indexes: dict[str, tuple[str, ...]] = field(default_factory=dict)

    def validate(self, name: str, document: dict) -> None:
        for key, expected in self.fields.items():
            if key not in document or document[key] is None:
                if key in self.optional:
                    continue
                raise SchemaError(f"{name}: missing required field {key!r}")
            value = document[key]
            # bool is an int subclass; reject it for numeric fields.
            if isinstance(value, bool) and bool not in _as_tuple(expected):
                raise SchemaError(f"{name}.{key}: expected {_type_names(expected)}, got bool")
            if not isinstance(value, expected):
                raise SchemaError(f"{name}.{key}: expected {_type_names(expected)}, got {type(value).__name__}")
        unknown = {k for k in document if not k.startswith("_")} - set(self.fields)
        if unknown:
            raise SchemaError(f"{name}: unknown fields {sorted(unknown)}")


class Schema:
    def __init__(self, collections: dict[str, Collection]):
        self._collections = collections

    @property
    def collections(self) -> dict[str, Collection]:
        return self._collections

    def collection(self, name: str) -> Collection:
        try:
            return self._collections[name]
        except KeyError:
            raise SchemaError(f"Unknown collection: {name!r}") from None

    def index_fields(self, collection: str, index: str) -> tuple[str, ...]:
        indexes = self.collection(collection).indexes
        try:
            return indexes[index]
        except KeyError:
            raise SchemaError(f"Unknown index {index!r} on collection {collection!r}") from None

    def validate(self, collection: str, document: dict) -> None:
        self.collection(collection).validate(collection, document)


def _as_tuple(expected) -> tuple[type, ...]:
    return expected if isinstance(expected, tuple) else (expected,)


def _type_names(expected) -> str:
    return " | ".join(t.__name__ for t in _as_tuple(expected))


SCHEMA = Schema(
    {
        "users": Collection(
            fields={"identityId": str, "email": str, "createdAt": int},
            indexes={
                "by_identity_id": ("identityId",),
                "by_email": ("email",),
            },
        ),
        "reviews": Collection(
            fields={
                "userId": str,
                "repoName": str,
                "repoUrl": str,
                "reviewData": dict,
                "createdAt": int,
            },
            indexes={
                "by_user": ("userId",),
                "by_repo": ("repoName",),
                "by_created_at": ("createdAt",),
            },
        ),
        "savedReviews": Collection(
            fields={"userId": str, "reviewId": str, "savedAt": int, "notes": str},
            optional=frozenset({"notes"}),
            indexes={
                "by_user": ("userId",),
                "by_review": ("reviewId",),
                "by_saved_at": ("savedAt",),
            },
        ),
    }
)
