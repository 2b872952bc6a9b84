"""User records keyed by the identity provider's subject id."""

from __future__ import annotations

import logging

from codecraft_core.errors import InvalidInput, UserNotFound, persistence_boundary
from codecraft_core.utils import clock
from codecraft_store.base import BaseStore
from codecraft_store.models import User

logger = logging.getLogger(__name__)


def find_user(store: BaseStore, identity_id: str) -> User | None:
    """Resolve a User through the by_identity_id index, or None if unknown."""
    docs = store.query("users", "by_identity_id", identity_id)
    return User.from_document(docs[0]) if docs else None


def require_user(store: BaseStore, identity_id: str) -> User:
    user = find_user(store, identity_id)
    if user is None:
        raise UserNotFound(identity_id)
    return user


@persistence_boundary("Failed to save user information")
def upsert_user(store: BaseStore, identity_id: str, email: str) -> str:
    """Create the User on first sign-in, or refresh its email; return the user id.

    At most one write per call. createdAt is never touched after the insert.
    """
    if not identity_id or not email:
        raise InvalidInput("identity_id and email are required")
    if not isinstance(identity_id, str) or not isinstance(email, str):
        raise InvalidInput("identity_id and email must be strings")

    with store.atomic():
        existing = find_user(store, identity_id)
        if existing is not None:
            if existing.email != email:
                store.patch("users", existing.id, {"email": email})
                logger.info("Updated email for user %s", existing.id)
            return existing.id

        user_id = store.insert(
            "users",
            {"identityId": identity_id, "email": email, "createdAt": clock.now_ms()},
        )
    logger.info("Created user %s for identity %s", user_id, identity_id)
    return user_id
