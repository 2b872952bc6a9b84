"""Bookmarks ("saved reviews"). Notes are set when saving and never edited."""

from __future__ import annotations

import logging

from codecraft_core.errors import AlreadySaved, InvalidInput, NotFound, persistence_boundary
from codecraft_core.users import find_user, require_user
from codecraft_core.utils import clock
from codecraft_store.base import BaseStore
from codecraft_store.models import Review, SavedReview

logger = logging.getLogger(__name__)


def _find_bookmark(store: BaseStore, user_id: str, review_id: str) -> dict | None:
    return next(
        (s for s in store.query("savedReviews", "by_user", user_id) if s["reviewId"] == review_id),
        None,
    )


@persistence_boundary("Failed to save review")
def add_bookmark(store: BaseStore, identity_id: str, review_id: str, notes: str | None = None) -> str:
    """Bookmark a review for this user and return the bookmark id."""
    if not identity_id or not review_id:
        raise InvalidInput("identity_id and review_id are required")
    if notes is not None and not isinstance(notes, str):
        raise InvalidInput("notes must be a string")

    user = require_user(store, identity_id)

    with store.atomic():
        if _find_bookmark(store, user.id, review_id) is not None:
            raise AlreadySaved(review_id)

        document = {"userId": user.id, "reviewId": review_id, "savedAt": clock.now_ms()}
        if notes is not None:
            document["notes"] = notes
        bookmark_id = store.insert("savedReviews", document)

    logger.info("User %s saved review %s", user.id, review_id)
    return bookmark_id


@persistence_boundary("Failed to remove saved review")
def remove_bookmark(store: BaseStore, identity_id: str, review_id: str) -> dict:
    if not identity_id or not review_id:
        raise InvalidInput("identity_id and review_id are required")

    user = require_user(store, identity_id)

    with store.atomic():
        bookmark = _find_bookmark(store, user.id, review_id)
        if bookmark is None:
            raise NotFound("Saved review not found")
        store.delete("savedReviews", bookmark["_id"])

    logger.info("User %s removed saved review %s", user.id, review_id)
    return {"success": True}


@persistence_boundary("Failed to get saved reviews")
def list_saved_reviews(store: BaseStore, identity_id: str) -> list[SavedReview]:
    """The user's bookmarks, newest first, each with its review attached.

    Bookmarks pointing at a review that no longer exists are dropped.
    """
    if not identity_id:
        raise InvalidInput("identity_id is required")
    user = find_user(store, identity_id)
    if user is None:
        return []

    docs = store.query("savedReviews", "by_user", user.id, order="desc")
    docs.sort(key=lambda d: d["savedAt"], reverse=True)
    reviews = store.get_many("reviews", [d["reviewId"] for d in docs])

    results = []
    for doc in docs:
        review_doc = reviews.get(doc["reviewId"])
        if review_doc is None:
            logger.debug("Skipping bookmark %s: review %s no longer exists", doc["_id"], doc["reviewId"])
            continue
        results.append(SavedReview.from_document(doc, review=Review.from_document(review_doc)))
    return results
