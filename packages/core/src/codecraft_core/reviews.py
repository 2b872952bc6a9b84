"""Review records: one per (user, repository), replaced on re-analysis."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from codecraft_core.errors import AccessDenied, InvalidInput, NotFound, persistence_boundary
from codecraft_core.users import find_user, require_user
from codecraft_core.utils import clock
from codecraft_store.base import BaseStore
from codecraft_store.models import PayloadError, Review, ReviewPayload

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 10
# A repository analysed within this window is flagged as having new issues.
NEW_ISSUES_WINDOW_MS = 5 * clock.MINUTE_MS


@dataclass
class ReviewDetail(Review):
    """A Review as seen by its owner, with the owner's bookmark state attached."""

    is_saved: bool = False
    saved_notes: str | None = None

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["isSaved"] = self.is_saved
        if self.saved_notes is not None:
            d["savedNotes"] = self.saved_notes
        return d


@dataclass
class RecentReview:
    review: Review
    time_ago: int  # ms since the review was last analysed

    def to_dict(self) -> dict:
        return {**self.review.to_dict(), "timeAgo": self.time_ago}


@dataclass
class RepoSnapshot:
    """Latest analysis of one repository, summarised for live dashboard tiles."""

    review: Review
    has_new_issues: bool
    issue_count: int
    critical_count: int
    last_analysis: int

    def to_dict(self) -> dict:
        return {
            **self.review.to_dict(),
            "hasNewIssues": self.has_new_issues,
            "issueCount": self.issue_count,
            "criticalCount": self.critical_count,
            "lastAnalysis": self.last_analysis,
        }


def user_reviews(store: BaseStore, user_id: str) -> list[Review]:
    """All reviews owned by user_id, newest createdAt first."""
    docs = store.query("reviews", "by_user", user_id, order="desc")
    # Stable sort: ties keep the index scan's newest-inserted-first order.
    docs.sort(key=lambda d: d["createdAt"], reverse=True)
    return [Review.from_document(d) for d in docs]


def _parse_payload(payload) -> ReviewPayload:
    if isinstance(payload, ReviewPayload):
        return payload
    if not payload:
        raise InvalidInput("review payload is required")
    try:
        return ReviewPayload.from_dict(payload)
    except PayloadError as e:
        raise InvalidInput(f"Invalid review payload: {e}") from e


@persistence_boundary("Failed to save review")
def upsert_review(
    store: BaseStore,
    identity_id: str,
    repo_name: str,
    repo_url: str,
    payload: ReviewPayload | dict,
) -> str:
    """Store the analysis of ``repo_name`` for this user and return the review id.

    A second analysis of the same repository replaces repoUrl and reviewData
    wholesale and refreshes createdAt; it never creates a duplicate.
    """
    if not identity_id or not repo_name or payload is None:
        raise InvalidInput("identity_id, repo_name and payload are required")
    if not isinstance(repo_name, str) or not isinstance(repo_url, str):
        raise InvalidInput("repo_name and repo_url must be strings")
    review_data = _parse_payload(payload).to_dict()

    user = require_user(store, identity_id)

    with store.atomic():
        existing = next(
            (d for d in store.query("reviews", "by_user", user.id) if d["repoName"] == repo_name),
            None,
        )
        now = clock.now_ms()
        if existing is not None:
            store.patch(
                "reviews",
                existing["_id"],
                {"repoUrl": repo_url, "reviewData": review_data, "createdAt": now},
            )
            logger.info("Updated review %s for %s", existing["_id"], repo_name)
            return existing["_id"]

        review_id = store.insert(
            "reviews",
            {
                "userId": user.id,
                "repoName": repo_name,
                "repoUrl": repo_url,
                "reviewData": review_data,
                "createdAt": now,
            },
        )
    logger.info("Created review %s for %s", review_id, repo_name)
    return review_id


@persistence_boundary("Failed to get user reviews")
def list_user_reviews(store: BaseStore, identity_id: str) -> list[Review]:
    """Every review the user owns, newest first. Unknown users get an empty list."""
    if not identity_id:
        raise InvalidInput("identity_id is required")
    user = find_user(store, identity_id)
    if user is None:
        return []
    return user_reviews(store, user.id)


@persistence_boundary("Failed to get recent reviews")
def list_recent_reviews(store: BaseStore, identity_id: str, limit: int = DEFAULT_RECENT_LIMIT) -> list[RecentReview]:
    if not identity_id:
        raise InvalidInput("identity_id is required")
    if limit < 1:
        raise InvalidInput("limit must be at least 1")
    user = find_user(store, identity_id)
    if user is None:
        return []
    now = clock.now_ms()
    return [RecentReview(review=r, time_ago=now - r.created_at) for r in user_reviews(store, user.id)[:limit]]


@persistence_boundary("Failed to get review")
def get_review(store: BaseStore, identity_id: str, review_id: str) -> ReviewDetail:
    """Fetch one review, enforcing that the caller owns it."""
    if not identity_id or not review_id:
        raise InvalidInput("identity_id and review_id are required")

    user = require_user(store, identity_id)

    doc = store.get("reviews", review_id)
    if doc is None:
        raise NotFound("Review not found")
    if doc["userId"] != user.id:
        logger.warning("User %s denied access to review %s", user.id, review_id)
        raise AccessDenied(review_id)

    saved = next(
        (s for s in store.query("savedReviews", "by_user", user.id) if s["reviewId"] == review_id),
        None,
    )
    review = Review.from_document(doc)
    return ReviewDetail(
        **vars(review),
        is_saved=saved is not None,
        saved_notes=saved.get("notes") if saved else None,
    )


@persistence_boundary("Failed to get repository data")
def get_repo_data(store: BaseStore, identity_id: str, repo_name: str) -> RepoSnapshot | None:
    """Latest review of ``repo_name`` for this user, or None if there isn't one."""
    if not identity_id or not repo_name:
        raise InvalidInput("identity_id and repo_name are required")
    user = find_user(store, identity_id)
    if user is None:
        return None

    latest = next((r for r in user_reviews(store, user.id) if r.repo_name == repo_name), None)
    if latest is None:
        return None

    summary = latest.review_data.summary
    return RepoSnapshot(
        review=latest,
        has_new_issues=clock.now_ms() - latest.created_at < NEW_ISSUES_WINDOW_MS,
        issue_count=summary.total_issues,
        critical_count=summary.critical_issues,
        last_analysis=latest.created_at,
    )
