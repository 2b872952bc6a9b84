"""Dashboard roll-ups over a user's reviews."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from codecraft_core.errors import InvalidInput, persistence_boundary
from codecraft_core.reviews import user_reviews
from codecraft_core.users import find_user
from codecraft_core.utils import clock
from codecraft_store.base import BaseStore

RECENT_ACTIVITY_SIZE = 5
NOTIFICATION_WINDOW_MS = 24 * clock.HOUR_MS


@dataclass
class RecentActivity:
    id: str
    repo_name: str
    issues_found: int
    created_at: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "repoName": self.repo_name,
            "issuesFound": self.issues_found,
            "createdAt": self.created_at,
        }


@dataclass
class ReviewStats:
    """Aggregates behind the dashboard stat tiles.

    An unknown user gets the all-zero instance so the dashboard can render
    its empty state without a special case.
    """

    total_reviews: int = 0
    total_issues_found: int = 0
    critical_issues: int = 0
    major_issues: int = 0
    minor_issues: int = 0
    avg_code_quality: int = 0
    saved_reviews: int = 0
    recent_activity: list[RecentActivity] = field(default_factory=list)
    last_updated: int = 0

    def to_dict(self) -> dict:
        return {
            "totalReviews": self.total_reviews,
            "totalIssuesFound": self.total_issues_found,
            "criticalIssues": self.critical_issues,
            "majorIssues": self.major_issues,
            "minorIssues": self.minor_issues,
            "avgCodeQuality": self.avg_code_quality,
            "savedReviews": self.saved_reviews,
            "recentActivity": [a.to_dict() for a in self.recent_activity],
            "lastUpdated": self.last_updated,
        }


@dataclass
class NotificationCount:
    new_reviews: int = 0
    critical_issues: int = 0
    total_notifications: int = 0

    def to_dict(self) -> dict:
        return {
            "newReviews": self.new_reviews,
            "criticalIssues": self.critical_issues,
            "totalNotifications": self.total_notifications,
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@persistence_boundary("Failed to get review statistics")
def get_review_stats(store: BaseStore, identity_id: str) -> ReviewStats:
    if not identity_id:
        raise InvalidInput("identity_id is required")
    user = find_user(store, identity_id)
    if user is None:
        return ReviewStats(last_updated=clock.now_ms())

    reviews = user_reviews(store, user.id)
    saved_count = len(store.query("savedReviews", "by_user", user.id))

    stats = ReviewStats(total_reviews=len(reviews), saved_reviews=saved_count)
    scores = []
    for review in reviews:
        summary = review.review_data.summary
        stats.total_issues_found += summary.total_issues
        stats.critical_issues += summary.critical_issues
        stats.major_issues += summary.major_issues
        stats.minor_issues += summary.minor_issues
        if summary.code_quality_score is not None:
            scores.append(summary.code_quality_score)

    if scores:
        stats.avg_code_quality = _round_half_up(sum(scores) / len(scores))

    # user_reviews() is already newest-first.
    stats.recent_activity = [
        RecentActivity(
            id=r.id,
            repo_name=r.repo_name,
            issues_found=r.review_data.summary.total_issues,
            created_at=r.created_at,
        )
        for r in reviews[:RECENT_ACTIVITY_SIZE]
    ]
    stats.last_updated = clock.now_ms()
    return stats


@persistence_boundary("Failed to get notification count")
def get_notification_count(store: BaseStore, identity_id: str) -> NotificationCount:
    """Reviews from the last 24 hours and the critical issues they contain."""
    if not identity_id:
        raise InvalidInput("identity_id is required")
    user = find_user(store, identity_id)
    if user is None:
        return NotificationCount()

    cutoff = clock.now_ms() - NOTIFICATION_WINDOW_MS
    recent = [r for r in user_reviews(store, user.id) if r.created_at > cutoff]
    critical = sum(r.review_data.summary.critical_issues for r in recent)
    return NotificationCount(
        new_reviews=len(recent),
        critical_issues=critical,
        total_notifications=len(recent) + critical,
    )
