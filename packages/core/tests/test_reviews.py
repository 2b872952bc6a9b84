"""Tests for review upsert and review queries."""

import threading

import pytest

from codecraft_core.bookmarks import add_bookmark
from codecraft_core.errors import AccessDenied, InvalidInput, NotFound, PersistenceFailure, UserNotFound
from codecraft_core.reviews import (
    get_repo_data,
    get_review,
    list_recent_reviews,
    list_user_reviews,
    upsert_review,
)
from codecraft_core.users import upsert_user
from codecraft_store.models import ReviewPayload

URL = "https://github.com/acme/widgets"


@pytest.fixture
def user(store, clock):
    return upsert_user(store, "clerk_1", "a@x.com")


class TestUpsertReview:
    def test_creates_review(self, store, clock, user, make_payload):
        payload = make_payload()
        review_id = upsert_review(store, "clerk_1", "acme/widgets", URL, payload)

        doc = store.get("reviews", review_id)
        assert doc["userId"] == user
        assert doc["repoName"] == "acme/widgets"
        assert doc["repoUrl"] == URL
        assert doc["reviewData"] == payload
        assert doc["createdAt"] == clock.now

    def test_second_analysis_replaces_first(self, store, clock, user, make_payload):
        first_id = upsert_review(store, "clerk_1", "acme/widgets", URL, make_payload(total=5, critical=1))
        clock.advance(1_000)
        second_payload = make_payload(total=3, critical=0, major=3, toolsUsed=["coderabbit", "sentry"])

        second_id = upsert_review(store, "clerk_1", "acme/widgets", URL + ".git", second_payload)

        assert second_id == first_id
        docs = store.query("reviews", "by_user", user)
        assert len(docs) == 1
        assert docs[0]["reviewData"] == second_payload
        assert docs[0]["repoUrl"] == URL + ".git"
        assert docs[0]["createdAt"] == clock.now

    def test_replace_is_not_a_merge(self, store, clock, user, make_payload):
        with_errors = make_payload(
            externalErrors=[
                {
                    "id": "s1",
                    "title": "Boom",
                    "level": "error",
                    "occurrenceCount": 3,
                    "firstSeen": "2024-01-01",
                    "lastSeen": "2024-01-02",
                }
            ]
        )
        review_id = upsert_review(store, "clerk_1", "acme/widgets", URL, with_errors)

        upsert_review(store, "clerk_1", "acme/widgets", URL, make_payload())

        assert "externalErrors" not in store.get("reviews", review_id)["reviewData"]

    def test_different_repos_get_different_reviews(self, store, clock, user, make_payload):
        a = upsert_review(store, "clerk_1", "acme/a", URL, make_payload())
        b = upsert_review(store, "clerk_1", "acme/b", URL, make_payload())
        assert a != b

    def test_same_repo_different_users_kept_apart(self, store, clock, user, make_payload):
        upsert_user(store, "clerk_2", "b@x.com")
        a = upsert_review(store, "clerk_1", "acme/widgets", URL, make_payload())
        b = upsert_review(store, "clerk_2", "acme/widgets", URL, make_payload())
        assert a != b

    def test_accepts_payload_object(self, store, clock, user, make_payload):
        payload = make_payload()
        review_id = upsert_review(store, "clerk_1", "acme/widgets", URL, ReviewPayload.from_dict(payload))
        assert store.get("reviews", review_id)["reviewData"] == payload

    def test_unknown_user(self, store, clock, make_payload):
        with pytest.raises(UserNotFound):
            upsert_review(store, "ghost", "acme/widgets", URL, make_payload())

    @pytest.mark.parametrize(
        "identity_id,repo_name,payload",
        [("", "acme/widgets", {"x": 1}), ("clerk_1", "", {"x": 1}), ("clerk_1", "acme/widgets", None)],
    )
    def test_missing_fields(self, store, clock, user, identity_id, repo_name, payload):
        with pytest.raises(InvalidInput):
            upsert_review(store, identity_id, repo_name, URL, payload)

    def test_empty_payload(self, store, clock, user):
        with pytest.raises(InvalidInput):
            upsert_review(store, "clerk_1", "acme/widgets", URL, {})

    def test_validation_runs_before_store_access(self, store, clock, user, make_payload, mocker):
        query = mocker.spy(store, "query")
        payload = make_payload()
        payload["issues"][0]["severity"] = "blocker"

        with pytest.raises(InvalidInput, match="severity"):
            upsert_review(store, "clerk_1", "acme/widgets", URL, payload)
        query.assert_not_called()

    def test_unknown_payload_fields_rejected(self, store, clock, user, make_payload, mocker):
        payload = make_payload(commitSha="abc123")
        payload["summary"]["linesScanned"] = 900
        payload["issues"][0]["rule"] = "S105"
        insert = mocker.spy(store, "insert")

        with pytest.raises(InvalidInput, match="unknown fields"):
            upsert_review(store, "clerk_1", "acme/widgets", URL, payload)
        insert.assert_not_called()
        assert list_user_reviews(store, "clerk_1") == []

    def test_store_failure_wrapped(self, store, clock, user, make_payload, mocker):
        mocker.patch.object(store, "insert", side_effect=OSError("read-only"))

        with pytest.raises(PersistenceFailure, match="Failed to save review: read-only"):
            upsert_review(store, "clerk_1", "acme/widgets", URL, make_payload())

    @pytest.mark.parametrize("repo_name,repo_url", [(42, URL), ("acme/widgets", 42)])
    def test_wrong_argument_types_are_invalid_input(self, store, clock, user, make_payload, repo_name, repo_url):
        with pytest.raises(InvalidInput, match="must be strings"):
            upsert_review(store, "clerk_1", repo_name, repo_url, make_payload())

    def test_concurrent_saves_keep_one_review(self, store, clock, user, make_payload):
        errors = []

        def save():
            try:
                upsert_review(store, "clerk_1", "acme/widgets", URL, make_payload())
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=save) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(store.query("reviews", "by_user", user)) == 1


class TestListUserReviews:
    def test_newest_first(self, store, clock, user, make_payload):
        for repo in ("acme/a", "acme/b", "acme/c"):
            upsert_review(store, "clerk_1", repo, URL, make_payload())
            clock.advance(1_000)

        assert [r.repo_name for r in list_user_reviews(store, "clerk_1")] == ["acme/c", "acme/b", "acme/a"]

    def test_reanalysis_moves_review_to_front(self, store, clock, user, make_payload):
        upsert_review(store, "clerk_1", "acme/a", URL, make_payload())
        clock.advance(1_000)
        upsert_review(store, "clerk_1", "acme/b", URL, make_payload())
        clock.advance(1_000)
        upsert_review(store, "clerk_1", "acme/a", URL, make_payload())

        assert [r.repo_name for r in list_user_reviews(store, "clerk_1")] == ["acme/a", "acme/b"]

    def test_only_own_reviews(self, store, clock, user, make_payload):
        upsert_user(store, "clerk_2", "b@x.com")
        upsert_review(store, "clerk_2", "other/repo", URL, make_payload())

        assert list_user_reviews(store, "clerk_1") == []

    def test_unknown_user_gets_empty_list(self, store):
        assert list_user_reviews(store, "ghost") == []

    def test_payload_round_trip(self, store, clock, user, make_payload):
        payload = make_payload(score=81)
        review_id = upsert_review(store, "clerk_1", "acme/widgets", URL, payload)

        (review,) = list_user_reviews(store, "clerk_1")
        assert review.id == review_id
        assert review.review_data.to_dict() == payload


class TestGetReview:
    def test_returns_owned_review(self, store, clock, user, make_payload):
        payload = make_payload()
        review_id = upsert_review(store, "clerk_1", "acme/widgets", URL, payload)

        detail = get_review(store, "clerk_1", review_id)

        assert detail.id == review_id
        assert detail.review_data.to_dict() == payload
        assert detail.is_saved is False
        assert detail.saved_notes is None

    def test_reports_bookmark_state(self, store, clock, user, make_payload):
        review_id = upsert_review(store, "clerk_1", "acme/widgets", URL, make_payload())
        add_bookmark(store, "clerk_1", review_id, notes="fix before release")

        detail = get_review(store, "clerk_1", review_id)

        assert detail.is_saved is True
        assert detail.saved_notes == "fix before release"
        assert detail.to_dict()["isSaved"] is True
        assert detail.to_dict()["savedNotes"] == "fix before release"

    def test_other_users_review_denied(self, store, clock, user, make_payload):
        upsert_user(store, "clerk_2", "b@x.com")
        review_id = upsert_review(store, "clerk_2", "other/repo", URL, make_payload())

        with pytest.raises(AccessDenied) as exc_info:
            get_review(store, "clerk_1", review_id)
        assert "other/repo" not in str(exc_info.value)

    def test_missing_review(self, store, clock, user):
        with pytest.raises(NotFound):
            get_review(store, "clerk_1", "does-not-exist")

    def test_unknown_user(self, store, clock, user, make_payload):
        review_id = upsert_review(store, "clerk_1", "acme/widgets", URL, make_payload())
        with pytest.raises(UserNotFound):
            get_review(store, "ghost", review_id)


class TestRecentReviews:
    def test_limit_and_time_ago(self, store, clock, user, make_payload):
        for repo in ("acme/a", "acme/b", "acme/c"):
            upsert_review(store, "clerk_1", repo, URL, make_payload())
            clock.advance(60_000)

        recent = list_recent_reviews(store, "clerk_1", limit=2)

        assert [r.review.repo_name for r in recent] == ["acme/c", "acme/b"]
        assert [r.time_ago for r in recent] == [60_000, 120_000]
        assert recent[0].to_dict()["timeAgo"] == 60_000

    def test_default_limit_is_ten(self, store, clock, user, make_payload):
        for n in range(12):
            upsert_review(store, "clerk_1", f"acme/repo-{n}", URL, make_payload())
        assert len(list_recent_reviews(store, "clerk_1")) == 10

    def test_unknown_user(self, store):
        assert list_recent_reviews(store, "ghost") == []

    def test_limit_must_be_positive(self, store):
        with pytest.raises(InvalidInput):
            list_recent_reviews(store, "clerk_1", limit=0)


class TestRepoData:
    def test_fresh_analysis_flagged_new(self, store, clock, user, make_payload):
        upsert_review(store, "clerk_1", "acme/widgets", URL, make_payload(total=4, critical=2, major=2))
        clock.advance(4 * 60_000)

        snapshot = get_repo_data(store, "clerk_1", "acme/widgets")

        assert snapshot.has_new_issues is True
        assert snapshot.issue_count == 4
        assert snapshot.critical_count == 2
        assert snapshot.last_analysis == clock.now - 4 * 60_000

    def test_old_analysis_not_new(self, store, clock, user, make_payload):
        upsert_review(store, "clerk_1", "acme/widgets", URL, make_payload())
        clock.advance(5 * 60_000)

        assert get_repo_data(store, "clerk_1", "acme/widgets").has_new_issues is False

    def test_missing_repo_or_user(self, store, clock, user):
        assert get_repo_data(store, "clerk_1", "acme/none") is None
        assert get_repo_data(store, "ghost", "acme/widgets") is None


@pytest.mark.parametrize(
    "read",
    [
        list_user_reviews,
        list_recent_reviews,
        lambda store, identity_id: get_repo_data(store, identity_id, "acme/widgets"),
    ],
    ids=["list_user_reviews", "list_recent_reviews", "get_repo_data"],
)
@pytest.mark.parametrize("identity_id", ["", None])
def test_reads_require_identity(store, mocker, read, identity_id):
    query = mocker.spy(store, "query")

    with pytest.raises(InvalidInput, match="identity_id"):
        read(store, identity_id)
    query.assert_not_called()
