"""Typed value objects for stored documents.

Decoupled from codecraft_core so the store layer can be used on its own.
Each model converts to and from the camelCase document shape kept in the
store; ``from_dict`` is where untrusted review payloads get validated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class PayloadError(ValueError):
    """A review payload doesn't match the expected shape."""


class Severity(str, Enum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


def _field(data: dict, key: str, types, where: str, optional: bool = False):
    if not isinstance(data, dict):
        raise PayloadError(f"{where}: expected an object, got {type(data).__name__}")
    value = data.get(key)
    if value is None:
        if optional:
            return None
        raise PayloadError(f"{where}.{key} is required")
    types = types if isinstance(types, tuple) else (types,)
    # bool is an int subclass; a count of True is a caller bug.
    if isinstance(value, bool) or not isinstance(value, types):
        raise PayloadError(f"{where}.{key}: expected {' | '.join(t.__name__ for t in types)}, got {type(value).__name__}")
    return value


def _known_keys(data: dict, keys: frozenset, where: str) -> None:
    """Raise PayloadError for any key outside ``keys``."""
    if not isinstance(data, dict):
        raise PayloadError(f"{where}: expected an object, got {type(data).__name__}")
    unknown = set(data) - keys
    if unknown:
        raise PayloadError(f"{where}: unknown fields {sorted(unknown)}")


_ISSUE_KEYS = frozenset({"id", "file", "line", "severity", "category", "title", "description", "suggestion"})
_EXTERNAL_ERROR_KEYS = frozenset({"id", "title", "level", "occurrenceCount", "firstSeen", "lastSeen", "url"})
_SUMMARY_KEYS = frozenset({"totalIssues", "criticalIssues", "majorIssues", "minorIssues", "codeQualityScore"})
_PAYLOAD_KEYS = frozenset({"summary", "issues", "analysisTimestamp", "toolsUsed", "externalErrors"})


def _count(data: dict, key: str, where: str) -> int:
    value = _field(data, key, int, where)
    if value < 0:
        raise PayloadError(f"{where}.{key} must not be negative")
    return value


@dataclass
class Issue:
    """A single finding reported by the code-review tool."""

    id: str
    file: str
    line: int
    severity: Severity
    category: str  # e.g. "security", "performance", "style"
    title: str
    description: str
    suggestion: str | None = None

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "file": self.file,
            "line": self.line,
            "severity": self.severity.value,
            "category": self.category,
            "title": self.title,
            "description": self.description,
        }
        if self.suggestion is not None:
            d["suggestion"] = self.suggestion
        return d

    @classmethod
    def from_dict(cls, d: dict, where: str = "issue") -> Issue:
        _known_keys(d, _ISSUE_KEYS, where)
        severity = _field(d, "severity", str, where)
        try:
            parsed = Severity(severity)
        except ValueError:
            choices = ", ".join(s.value for s in Severity)
            raise PayloadError(f"{where}.severity must be one of {choices}, got {severity!r}") from None
        return cls(
            id=_field(d, "id", str, where),
            file=_field(d, "file", str, where),
            line=_field(d, "line", int, where),
            severity=parsed,
            category=_field(d, "category", str, where),
            title=_field(d, "title", str, where),
            description=_field(d, "description", str, where),
            suggestion=_field(d, "suggestion", str, where, optional=True),
        )


@dataclass
class ExternalError:
    """An error group pulled from the error tracker (Sentry)."""

    id: str
    title: str
    level: str  # "error" | "warning" | "info"
    occurrence_count: int
    first_seen: str
    last_seen: str
    url: str | None = None

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "title": self.title,
            "level": self.level,
            "occurrenceCount": self.occurrence_count,
            "firstSeen": self.first_seen,
            "lastSeen": self.last_seen,
        }
        if self.url is not None:
            d["url"] = self.url
        return d

    @classmethod
    def from_dict(cls, d: dict, where: str = "externalError") -> ExternalError:
        _known_keys(d, _EXTERNAL_ERROR_KEYS, where)
        return cls(
            id=_field(d, "id", str, where),
            title=_field(d, "title", str, where),
            level=_field(d, "level", str, where),
            occurrence_count=_count(d, "occurrenceCount", where),
            first_seen=_field(d, "firstSeen", str, where),
            last_seen=_field(d, "lastSeen", str, where),
            url=_field(d, "url", str, where, optional=True),
        )


@dataclass
class ReviewSummary:
    total_issues: int
    critical_issues: int
    major_issues: int
    minor_issues: int
    code_quality_score: int | float | None = None  # 0-100

    def to_dict(self) -> dict:
        d = {
            "totalIssues": self.total_issues,
            "criticalIssues": self.critical_issues,
            "majorIssues": self.major_issues,
            "minorIssues": self.minor_issues,
        }
        if self.code_quality_score is not None:
            d["codeQualityScore"] = self.code_quality_score
        return d

    @classmethod
    def from_dict(cls, d: dict, where: str = "summary") -> ReviewSummary:
        _known_keys(d, _SUMMARY_KEYS, where)
        score = _field(d, "codeQualityScore", (int, float), where, optional=True)
        if score is not None and not 0 <= score <= 100:
            raise PayloadError(f"{where}.codeQualityScore must be between 0 and 100, got {score}")
        return cls(
            total_issues=_count(d, "totalIssues", where),
            critical_issues=_count(d, "criticalIssues", where),
            major_issues=_count(d, "majorIssues", where),
            minor_issues=_count(d, "minorIssues", where),
            code_quality_score=score,
        )


@dataclass
class ReviewPayload:
    """The analysis result attached to a Review (the `reviewData` document field)."""

    summary: ReviewSummary
    issues: list[Issue] = field(default_factory=list)
    analysis_timestamp: int = 0  # epoch ms
    tools_used: list[str] = field(default_factory=list)  # ["coderabbit", "sentry", ...]
    external_errors: list[ExternalError] | None = None

    def to_dict(self) -> dict:
        d = {
            "summary": self.summary.to_dict(),
            "issues": [i.to_dict() for i in self.issues],
            "analysisTimestamp": self.analysis_timestamp,
            "toolsUsed": list(self.tools_used),
        }
        if self.external_errors is not None:
            d["externalErrors"] = [e.to_dict() for e in self.external_errors]
        return d

    @classmethod
    def from_dict(cls, d: dict) -> ReviewPayload:
        where = "reviewData"
        _known_keys(d, _PAYLOAD_KEYS, where)
        issues = _field(d, "issues", list, where)
        tools = _field(d, "toolsUsed", list, where)
        if not all(isinstance(t, str) for t in tools):
            raise PayloadError(f"{where}.toolsUsed must be a list of strings")
        errors = _field(d, "externalErrors", list, where, optional=True)
        return cls(
            summary=ReviewSummary.from_dict(_field(d, "summary", dict, where), f"{where}.summary"),
            issues=[Issue.from_dict(item, f"{where}.issues[{n}]") for n, item in enumerate(issues)],
            analysis_timestamp=_field(d, "analysisTimestamp", int, where),
            tools_used=list(tools),
            external_errors=(
                None
                if errors is None
                else [ExternalError.from_dict(item, f"{where}.externalErrors[{n}]") for n, item in enumerate(errors)]
            ),
        )


@dataclass
class User:
    id: str
    identity_id: str
    email: str
    created_at: int

    @classmethod
    def from_document(cls, doc: dict) -> User:
        return cls(id=doc["_id"], identity_id=doc["identityId"], email=doc["email"], created_at=doc["createdAt"])


@dataclass
class Review:
    """A user's stored analysis of one repository.

    ``created_at`` is refreshed whenever the repository is re-analysed, so it
    reads as "last analysed at" rather than "first stored at".
    """

    id: str
    user_id: str
    repo_name: str  # "owner/repo"
    repo_url: str
    review_data: ReviewPayload
    created_at: int  # epoch ms

    def to_dict(self) -> dict:
        return {
            "_id": self.id,
            "userId": self.user_id,
            "repoName": self.repo_name,
            "repoUrl": self.repo_url,
            "reviewData": self.review_data.to_dict(),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_document(cls, doc: dict) -> Review:
        return cls(
            id=doc["_id"],
            user_id=doc["userId"],
            repo_name=doc["repoName"],
            repo_url=doc["repoUrl"],
            review_data=ReviewPayload.from_dict(doc["reviewData"]),
            created_at=doc["createdAt"],
        )


@dataclass
class SavedReview:
    """A bookmark. ``review`` is only filled in by the joined listing."""

    id: str
    user_id: str
    review_id: str
    saved_at: int
    notes: str | None = None
    review: Review | None = None

    def to_dict(self) -> dict:
        d = {
            "_id": self.id,
            "userId": self.user_id,
            "reviewId": self.review_id,
            "savedAt": self.saved_at,
        }
        if self.notes is not None:
            d["notes"] = self.notes
        if self.review is not None:
            d["review"] = self.review.to_dict()
        return d

    @classmethod
    def from_document(cls, doc: dict, review: Review | None = None) -> SavedReview:
        return cls(
            id=doc["_id"],
            user_id=doc["userId"],
            review_id=doc["reviewId"],
            saved_at=doc["savedAt"],
            notes=doc.get("notes"),
            review=review,
        )
