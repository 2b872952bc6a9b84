import copy

import pytest

from codecraft_store.memory import MemoryStore
from codecraft_store.sqlite import SQLiteStore

T0 = 1_700_000_000_000

_BASE_PAYLOAD = {
    "summary": {"totalIssues": 2, "criticalIssues": 1, "majorIssues": 1, "minorIssues": 0},
    "issues": [
        {
            "id": "cr-1",
            "file": "src/auth.py",
            "line": 42,
            "severity": "critical",
            "category": "security",
            "title": "Hardcoded secret",
            "description": "API key committed to source.",
        },
        {
            "id": "cr-2",
            "file": "src/db.py",
            "line": 7,
            "severity": "major",
            "category": "performance",
            "title": "N+1 query",
            "description": "Query inside a loop.",
            "suggestion": "Batch the lookups.",
        },
    ],
    "analysisTimestamp": T0,
    "toolsUsed": ["coderabbit"],
}


class FakeClock:
    def __init__(self, start: int):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        s = MemoryStore()
    else:
        s = SQLiteStore(db_path=str(tmp_path / "codecraft.db"))
    yield s
    s.close()


@pytest.fixture
def clock(mocker):
    fake = FakeClock(T0)
    mocker.patch("codecraft_core.utils.clock.now_ms", side_effect=fake)
    return fake


@pytest.fixture
def make_payload():
    """Build a review payload dict, overriding summary counts as needed."""

    def _make(total=2, critical=1, major=1, minor=0, score=None, **overrides):
        payload = copy.deepcopy(_BASE_PAYLOAD)
        payload["summary"] = {
            "totalIssues": total,
            "criticalIssues": critical,
            "majorIssues": major,
            "minorIssues": minor,
        }
        if score is not None:
            payload["summary"]["codeQualityScore"] = score
        payload.update(overrides)
        return payload

    return _make
