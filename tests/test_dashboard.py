from __future__ import annotations

from autocv.dashboard import best_score, filter_records, status_counts
from autocv.models import ApplicationStatus, MatchMetrics
from tests.conftest import make_record


def _records():
    return [
        make_record(id="a", company_name="Acme Corp", status=ApplicationStatus.APPLIED),
        make_record(id="b", company_name="Globex", status=ApplicationStatus.REJECTED),
        make_record(id="c", company_name="acme labs", status=ApplicationStatus.INTERVIEWING),
        make_record(id="d", company_name="Initech", metrics=MatchMetrics(skills_match=60, rnd_focus=10)),
    ]


def test_search_is_case_insensitive_substring() -> None:
    assert [r.id for r in filter_records(_records(), "  ACME ")] == ["a", "c"]


def test_blank_search_returns_everything() -> None:
    assert len(filter_records(_records(), "")) == 4


def test_applied_count_excludes_other_statuses() -> None:
    counts = status_counts(_records())
    assert counts[ApplicationStatus.APPLIED] == 1
    assert counts[ApplicationStatus.REJECTED] == 1
    assert counts[ApplicationStatus.INTERVIEWING] == 1
    assert counts[ApplicationStatus.DRAFT] == 1
    assert counts[ApplicationStatus.OFFER] == 0


def test_best_score() -> None:
    assert best_score(_records()) == 70
    assert best_score([]) == 0
