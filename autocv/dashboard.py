"""Record filtering and summary counts shown on the dashboard."""
from __future__ import annotations

from collections import Counter
from typing import Sequence

from autocv.models import ApplicationRecord, ApplicationStatus


def filter_records(records: Sequence[ApplicationRecord], query: str) -> list[ApplicationRecord]:
    """Case-insensitive substring match on the company name; blank matches all."""
    query = query.strip().lower()
    if not query:
        return list(records)
    return [r for r in records if query in r.company_name.lower()]


def status_counts(records: Sequence[ApplicationRecord]) -> dict[ApplicationStatus, int]:
    counts = Counter(r.status for r in records)
    return {status: counts.get(status, 0) for status in ApplicationStatus}


def best_score(records: Sequence[ApplicationRecord]) -> float:
    return max((r.metrics.total_score for r in records), default=0)
