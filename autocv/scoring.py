"""Turn the model's scoring reply into bounded MatchMetrics."""
from __future__ import annotations

import math
from typing import Any

from autocv.log import get_logger
from autocv.models import METRIC_FIELDS, MatchMetrics

log = get_logger(__name__)

# Sub-scores that may only take one of a few discrete values.
ALLOWED_VALUES: dict[str, tuple[int, ...]] = {
    "remotePolicy": (0, 5, 10),    # onsite / hybrid / remote
    "startupBonus": (0, 5),
    "automationBonus": (0, 10),
}

# Colour bands used by the dashboard badge, highest first.
SCORE_BANDS: list[tuple[int, str]] = [
    (90, "great"),
    (70, "good"),
    (50, "fair"),
    (0, "low"),
]


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().rstrip("%"))
        except ValueError:
            return 0.0
    else:
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _tidy(number: float) -> float | int:
    return int(number) if float(number).is_integer() else round(number, 2)


def normalize_score(key: str, raw: Any, ceiling: int) -> float | int:
    """Coerce one sub-score to a number within ``[0, ceiling]``.

    Discrete sub-scores snap to the nearest allowed value; ties go to the
    lower one.
    """
    number = min(max(_as_number(raw), 0.0), float(ceiling))
    allowed = ALLOWED_VALUES.get(key)
    if allowed is not None:
        return min(allowed, key=lambda a: (abs(a - number), a))
    return _tidy(number)


def metrics_from_reply(data: dict[str, Any]) -> MatchMetrics:
    """Build MatchMetrics from a parsed step-6 reply; absent fields count as 0."""
    values: dict[str, float | int] = {}
    for key, ceiling in METRIC_FIELDS:
        raw = data.get(key)
        value = normalize_score(key, raw, ceiling)
        if raw is not None and _as_number(raw) != value:
            log.warning("Adjusted %s from %r to %s", key, raw, value)
        values[key] = value
    return MatchMetrics.from_dict(values)


def score_band(total: float) -> str:
    for threshold, band in SCORE_BANDS:
        if total >= threshold:
            return band
    return SCORE_BANDS[-1][1]
