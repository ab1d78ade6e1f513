"""Health score: a deterministic 0-100 summary of a MetricSet.

The score starts at 100 and loses independently capped penalties:

- usage: 30 above 90%, 15 above 75%, 5 above 50% of the plan limit
- errors: twice the error rate, at most 40
- stalled items: share of paused (Zapier) or inactive (Make) items,
  weighted per platform and never more than 20

A penalty only applies when its input was found on the page. A MetricSet
with nothing resolved therefore scores 100: absence of data is reported as
"no data", never as a low score.
"""

from __future__ import annotations

from dataclasses import dataclass

from flowhealth.metrics import MetricSet, Platform
from flowhealth.parsing import round_half_up

MAX_ERROR_PENALTY = 40
STALLED_PENALTY_CEILING = 20

USAGE_PENALTY_BANDS = (
    (90, 30),
    (75, 15),
    (50, 5),
)

SCORE_COLORS = (
    (80, "#22c55e"),  # green
    (60, "#eab308"),  # yellow
    (40, "#f97316"),  # orange
)
CRITICAL_COLOR = "#ef4444"

SCORE_DESCRIPTIONS = (
    (80, "Healthy"),
    (60, "Needs attention"),
    (40, "Degraded"),
)


@dataclass(frozen=True)
class StalledWeighting:
    """How a platform's paused/inactive share turns into a penalty."""

    divisor: float
    cap: float


# Zapier: paused zaps count in full, up to 20.
# Make: inactive scenarios at half weight, up to 15.
STALLED_WEIGHTING: dict[Platform, StalledWeighting] = {
    Platform.ZAPIER: StalledWeighting(divisor=1.0, cap=20),
    Platform.MAKE: StalledWeighting(divisor=2.0, cap=15),
}
_DEFAULT_WEIGHTING = STALLED_WEIGHTING[Platform.ZAPIER]


def usage_penalty(usage_percent: int | None) -> int:
    if usage_percent is None:
        return 0
    for threshold, penalty in USAGE_PENALTY_BANDS:
        if usage_percent > threshold:
            return penalty
    return 0


def error_penalty(error_rate: int | None) -> int:
    if error_rate is None:
        return 0
    return min(error_rate * 2, MAX_ERROR_PENALTY)


def stalled_penalty(metric_set: MetricSet) -> float:
    stalled = metric_set.stalled_count
    total = metric_set.item_total
    if not stalled or not total or stalled <= 0 or total <= 0:
        return 0.0
    weighting = STALLED_WEIGHTING.get(metric_set.platform, _DEFAULT_WEIGHTING)
    rate = stalled / total * 100
    return min(rate / weighting.divisor, weighting.cap, STALLED_PENALTY_CEILING)


def score(metric_set: MetricSet) -> int:
    """Compute the 0-100 health score from the numeric fields of metric_set."""
    penalties = (
        usage_penalty(metric_set.usage_percent)
        + error_penalty(metric_set.error_rate)
        + stalled_penalty(metric_set)
    )
    return max(0, round_half_up(100 - penalties))


def apply_score(metric_set: MetricSet) -> MetricSet:
    """Return a copy of metric_set with health_score filled in."""
    return metric_set.with_score(score(metric_set))


def score_color(score_value: int | None) -> str:
    """Indicator color for a score: green >= 80, yellow >= 60, orange >= 40, red."""
    value = score_value or 0
    for threshold, color in SCORE_COLORS:
        if value >= threshold:
            return color
    return CRITICAL_COLOR


def score_description(score_value: int | None) -> str:
    value = score_value or 0
    for threshold, description in SCORE_DESCRIPTIONS:
        if value >= threshold:
            return description
    return "Critical"
