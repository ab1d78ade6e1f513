"""Validation for MetricSet payloads crossing a context boundary."""

from __future__ import annotations

from numbers import Number

from flowhealth.metrics import MetricSet, Platform

COUNT_KEYS = (
    "itemTotal",
    "itemsInErrorState",
    "itemsPaused",
    "itemsInactive",
    "itemsActive",
)
USAGE_KEYS = ("usageCount", "usageLimit")
TEXT_KEYS = ("sourceUrl", "capturedAt", "teamLabel", "planLabel", "version")


def validate_metric_payload(payload: dict) -> MetricSet:
    """Check a wire-form MetricSet and return it as a MetricSet.

    Absent values (None) are always accepted. Present values must have the
    right type; counts must be non-negative integers. The incoming
    healthScore is checked for range but then recomputed by the receiver.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"metric payload must be dict, got {type(payload).__name__}")

    platform = payload.get("platform")
    valid_platforms = {p.value for p in Platform}
    if platform not in valid_platforms:
        raise ValueError(f"metric payload has unknown platform: {platform!r}")

    for key in COUNT_KEYS:
        _as_optional_count(payload.get(key), platform, key)
    for key in USAGE_KEYS:
        _as_optional_number(payload.get(key), platform, key)
    for key in TEXT_KEYS:
        value = payload.get(key)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"{platform} field {key} must be a string, got {type(value).__name__}")

    health_score = payload.get("healthScore")
    if health_score is not None:
        _as_optional_count(health_score, platform, "healthScore")
        if health_score > 100:
            raise ValueError(f"{platform} field healthScore must be <= 100")

    return MetricSet.from_dict(payload)


def _as_optional_number(value, platform: str, key: str):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, Number):
        raise ValueError(f"{platform} field {key} must be numeric, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{platform} field {key} must be >= 0")
    return value


def _as_optional_count(value, platform: str, key: str) -> int | None:
    number = _as_optional_number(value, platform, key)
    if number is None:
        return None
    if int(number) != number:
        raise ValueError(f"{platform} field {key} must be a whole number")
    return int(number)
