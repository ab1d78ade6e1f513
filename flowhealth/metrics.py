"""MetricSet: the result of one extraction attempt for one platform."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import datetime, timezone
from enum import Enum

from flowhealth.parsing import round_half_up

EXTRACTOR_VERSION = "1.1.0"


class Platform(str, Enum):
    ZAPIER = "zapier"
    MAKE = "make"

    @property
    def display_name(self) -> str:
        return "Zapier" if self is Platform.ZAPIER else "Make.com"

    @property
    def cache_key(self) -> str:
        return f"{self.value}Metrics"


PLATFORM_HOSTS: dict[Platform, str] = {
    Platform.ZAPIER: "zapier.com",
    Platform.MAKE: "make.com",
}


def platform_for_url(url: str | None) -> Platform | None:
    """Identify which dashboard a URL belongs to, or None if unsupported."""
    if not url:
        return None
    lowered = url.lower()
    for platform, host in PLATFORM_HOSTS.items():
        if host in lowered:
            return platform
    return None


# snake_case attribute -> wire key
_WIRE_KEYS = {
    "platform": "platform",
    "source_url": "sourceUrl",
    "captured_at": "capturedAt",
    "usage_count": "usageCount",
    "usage_limit": "usageLimit",
    "item_total": "itemTotal",
    "items_in_error_state": "itemsInErrorState",
    "items_paused": "itemsPaused",
    "items_inactive": "itemsInactive",
    "items_active": "itemsActive",
    "team_label": "teamLabel",
    "plan_label": "planLabel",
    "health_score": "healthScore",
    "version": "version",
}

NUMERIC_FIELDS = (
    "usage_count",
    "usage_limit",
    "item_total",
    "items_in_error_state",
    "items_paused",
    "items_inactive",
    "items_active",
)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class MetricSet:
    """Structured counts read from a dashboard page.

    Every field is optional. None means "not found on the page" and is kept
    distinct from a measured 0. usage_percent and error_rate are derived from
    their operands on every read, so they can never drift out of sync.
    """

    platform: Platform | None = None
    source_url: str | None = None
    captured_at: str | None = None
    usage_count: int | float | None = None
    usage_limit: int | float | None = None
    item_total: int | None = None
    items_in_error_state: int | None = None
    items_paused: int | None = None
    items_inactive: int | None = None
    items_active: int | None = None
    team_label: str | None = None
    plan_label: str | None = None
    health_score: int | None = None
    version: str = EXTRACTOR_VERSION

    @property
    def usage_percent(self) -> int | None:
        if self.usage_count is None or self.usage_limit is None or self.usage_limit <= 0:
            return None
        return round_half_up(100 * self.usage_count / self.usage_limit)

    @property
    def error_rate(self) -> int | None:
        if self.items_in_error_state is None or not self.item_total or self.item_total <= 0:
            return None
        return round_half_up(100 * self.items_in_error_state / self.item_total)

    @property
    def stalled_count(self) -> int | None:
        """Paused (Zapier) or inactive (Make) items, whichever the platform reports."""
        if self.items_paused is not None:
            return self.items_paused
        return self.items_inactive

    @property
    def has_signal(self) -> bool:
        """True when enough was found to be useful: an item total or a usage count."""
        return self.item_total is not None or self.usage_count is not None

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in NUMERIC_FIELDS) and (
            self.team_label is None and self.plan_label is None
        )

    @property
    def missing_fields(self) -> list[str]:
        wanted = ["usage_count", "usage_limit", "item_total", "items_in_error_state"]
        if self.platform is Platform.MAKE:
            wanted.append("items_inactive")
        else:
            wanted.append("items_paused")
        return [name for name in wanted if getattr(self, name) is None]

    @property
    def is_partial(self) -> bool:
        return self.has_signal and bool(self.missing_fields)

    def with_score(self, score: int) -> MetricSet:
        return replace(self, health_score=score)

    def to_dict(self) -> dict:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Platform):
                value = value.value
            data[_WIRE_KEYS[f.name]] = value
        data["usagePercent"] = self.usage_percent
        data["errorRate"] = self.error_rate
        return data

    @classmethod
    def from_dict(cls, data: dict) -> MetricSet:
        """Build a MetricSet from its wire form; derived keys are recomputed, not trusted."""
        kwargs = {}
        for attr, key in _WIRE_KEYS.items():
            if key in data:
                kwargs[attr] = data[key]
        if kwargs.get("platform") is not None:
            kwargs["platform"] = Platform(kwargs["platform"])
        if kwargs.get("version") is None:
            kwargs.pop("version", None)
        return cls(**kwargs)
