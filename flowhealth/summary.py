"""What the summary view shows for a platform, as plain data.

build_summary() turns a MetricSet into a score, four metric tiles and a
short list of recommendations. SummaryView decides which MetricSet to show:
a fresh cache entry, else a fresh ANALYZE_TAB pass, else whatever the cache
still holds, else "no data".
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from flowhealth.cache import SnapshotCache
from flowhealth.config import ViewConfig, load_view_config
from flowhealth.errors import MessageDeliveryError
from flowhealth.messages import Port, analyze_tab
from flowhealth.metrics import MetricSet, Platform, platform_for_url
from flowhealth.scoring import apply_score, score_color, score_description
from flowhealth.sources.contracts import validate_metric_payload

logger = logging.getLogger(__name__)

ABSENT = "n/a"


class Level(str, Enum):
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    SUCCESS = "success"
    INFO = "info"


@dataclass(frozen=True)
class Tile:
    label: str
    value: int | None
    unit: str = ""
    level: Level | None = None

    @property
    def text(self) -> str:
        if self.value is None:
            return ABSENT
        return f"{self.value}{self.unit}"


@dataclass(frozen=True)
class Recommendation:
    level: Level
    text: str


@dataclass(frozen=True)
class Summary:
    platform: Platform
    platform_name: str
    score: int
    color: str
    description: str
    tiles: tuple[Tile, ...]
    recommendations: tuple[Recommendation, ...]
    partial: bool
    missing: tuple[str, ...] = ()

    @property
    def is_critical(self) -> bool:
        return self.score < 40

    def to_dict(self) -> dict:
        return {
            "platform": self.platform.value,
            "platformName": self.platform_name,
            "score": self.score,
            "color": self.color,
            "description": self.description,
            "tiles": [
                {"label": t.label, "value": t.value, "text": t.text, "level": t.level.value if t.level else None}
                for t in self.tiles
            ],
            "recommendations": [{"level": r.level.value, "text": r.text} for r in self.recommendations],
            "partial": self.partial,
            "missing": list(self.missing),
        }


# Platform wording for tiles and recommendations.
_WORDING = {
    Platform.ZAPIER: {"items": "Total Zaps", "stalled": "Paused", "usage": "Task Usage", "unit": "task"},
    Platform.MAKE: {"items": "Scenarios", "stalled": "Inactive", "usage": "Operations", "unit": "operation"},
}


def usage_level(percent: int | None) -> Level | None:
    if percent is None:
        return None
    if percent >= 90:
        return Level.ERROR
    if percent >= 75:
        return Level.WARNING
    return Level.SUCCESS


def _count_level(count: int | None, bad: Level) -> Level | None:
    if count is None:
        return None
    return bad if count > 0 else Level.SUCCESS


def build_tiles(metric_set: MetricSet) -> tuple[Tile, ...]:
    wording = _WORDING[metric_set.platform]
    return (
        Tile(wording["items"], metric_set.item_total),
        Tile("Errors", metric_set.items_in_error_state, level=_count_level(metric_set.items_in_error_state, Level.ERROR)),
        Tile(wording["usage"], metric_set.usage_percent, unit="%", level=usage_level(metric_set.usage_percent)),
        Tile(wording["stalled"], metric_set.stalled_count, level=_count_level(metric_set.stalled_count, Level.WARNING)),
    )


def build_recommendations(metric_set: MetricSet) -> tuple[Recommendation, ...]:
    unit = _WORDING[metric_set.platform]["unit"]
    errors = metric_set.items_in_error_state
    error_rate = metric_set.error_rate
    usage = metric_set.usage_percent
    recs: list[Recommendation] = []

    if errors and error_rate is not None:
        if error_rate >= 20:
            recs.append(Recommendation(Level.CRITICAL, f"{errors} workflows have errors. Check error logs and fix triggers."))
        else:
            noun = "workflow needs" if errors == 1 else "workflows need"
            recs.append(Recommendation(Level.WARNING, f"{errors} {noun} attention."))

    if usage is not None:
        if usage >= 90:
            recs.append(Recommendation(Level.CRITICAL, f"{usage}% of {unit}s used. Consider upgrading or optimizing."))
        elif usage >= 75:
            recs.append(Recommendation(Level.WARNING, f"Approaching {unit} limit. Review workflow efficiency."))

    if not recs:
        recs.append(Recommendation(Level.INFO, "Your integrations are healthy! Consider consolidating similar workflows."))
    return tuple(recs)


def build_summary(metric_set: MetricSet) -> Summary:
    if metric_set.platform is None:
        raise ValueError("cannot summarize a MetricSet without a platform")
    health = metric_set.health_score if metric_set.health_score is not None else apply_score(metric_set).health_score
    return Summary(
        platform=metric_set.platform,
        platform_name=metric_set.platform.display_name,
        score=health,
        color=score_color(health),
        description=score_description(health),
        tiles=build_tiles(metric_set),
        recommendations=build_recommendations(metric_set),
        partial=metric_set.is_partial,
        missing=tuple(metric_set.missing_fields),
    )


# --- View state ---

class ViewState(str, Enum):
    LOADING = "loading"
    NO_PLATFORM = "no_platform"
    NO_DATA = "no_data"
    HEALTH = "health"


@dataclass
class SummaryState:
    state: ViewState
    summary: Summary | None = None
    stale: bool = False
    error: str | None = None
    hint: str | None = None
    notes: list[str] = field(default_factory=list)


class SummaryView:
    """The user-facing view for whichever page is active."""

    def __init__(self, cache: SnapshotCache, port: Port, config: ViewConfig | None = None):
        self.cache = cache
        self.port = port
        self.config = config or load_view_config()
        self.current = SummaryState(ViewState.LOADING)

    async def load(self, url: str | None) -> SummaryState:
        platform = platform_for_url(url)
        if platform is None:
            self.current = SummaryState(ViewState.NO_PLATFORM)
            return self.current

        snapshot = self.cache.get_fresh(platform)
        if snapshot is not None:
            logger.debug("Showing fresh cached %s metrics", platform.value)
            self.current = self._show(snapshot.metric_set)
            return self.current
        return await self.refresh(platform)

    async def refresh(self, platform: Platform) -> SummaryState:
        """Ask for a fresh pass; fall back to the cache if it does not arrive in time."""
        self.current = SummaryState(ViewState.LOADING)
        try:
            response = await asyncio.wait_for(self.port.request(analyze_tab()), self.config.response_timeout_seconds)
        except asyncio.TimeoutError:
            logger.info("ANALYZE_TAB timed out after %.1fs; using cache", self.config.response_timeout_seconds)
            response = None
        except MessageDeliveryError as e:
            logger.warning("ANALYZE_TAB could not be delivered: %s", e)
            response = None

        if response and response.get("error"):
            logger.info("Analysis error: %s", response["error"])
            self.current = SummaryState(ViewState.NO_PLATFORM, error=response["error"], hint=response.get("hint"))
            return self.current

        if response and response.get("metrics"):
            try:
                metric_set = validate_metric_payload(response["metrics"])
            except ValueError as e:
                logger.warning("Ignoring invalid ANALYZE_TAB metrics: %s", e)
            else:
                self.current = self._show(apply_score(metric_set))
                return self.current

        snapshot = self.cache.get(platform)
        if snapshot is not None:
            self.current = self._show(snapshot.metric_set, stale=self.cache.is_stale(snapshot))
            return self.current

        self.current = SummaryState(ViewState.NO_DATA)
        return self.current

    def _show(self, metric_set: MetricSet, stale: bool = False) -> SummaryState:
        summary = build_summary(metric_set)
        notes = []
        if stale:
            notes.append("Showing the last known values; they may be out of date.")
        if summary.partial:
            notes.append("Some metrics were not found on this page.")
        return SummaryState(ViewState.HEALTH, summary=summary, stale=stale, notes=notes)
