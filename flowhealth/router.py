"""Contexts on either side of the message protocol.

ExtractorContext lives with a page: it owns the poll controller, writes the
snapshot cache and reports to the coordinator. CoordinatorContext is the
background process: it owns the platform -> metrics map, drives the ambient
indicator and brokers ANALYZE_TAB requests from the summary view to the
extractor of the active page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from flowhealth.cache import SnapshotCache
from flowhealth.config import PollConfig
from flowhealth.controller import PollController, PollOutcome, PollResult, Scheduler
from flowhealth.errors import MessageDeliveryError
from flowhealth.messages import (
    Message,
    MessageType,
    Port,
    Sender,
    extract_metrics,
    metrics_extracted,
    metrics_extraction_failed,
    open_popup,
)
from flowhealth.metrics import MetricSet, Platform, platform_for_url
from flowhealth.page import Page
from flowhealth.scoring import score, score_color
from flowhealth.sources.base import PlatformExtractor
from flowhealth.sources.contracts import validate_metric_payload

logger = logging.getLogger(__name__)

UNSUPPORTED_HINT = "Open Zapier or Make.com dashboard to analyze"


class Indicator(Protocol):
    def set_indicator(self, text: str, color: str | None, context_id: str | None = None) -> None: ...


class LoggingIndicator:
    """Indicator that only records what a badge would show."""

    def __init__(self):
        self.current: dict[str | None, tuple[str, str | None]] = {}

    def set_indicator(self, text: str, color: str | None, context_id: str | None = None) -> None:
        self.current[context_id] = (text, color)
        if text:
            logger.info("Indicator[%s]: %s (%s)", context_id, text, color)
        else:
            logger.info("Indicator[%s]: cleared", context_id)


# --- Extractor side ---

class ExtractorContext:
    def __init__(
        self,
        page: Page,
        extractor: PlatformExtractor,
        cache: SnapshotCache,
        scheduler: Scheduler | None = None,
        poll_config: PollConfig | None = None,
        on_result: Callable[[PollResult], None] | None = None,
    ):
        self.page = page
        self.on_result = on_result
        self.extractor = extractor
        self.cache = cache
        self.coordinator: Port | None = None
        self.last_metrics: MetricSet | None = None
        self._last_url = page.url
        self.controller = PollController(
            extract=self.run_once,
            on_outcome=self._on_outcome,
            scheduler=scheduler,
            config=poll_config,
            name=f"{extractor.platform.value}-poll",
        )

    def start(self) -> None:
        self.page.add_mutation_listener(self.on_mutation)
        self.controller.start()

    def stop(self) -> None:
        self.page.remove_mutation_listener(self.on_mutation)
        self.controller.stop()

    def run_once(self) -> MetricSet:
        return self.extractor.extract(self.page.snapshot(), self.page.url)

    def on_mutation(self) -> None:
        # Only compare URLs and re-arm; extraction happens on the controller's timer.
        if self.page.url == self._last_url:
            return
        self._last_url = self.page.url
        self.controller.reset()

    def _on_outcome(self, result: PollResult) -> None:
        if result.outcome is PollOutcome.SUCCESS:
            self._publish(result.metric_set)
        else:
            self._notify(metrics_extraction_failed(self.extractor.platform.value, self.page.url))
        if self.on_result is not None:
            self.on_result(result)

    def _publish(self, metric_set: MetricSet) -> None:
        self.last_metrics = metric_set
        self.cache.put(metric_set.platform, metric_set)
        self._notify(metrics_extracted(metric_set.to_dict()))

    def _notify(self, message: Message) -> None:
        if self.coordinator is None:
            logger.debug("No coordinator connected; dropping %s", message.type.value)
            return
        try:
            self.coordinator.send(message)
        except MessageDeliveryError as e:
            logger.warning("Could not deliver %s: %s", message.type.value, e)

    def open_summary(self) -> None:
        """The user clicked the on-page badge."""
        if self.last_metrics is not None:
            self._notify(open_popup(self.last_metrics.to_dict()))

    def handle_notification(self, message: Message, sender: Sender) -> None:
        logger.debug("Extractor ignoring notification %s", message.type.value)

    async def handle_request(self, message: Message, sender: Sender) -> dict:
        if message.type is not MessageType.EXTRACT_METRICS:
            return {"error": f"Unsupported request: {message.type.value}"}
        metric_set = self.run_once()
        if not metric_set.has_signal:
            return {"noData": True, "platform": self.extractor.platform.value, "sourceUrl": self.page.url}
        self.last_metrics = metric_set
        self.cache.put(metric_set.platform, metric_set)
        return {"metrics": metric_set.to_dict()}


# --- Coordinator side ---

@dataclass
class ContextLink:
    context_id: str
    port: Port
    url: Callable[[], str | None]


class CoordinatorContext:
    """Background coordinator; created once at startup and never cleared."""

    def __init__(self, indicator: Indicator | None = None):
        self.indicator = indicator or LoggingIndicator()
        self.snapshots: dict[Platform, dict | None] = {platform: None for platform in Platform}
        self.contexts: dict[str, ContextLink] = {}
        self.active_context_id: str | None = None

    # Context bookkeeping

    def connect(self, context_id: str, extractor: ExtractorContext) -> None:
        """Wire an extractor context to this coordinator in both directions."""
        page = extractor.page
        extractor.coordinator = Port(
            self.handle_notification,
            self.handle_request,
            sender=lambda: Sender(context_id=context_id, url=page.url),
        )
        to_extractor = Port(
            extractor.handle_notification,
            extractor.handle_request,
            sender=lambda: Sender(context_id=None, url=None),
        )
        self.contexts[context_id] = ContextLink(context_id, to_extractor, lambda: page.url)
        if self.active_context_id is None:
            self.active_context_id = context_id

    def disconnect(self, context_id: str) -> None:
        link = self.contexts.pop(context_id, None)
        if link is not None:
            link.port.close()

    def activate(self, context_id: str) -> None:
        self.active_context_id = context_id

    def view_port(self) -> Port:
        return Port(self.handle_notification, self.handle_request, sender=lambda: Sender())

    def on_context_loading(self, context_id: str, url: str | None) -> None:
        """A context started loading a new document."""
        if platform_for_url(url) is None:
            self.indicator.set_indicator("", None, context_id)

    # Message handling

    def handle_notification(self, message: Message, sender: Sender) -> None:
        logger.info("Received message: %s", message.type.value)
        if message.type is MessageType.METRICS_EXTRACTED:
            metric_set = self._store(message.payload.get("metrics"))
            if metric_set is not None:
                health = metric_set.health_score or 0
                self.indicator.set_indicator(str(health), score_color(health), sender.context_id)
                logger.info("Updated %s metrics, score: %s", metric_set.platform.value, health)
        elif message.type is MessageType.METRICS_EXTRACTION_FAILED:
            logger.info("No data for %s at %s", message.payload.get("platform"), message.payload.get("sourceUrl"))
            self.indicator.set_indicator("", None, sender.context_id)
        elif message.type is MessageType.OPEN_POPUP:
            self._store(message.payload.get("metrics"))
        else:
            logger.warning("Unexpected notification %s", message.type.value)

    def _store(self, payload) -> MetricSet | None:
        try:
            metric_set = validate_metric_payload(payload)
        except ValueError as e:
            logger.warning("Dropping invalid metrics payload: %s", e)
            return None
        metric_set = metric_set.with_score(score(metric_set))
        self.snapshots[metric_set.platform] = metric_set.to_dict()
        return metric_set

    async def handle_request(self, message: Message, sender: Sender) -> dict:
        if message.type is MessageType.GET_METRICS:
            return {platform.value: data for platform, data in self.snapshots.items()}
        if message.type is MessageType.ANALYZE_TAB:
            return await self.analyze_active_context()
        return {"error": f"Unsupported request: {message.type.value}"}

    async def analyze_active_context(self) -> dict:
        link = self.contexts.get(self.active_context_id) if self.active_context_id else None
        url = link.url() if link else None
        if link is None or not url:
            return {"error": "No active tab"}
        if platform_for_url(url) is None:
            return {"error": "Not on a supported platform", "hint": UNSUPPORTED_HINT}
        try:
            return await link.port.request(extract_metrics())
        except MessageDeliveryError as e:
            logger.warning("Error analyzing context %s: %s", link.context_id, e)
            return {"error": str(e)}
