from __future__ import annotations

import logging
from typing import Callable, Protocol, TypeVar

from bs4 import BeautifulSoup, Tag

from flowhealth.locators import StrategyChain, resolve, resolve_all
from flowhealth.metrics import MetricSet, Platform, utc_now_iso
from flowhealth.parsing import as_count, clean_label, to_number
from flowhealth.scoring import score
from flowhealth.status_counter import StatusCategory, StatusProfile, count_by_category

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PlatformExtractor(Protocol):
    platform: Platform

    def extract(self, document: BeautifulSoup, url: str | None = None) -> MetricSet:
        """Return a scored MetricSet for one page snapshot; never raises."""


class ChainExtractor:
    """Shared extraction flow; platforms supply the chain tables.

    Subclasses set the class attributes below. Each field is resolved on its
    own so that one misbehaving locator cannot blank the rest of the set.
    """

    platform: Platform
    usage_chain: StrategyChain
    limit_chain: StrategyChain
    item_chain: StrategyChain
    item_count_chain: StrategyChain
    plan_chain: StrategyChain
    team_chain: StrategyChain
    status_profile: StatusProfile
    # MetricSet attribute -> status category counted into it
    status_fields: dict[str, StatusCategory] = {}

    def _field(self, name: str, read: Callable[[], T]) -> T | None:
        try:
            return read()
        except Exception:
            logger.exception("%s: failed to read %s", self.platform.value, name)
            return None

    def read_number(self, document: BeautifulSoup, strategy: StrategyChain) -> int | float | None:
        match = resolve(document, strategy)
        return to_number(match.value) if match else None

    def read_label(self, document: BeautifulSoup, strategy: StrategyChain) -> str | None:
        match = resolve(document, strategy)
        return clean_label(match.value) if match else None

    def read_items(self, document: BeautifulSoup) -> list[Tag] | None:
        items = resolve_all(document, self.item_chain)
        return items.elements if items else None

    def read_item_total(self, document: BeautifulSoup, items: list[Tag] | None = None) -> int | None:
        if items:
            return len(items)
        return as_count(self.read_number(document, self.item_count_chain))

    def extract(self, document: BeautifulSoup, url: str | None = None) -> MetricSet:
        metric_set = MetricSet(platform=self.platform, source_url=url, captured_at=utc_now_iso())

        metric_set.usage_count = self._field("usage_count", lambda: self.read_number(document, self.usage_chain))
        metric_set.usage_limit = self._field("usage_limit", lambda: self.read_number(document, self.limit_chain))
        items = self._field("items", lambda: self.read_items(document))
        metric_set.item_total = self._field("item_total", lambda: self.read_item_total(document, items))
        metric_set.plan_label = self._field("plan_label", lambda: self.read_label(document, self.plan_chain))
        metric_set.team_label = self._field("team_label", lambda: self.read_label(document, self.team_chain))

        for attr, category in self.status_fields.items():
            count = self._field(attr, lambda c=category: count_by_category(document, c, self.status_profile, items))
            # A zero only counts as measured when the item list itself was found.
            if count or (count == 0 and metric_set.item_total is not None):
                setattr(metric_set, attr, count)

        metric_set.health_score = score(metric_set)
        logger.debug("%s extracted: %s", self.platform.value, metric_set.to_dict())
        return metric_set
