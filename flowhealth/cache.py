"""Latest MetricSet per platform, with a staleness rule.

put() always overwrites; there is no history. get() never filters stale
entries, since some readers would rather show a five-minute-old value than
nothing. Readers that need freshness call is_stale() themselves.

With a path configured, entries are mirrored to a small JSON key-value file
({"zapierMetrics": {"metricSet": ..., "capturedAt": ...}, ...}). The cache
is disposable: a missing or unreadable file is just an empty cache.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from flowhealth.config import CacheConfig
from flowhealth.metrics import MetricSet, Platform

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    metric_set: MetricSet
    stored_at: float  # epoch seconds

    def to_dict(self) -> dict:
        return {"metricSet": self.metric_set.to_dict(), "capturedAt": self.stored_at}

    @classmethod
    def from_dict(cls, data: dict) -> Snapshot:
        return cls(metric_set=MetricSet.from_dict(data["metricSet"]), stored_at=float(data["capturedAt"]))


class SnapshotCache:
    def __init__(self, config: CacheConfig | None = None, clock: Callable[[], float] = time.time):
        self.config = config or CacheConfig()
        self._clock = clock
        self._entries: dict[Platform, Snapshot] = {}
        self._path = Path(self.config.path) if self.config.path else None
        if self._path is not None:
            self._entries = self._load()

    def put(self, platform: Platform, metric_set: MetricSet) -> Snapshot:
        snapshot = Snapshot(metric_set=metric_set, stored_at=self._clock())
        self._entries[platform] = snapshot
        self._save()
        return snapshot

    def get(self, platform: Platform) -> Snapshot | None:
        return self._entries.get(platform)

    def is_stale(self, snapshot: Snapshot) -> bool:
        return self._clock() - snapshot.stored_at >= self.config.ttl_seconds

    def get_fresh(self, platform: Platform) -> Snapshot | None:
        snapshot = self.get(platform)
        if snapshot is None or self.is_stale(snapshot):
            return None
        return snapshot

    def _load(self) -> dict[Platform, Snapshot]:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable cache file %s: %s", self._path, e)
            return {}

        entries: dict[Platform, Snapshot] = {}
        if not isinstance(raw, dict):
            return entries
        for platform in Platform:
            item = raw.get(platform.cache_key)
            if not item:
                continue
            try:
                entries[platform] = Snapshot.from_dict(item)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Ignoring malformed cache entry %s: %s", platform.cache_key, e)
        return entries

    def _save(self) -> None:
        if self._path is None:
            return
        payload = {platform.cache_key: snap.to_dict() for platform, snap in self._entries.items()}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        except OSError:
            logger.exception("Failed to write cache file %s", self._path)
