import json

from flowhealth.cache import Snapshot, SnapshotCache
from flowhealth.config import CacheConfig
from flowhealth.metrics import MetricSet, Platform


class _Clock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


def _ms(total=5):
    return MetricSet(platform=Platform.ZAPIER, item_total=total, health_score=100)


class TestSnapshotCache:
    def test_put_then_get(self):
        cache = SnapshotCache(clock=_Clock())
        cache.put(Platform.ZAPIER, _ms())
        snap = cache.get(Platform.ZAPIER)
        assert snap.metric_set.item_total == 5
        assert snap.stored_at == 1_000.0
        assert cache.get(Platform.MAKE) is None

    def test_put_overwrites(self):
        cache = SnapshotCache(clock=_Clock())
        cache.put(Platform.ZAPIER, _ms(5))
        cache.put(Platform.ZAPIER, _ms(8))
        assert cache.get(Platform.ZAPIER).metric_set.item_total == 8

    def test_staleness_boundary(self):
        clock = _Clock()
        cache = SnapshotCache(clock=clock)
        snap = cache.put(Platform.ZAPIER, _ms())
        clock.now += 299
        assert not cache.is_stale(snap)
        clock.now += 1
        assert cache.is_stale(snap)

    def test_get_never_filters_stale(self):
        clock = _Clock()
        cache = SnapshotCache(clock=clock)
        cache.put(Platform.ZAPIER, _ms())
        clock.now += 3600
        assert cache.get(Platform.ZAPIER) is not None
        assert cache.get_fresh(Platform.ZAPIER) is None

    def test_custom_ttl(self):
        clock = _Clock()
        cache = SnapshotCache(CacheConfig(ttl_seconds=10), clock=clock)
        cache.put(Platform.MAKE, _ms())
        clock.now += 10
        assert cache.get_fresh(Platform.MAKE) is None


class TestPersistence:
    def test_round_trip_through_file(self, tmp_path):
        path = tmp_path / "cache.json"
        SnapshotCache(CacheConfig(path=str(path)), clock=_Clock()).put(Platform.ZAPIER, _ms(7))

        raw = json.loads(path.read_text())
        assert set(raw) == {"zapierMetrics"}
        assert raw["zapierMetrics"]["capturedAt"] == 1_000.0
        assert raw["zapierMetrics"]["metricSet"]["itemTotal"] == 7

        reloaded = SnapshotCache(CacheConfig(path=str(path)), clock=_Clock())
        assert reloaded.get(Platform.ZAPIER).metric_set.item_total == 7

    def test_missing_file_is_empty_cache(self, tmp_path):
        cache = SnapshotCache(CacheConfig(path=str(tmp_path / "nope.json")))
        assert cache.get(Platform.ZAPIER) is None

    def test_malformed_file_is_empty_cache(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("{not json")
        cache = SnapshotCache(CacheConfig(path=str(path)))
        assert cache.get(Platform.ZAPIER) is None

    def test_malformed_entry_is_skipped(self, tmp_path):
        path = tmp_path / "cache.json"
        good = Snapshot(_ms(3), 5.0).to_dict()
        path.write_text(json.dumps({"zapierMetrics": {"metricSet": {}}, "makeMetrics": {
            **good, "metricSet": {**good["metricSet"], "platform": "make"},
        }}))
        cache = SnapshotCache(CacheConfig(path=str(path)))
        assert cache.get(Platform.ZAPIER) is None
        assert cache.get(Platform.MAKE).metric_set.item_total == 3
