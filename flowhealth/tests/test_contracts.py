import pytest

from flowhealth.metrics import MetricSet, Platform, platform_for_url
from flowhealth.sources.contracts import validate_metric_payload


def test_validate_accepts_wire_form():
    ms = MetricSet(platform=Platform.MAKE, usage_count=10.5, usage_limit=100, item_total=3, items_inactive=1)
    parsed = validate_metric_payload(ms.to_dict())
    assert parsed.platform is Platform.MAKE
    assert parsed.usage_count == 10.5
    assert parsed.items_inactive == 1


def test_validate_accepts_all_absent():
    parsed = validate_metric_payload({"platform": "zapier"})
    assert parsed.is_empty


def test_validate_ignores_derived_keys():
    parsed = validate_metric_payload({
        "platform": "zapier", "itemTotal": 10, "itemsInErrorState": 5, "errorRate": 1, "usagePercent": 99,
    })
    assert parsed.error_rate == 50
    assert parsed.usage_percent is None


@pytest.mark.parametrize("payload", [
    None,
    [],
    {"platform": "n8n"},
    {},
    {"platform": "zapier", "itemTotal": "15"},
    {"platform": "zapier", "itemTotal": True},
    {"platform": "zapier", "itemTotal": -1},
    {"platform": "zapier", "itemsPaused": 1.5},
    {"platform": "make", "usageLimit": "lots"},
    {"platform": "make", "teamLabel": 42},
    {"platform": "make", "healthScore": 140},
])
def test_validate_rejects_malformed(payload):
    with pytest.raises(ValueError):
        validate_metric_payload(payload)


class TestMetricSet:
    def test_derived_values_need_both_operands(self):
        assert MetricSet(usage_count=5).usage_percent is None
        assert MetricSet(usage_count=5, usage_limit=0).usage_percent is None
        assert MetricSet(item_total=0, items_in_error_state=0).error_rate is None
        assert MetricSet(item_total=4).error_rate is None

    def test_measured_zero_is_not_absent(self):
        ms = MetricSet(platform=Platform.ZAPIER, item_total=4, items_in_error_state=0)
        assert ms.error_rate == 0
        assert not ms.is_empty

    def test_from_dict_round_trip_keeps_version(self):
        ms = MetricSet(platform=Platform.ZAPIER, item_total=1, version="0.9.0")
        assert MetricSet.from_dict(ms.to_dict()).version == "0.9.0"

    def test_platform_for_url(self):
        assert platform_for_url("https://zapier.com/app/dashboard") is Platform.ZAPIER
        assert platform_for_url("https://eu2.make.com/123/scenarios") is Platform.MAKE
        assert platform_for_url("https://n8n.io") is None
        assert platform_for_url("") is None

    def test_cache_keys(self):
        assert Platform.ZAPIER.cache_key == "zapierMetrics"
        assert Platform.MAKE.cache_key == "makeMetrics"
