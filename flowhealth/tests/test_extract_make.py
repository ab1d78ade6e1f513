from bs4 import BeautifulSoup

from conftest import MAKE_URL, ZAPIER_URL
from flowhealth.metrics import Platform
from flowhealth.sources.make import MakeExtractor
from flowhealth.sources.registry import extractor_for, extractor_for_url
from flowhealth.sources.zapier import ZapierExtractor


def _extract(html, url=MAKE_URL):
    return MakeExtractor().extract(BeautifulSoup(html, "html.parser"), url)


class TestMakeExtract:
    def test_dashboard(self, make_html):
        ms = _extract(make_html)
        assert ms.platform is Platform.MAKE
        assert ms.usage_count == 4000
        assert ms.usage_limit == 10000
        assert ms.usage_percent == 40
        assert ms.item_total == 4
        assert ms.items_active == 2
        assert ms.items_in_error_state == 1
        assert ms.items_inactive == 1
        assert ms.items_paused is None
        assert ms.health_score == 48

    def test_labels(self, make_html):
        ms = _extract(make_html)
        assert ms.team_label == "Acme"
        assert ms.plan_label == "Core"

    def test_nothing_found(self, loading_html):
        ms = _extract(loading_html)
        assert not ms.has_signal
        assert ms.items_active is None
        assert ms.items_inactive is None

    def test_operations_ratio_from_text(self):
        html = """
        <html><body>
          <section><h4>Operations</h4><p>2,500 of 10,000</p></section>
        </body></html>
        """
        ms = _extract(html)
        assert ms.usage_count == 2500
        assert ms.usage_limit == 10000
        assert ms.item_total is None
        assert ms.is_partial
        assert "item_total" in ms.missing_fields

    def test_toggle_list(self):
        html = """
        <html><body><main>
          <div data-testid="scenario-list">
            <div><span class="imt-toggle" role="switch" aria-checked="true"></span> Lead sync</div>
            <div><span class="imt-toggle" role="switch" aria-checked="false"></span> Backup</div>
            <div><span class="imt-toggle" role="switch" aria-checked="false"></span> Reports</div>
          </div>
        </main></body></html>
        """
        ms = _extract(html)
        assert ms.item_total == 3
        assert ms.items_active == 1
        assert ms.items_inactive == 2
        assert ms.items_in_error_state == 0


class TestRegistry:
    def test_extractor_for_url(self):
        assert isinstance(extractor_for_url(ZAPIER_URL), ZapierExtractor)
        assert isinstance(extractor_for_url(MAKE_URL), MakeExtractor)

    def test_unsupported_url(self):
        assert extractor_for_url("https://n8n.io/workflows") is None
        assert extractor_for_url(None) is None

    def test_extractor_for_platform(self):
        assert extractor_for(Platform.MAKE).platform is Platform.MAKE


class TestMakeStatusPerRow:
    def test_nested_status_wrappers_count_once(self):
        rows = "\n".join(
            f'<div class="ScenarioRow"><span>Scenario {i}</span>'
            f'<div class="status-cell"><span class="status-badge">{status}</span></div></div>'
            for i, status in enumerate(["Error", "On", "On"], start=1)
        )
        ms = _extract(f"<html><body>{rows}</body></html>")
        assert ms.item_total == 3
        assert ms.items_in_error_state == 1
        assert ms.items_active == 2
        assert ms.items_inactive == 0
