from unittest.mock import patch

from bs4 import BeautifulSoup

from conftest import ZAPIER_URL, zapier_page
from flowhealth.metrics import Platform
from flowhealth.sources.zapier import ZapierExtractor


def _extract(html, url=ZAPIER_URL):
    return ZapierExtractor().extract(BeautifulSoup(html, "html.parser"), url)


class TestZapierExtract:
    def test_scenario_a(self, zapier_html):
        ms = _extract(zapier_html)
        assert ms.platform is Platform.ZAPIER
        assert ms.usage_count == 1234
        assert ms.usage_limit == 10000
        assert ms.usage_percent == 12
        assert ms.item_total == 15
        assert ms.items_in_error_state == 2
        assert ms.items_paused == 3
        assert ms.error_rate == 13
        assert ms.health_score == 54

    def test_labels_and_provenance(self, zapier_html):
        ms = _extract(zapier_html)
        assert ms.team_label == "Acme Ops"
        assert ms.plan_label == "Professional"
        assert ms.source_url == ZAPIER_URL
        assert ms.captured_at is not None

    def test_wire_form(self, zapier_html):
        data = _extract(zapier_html).to_dict()
        assert data["platform"] == "zapier"
        assert data["usageCount"] == 1234
        assert data["usagePercent"] == 12
        assert data["itemsPaused"] == 3
        assert data["errorRate"] == 13
        assert data["healthScore"] == 54
        assert data["itemsInactive"] is None

    def test_scenario_b_nothing_found(self, loading_html):
        ms = _extract(loading_html)
        assert ms.is_empty
        assert not ms.has_signal
        assert ms.items_in_error_state is None
        assert ms.items_paused is None
        assert ms.usage_percent is None

    def test_healthy_list_reports_measured_zeros(self):
        ms = _extract(zapier_page(statuses=["on"] * 4))
        assert ms.item_total == 4
        assert ms.items_in_error_state == 0
        assert ms.items_paused == 0
        assert ms.health_score == 100

    def test_aria_and_progressbar_fallbacks(self):
        html = """
        <html><body><main>
          <div role="progressbar" aria-label="Task usage this month" aria-valuenow="1800" aria-valuemax="2000"></div>
          <span aria-label="Total zaps">7</span>
        </main></body></html>
        """
        ms = _extract(html)
        assert ms.usage_count == 1800
        assert ms.usage_limit == 2000
        assert ms.usage_percent == 90
        assert ms.item_total == 7
        assert ms.team_label is None

    def test_text_only_page(self):
        html = """
        <html><body>
          <div class="usage"><span>Tasks used</span> <b>450 / 750</b></div>
          <main><table><tbody>
            <tr><td>Lead sync</td><td class="status">On</td></tr>
            <tr><td>Invoices</td><td class="status">Error</td></tr>
          </tbody></table></main>
        </body></html>
        """
        ms = _extract(html)
        assert ms.usage_count == 450
        assert ms.usage_limit == 750
        assert ms.item_total == 2
        assert ms.items_in_error_state == 1
        assert ms.items_paused == 0

    def test_one_failing_field_does_not_blank_the_rest(self, zapier_html):
        with patch("flowhealth.sources.base.count_by_category", side_effect=RuntimeError("boom")):
            ms = _extract(zapier_html)
        assert ms.usage_count == 1234
        assert ms.item_total == 15
        assert ms.items_in_error_state is None
        assert ms.items_paused is None


def _zap_rows(statuses, row_class="ZapRow"):
    return "\n".join(
        f'<div class="{row_class}"><span>Zap {i}</span>'
        f'<div class="status-cell"><span class="status-badge">{status}</span></div></div>'
        for i, status in enumerate(statuses, start=1)
    )


class TestStatusPerRow:
    def test_nested_status_wrappers_count_once(self):
        html = f"<html><body><main>{_zap_rows(['Error', 'On', 'On'])}</main></body></html>"
        ms = _extract(html)
        assert ms.item_total == 3
        assert ms.items_in_error_state == 1
        assert ms.items_paused == 0

    def test_status_filter_bar_is_not_an_item(self):
        html = f"""
        <html><body><main>
          <div class="status-filters"><button>Error</button><button>Paused</button></div>
          {_zap_rows(['Error', 'On', 'On'], row_class="zap-row")}
        </main></body></html>
        """
        ms = _extract(html)
        assert ms.item_total == 3
        assert ms.items_in_error_state == 1
        assert ms.items_paused == 0

    def test_counts_never_exceed_item_total(self):
        html = f"<html><body><main>{_zap_rows(['Error', 'Paused', 'Error', 'Off'])}</main></body></html>"
        ms = _extract(html)
        assert ms.items_in_error_state + ms.items_paused <= ms.item_total
        assert ms.items_in_error_state == 2
        assert ms.items_paused == 2
