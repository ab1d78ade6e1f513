import os
import sys

import pytest

# Add the repository root to the Python path so `flowhealth.*` imports resolve
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

# Keep a developer's .env from leaking into the config under test
for _name in [k for k in os.environ if k.startswith("FLOWHEALTH_")]:
    del os.environ[_name]


ZAPIER_URL = "https://zapier.com/app/zaps"
MAKE_URL = "https://eu1.make.com/organization/42/dashboard"


def _zap_row(index, status):
    return (
        f'<div data-testid="zap-row"><span class="zap-name">Sync job {index}</span>'
        f'<span data-testid="zap-status-{status}">{status.title()}</span></div>'
    )


def zapier_page(usage_text="1,234 of 10,000 tasks", statuses=None):
    """Zapier dashboard with 15 zaps: 2 in error, 3 switched off."""
    if statuses is None:
        statuses = ["error"] * 2 + ["off"] * 3 + ["on"] * 10
    rows = "\n".join(_zap_row(i, s) for i, s in enumerate(statuses, start=1))
    return f"""
    <html><body>
      <header>
        <span data-testid="team-name">Acme   Ops</span>
        <span data-testid="current-plan">Professional</span>
      </header>
      <main>
        <div data-testid="task-usage">{usage_text}</div>
        <section data-testid="zap-list">
          {rows}
        </section>
      </main>
    </body></html>
    """


MAKE_PAGE = """
<html><body>
  <div data-testid="organization-name">Acme</div>
  <span data-testid="plan-name">Core</span>
  <div data-testid="operations-used">4,000 / 10,000</div>
  <div data-testid="scenario-list">
    <div data-testid="scenario-row"><span data-status="active">Lead sync</span></div>
    <div data-testid="scenario-row"><span data-status="active">Invoices</span></div>
    <div data-testid="scenario-row"><span data-status="error">Slack alerts</span></div>
    <div data-testid="scenario-row"><span data-status="inactive">Old backup</span></div>
  </div>
</body></html>
"""

LOADING_PAGE = "<html><body><div id='root'><p>Loading...</p></div></body></html>"


class FakeTimer:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Deterministic stand-in for asyncio's call_later."""

    def __init__(self):
        self.now = 0.0
        self.timers = []
        self.delays = []

    def call_later(self, delay, callback):
        self.delays.append(delay)
        timer = FakeTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self):
        pending = self.pending
        if not pending:
            return False
        timer = min(pending, key=lambda t: t.when)
        self.now = timer.when
        timer.fired = True
        timer.callback()
        return True

    def run(self, limit=1000):
        steps = 0
        while steps < limit and self.advance():
            steps += 1
        return steps


@pytest.fixture
def fake_loop():
    return FakeLoop()


@pytest.fixture
def zapier_html():
    return zapier_page()


@pytest.fixture
def make_html():
    return MAKE_PAGE


@pytest.fixture
def loading_html():
    return LOADING_PAGE
