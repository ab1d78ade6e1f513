"""Make.com dashboard extractor (operations, scenarios)."""

from __future__ import annotations

from flowhealth.locators import ValueReader, chain, css, phrase
from flowhealth.metrics import Platform
from flowhealth.sources.base import ChainExtractor
from flowhealth.status_counter import StatusCategory, StatusProfile

PLAN_NAMES = ("Free", "Core", "Pro", "Teams", "Enterprise")

USAGE_CHAIN = chain(
    "make.operations_used",
    css("testid operations-used", '[data-testid="operations-used"]'),
    css("testid ops-used", '[data-testid="ops-used"]'),
    css("testid operations-count", '[data-testid="operations-count"]'),
    css("aria operations used", '[aria-label*="operation" i][aria-label*="used" i]'),
    css("aria operations used exact", '[aria-label*="operations used" i]'),
    phrase("label operations ratio", "operations", read=ValueReader.RATIO_USED),
    phrase("near label operations", "operations", read=ValueReader.LARGEST_NUMBER),
    css(
        "operations progressbar value",
        '[role="progressbar"][aria-label*="operation" i]',
        read=ValueReader.ATTRIBUTE,
        attribute="aria-valuenow",
    ),
)

LIMIT_CHAIN = chain(
    "make.operations_limit",
    css("testid operations-limit", '[data-testid="operations-limit"]'),
    css("testid ops-limit", '[data-testid="ops-limit"]'),
    css("testid operations-quota", '[data-testid="operations-quota"]'),
    css("aria operations limit", '[aria-label*="operation" i][aria-label*="limit" i]'),
    css("aria operations limit exact", '[aria-label*="operations limit" i]'),
    css("ratio in usage element", '[data-testid="operations-used"]', read=ValueReader.RATIO_LIMIT),
    phrase("ratio near operations", "operations", read=ValueReader.RATIO_LIMIT),
    phrase("near label operations limit", "operations limit", read=ValueReader.LARGEST_NUMBER),
    css(
        "operations progressbar max",
        '[role="progressbar"][aria-label*="operation" i]',
        read=ValueReader.ATTRIBUTE,
        attribute="aria-valuemax",
    ),
)

ITEM_CHAIN = chain(
    "make.scenario_rows",
    css("testid scenario-row", '[data-testid="scenario-row"]'),
    css("testid scenario-item", '[data-testid="scenario-item"]'),
    css("testid scenario-card", '[data-testid="scenario-card"]'),
    css("testid scenario-list children", '[data-testid*="scenario-list"] > *'),
    css("aria scenario table rows", 'table[aria-label*="scenario" i] tbody tr'),
    css("aria scenario list items", '[role="list"][aria-label*="scenario" i] [role="listitem"]'),
    css("aria scenario listitem", '[role="listitem"][aria-label*="scenario" i]'),
    css("class ScenarioRow", '[class*="ScenarioRow"]'),
    css("class scenario-row", '[class*="scenario-row"]'),
    css("class scenarioRow", '[class*="scenarioRow"]'),
    css("class ScenarioCard", '[class*="ScenarioCard"]'),
    css("main table rows", "main table tbody tr"),
    css("main list children", 'main [role="list"] > div'),
)

ITEM_COUNT_CHAIN = chain(
    "make.scenario_count",
    css("testid scenario-count", '[data-testid="scenario-count"]'),
    css("aria total scenarios", '[aria-label*="total scenarios" i]'),
)

PLAN_CHAIN = chain(
    "make.plan",
    css("testid plan-name", '[data-testid="plan-name"]'),
    css("testid current-plan", '[data-testid="current-plan"]'),
    css("testid plan-badge", '[data-testid="plan-badge"]'),
    css("aria plan", '[aria-label*="plan" i]'),
    phrase("known plan near label", "plan", read=ValueReader.CHOICE, choices=PLAN_NAMES),
)

TEAM_CHAIN = chain(
    "make.team",
    css("testid team-name", '[data-testid="team-name"]'),
    css("testid organization-name", '[data-testid="organization-name"]'),
    css("aria team", '[aria-label*="team" i]'),
    css("aria organization", '[aria-label*="organization" i]'),
)

STATUS_PROFILE = StatusProfile(
    testid_prefix="scenario-status-",
    item_selector=(
        '[data-testid="scenario-row"], [data-testid="scenario-item"], [data-testid="scenario-card"], '
        'tr, [role="listitem"]'
    ),
    status_selectors=(
        '[data-testid*="status"]',
        '[class*="status" i]',
        '[role="status"]',
        ".imt-toggle",
        '[class*="toggle" i]',
    ),
)

ACTIVE = StatusCategory("active", ("active", "on", "running", "enabled", "scheduling"), toggle_state=True)
ERROR = StatusCategory("error", ("error", "failed", "broken", "warning"))
INACTIVE = StatusCategory("inactive", ("inactive", "off", "disabled", "stopped", "paused"), toggle_state=False)


class MakeExtractor(ChainExtractor):
    platform = Platform.MAKE
    usage_chain = USAGE_CHAIN
    limit_chain = LIMIT_CHAIN
    item_chain = ITEM_CHAIN
    item_count_chain = ITEM_COUNT_CHAIN
    plan_chain = PLAN_CHAIN
    team_chain = TEAM_CHAIN
    status_profile = STATUS_PROFILE
    status_fields = {
        "items_active": ACTIVE,
        "items_in_error_state": ERROR,
        "items_inactive": INACTIVE,
    }
