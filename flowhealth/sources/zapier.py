"""Zapier dashboard extractor.

Zapier is a React SPA. Each chain below starts with its data-testid hooks,
then aria attributes, then structural patterns, and ends with free-text
phrase lookups. Reorder a chain only when the live markup changes; the
order is the trust ranking.
"""

from __future__ import annotations

from flowhealth.locators import ValueReader, chain, css, phrase
from flowhealth.metrics import Platform
from flowhealth.sources.base import ChainExtractor
from flowhealth.status_counter import StatusCategory, StatusProfile

PLAN_NAMES = ("Free", "Starter", "Professional", "Team", "Company", "Enterprise")

USAGE_CHAIN = chain(
    "zapier.tasks_used",
    css("testid task-usage", '[data-testid="task-usage"]'),
    css("testid task-count", '[data-testid="task-count"]'),
    css("testid tasks-used", '[data-testid="tasks-used"]'),
    css("aria task usage", '[aria-label*="task" i][aria-label*="usage" i]'),
    css("aria tasks used", '[aria-label*="tasks used" i]'),
    phrase("label tasks used", "tasks used", read=ValueReader.RATIO_USED),
    phrase("near label tasks used", "tasks used", read=ValueReader.LARGEST_NUMBER),
    css(
        "usage bar progress",
        '.usage-bar [role="progressbar"]',
        read=ValueReader.ATTRIBUTE,
        attribute="aria-valuenow",
    ),
    css(
        "task progressbar value",
        '[role="progressbar"][aria-label*="task" i]',
        read=ValueReader.ATTRIBUTE,
        attribute="aria-valuenow",
    ),
)

LIMIT_CHAIN = chain(
    "zapier.task_limit",
    css("testid task-limit", '[data-testid="task-limit"]'),
    css("testid tasks-limit", '[data-testid="tasks-limit"]'),
    css("testid task-quota", '[data-testid="task-quota"]'),
    css("aria task limit", '[aria-label*="task" i][aria-label*="limit" i]'),
    css("aria task quota", '[aria-label*="task quota" i]'),
    css("ratio in usage element", '[data-testid="task-usage"]', read=ValueReader.RATIO_LIMIT),
    css(
        "ratio in aria usage element",
        '[aria-label*="task" i][aria-label*="usage" i]',
        read=ValueReader.RATIO_LIMIT,
    ),
    phrase("ratio near tasks", "tasks", read=ValueReader.RATIO_LIMIT),
    phrase("near label task limit", "task limit", read=ValueReader.LARGEST_NUMBER),
    css(
        "task progressbar max",
        '[role="progressbar"][aria-label*="task" i]',
        read=ValueReader.ATTRIBUTE,
        attribute="aria-valuemax",
    ),
)

ITEM_CHAIN = chain(
    "zapier.zap_rows",
    css("testid zap-row", '[data-testid="zap-row"]'),
    css("testid zap-list-item", '[data-testid="zap-list-item"]'),
    css("testid zap-card", '[data-testid="zap-card"]'),
    css("testid zap-item", '[data-testid*="zap-item"]'),
    css("aria zap table rows", 'table[aria-label*="zap" i] tbody tr'),
    css("aria zap list items", '[role="list"][aria-label*="zap" i] [role="listitem"]'),
    css("aria zap listitem", '[role="listitem"][aria-label*="zap" i]'),
    css("main table rows", "main table tbody tr"),
    css("main list children", 'main [role="list"] > div'),
    css("class ZapRow", '[class*="ZapRow"]'),
    css("class zap-row", '[class*="zap-row"]'),
    css("class zapRow", '[class*="zapRow"]'),
)

ITEM_COUNT_CHAIN = chain(
    "zapier.zap_count",
    css("testid zap-count", '[data-testid="zap-count"]'),
    css("aria total zaps", '[aria-label*="total zaps" i]'),
)

PLAN_CHAIN = chain(
    "zapier.plan",
    css("testid current-plan", '[data-testid="current-plan"]'),
    css("testid plan-name", '[data-testid="plan-name"]'),
    css("testid plan-badge", '[data-testid="plan-badge"]'),
    css("aria plan", '[aria-label*="plan" i]'),
    phrase("known plan near label", "plan", read=ValueReader.CHOICE, choices=PLAN_NAMES),
)

TEAM_CHAIN = chain(
    "zapier.team",
    css("testid team-name", '[data-testid="team-name"]'),
    css("testid account-name", '[data-testid="account-name"]'),
    css("aria team", '[aria-label*="team" i][aria-label*="name" i]'),
)

STATUS_PROFILE = StatusProfile(
    testid_prefix="zap-status-",
    item_selector=(
        '[data-testid="zap-row"], [data-testid="zap-list-item"], [data-testid="zap-card"], '
        'tr, [role="listitem"]'
    ),
)

ERROR = StatusCategory("error", ("error", "failed", "broken", "needs attention"))
PAUSED = StatusCategory("off", ("off", "paused", "disabled", "inactive", "stopped"), toggle_state=False)


class ZapierExtractor(ChainExtractor):
    platform = Platform.ZAPIER
    usage_chain = USAGE_CHAIN
    limit_chain = LIMIT_CHAIN
    item_chain = ITEM_CHAIN
    item_count_chain = ITEM_COUNT_CHAIN
    plan_chain = PLAN_CHAIN
    team_chain = TEAM_CHAIN
    status_profile = STATUS_PROFILE
    status_fields = {
        "items_in_error_state": ERROR,
        "items_paused": PAUSED,
    }
