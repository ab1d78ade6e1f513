"""Count workflow items by status category.

A category ("error", "paused", ...) maps to a set of synonym terms. The
counting strategies are tried in trust order and the first one that finds
anything for the category as a whole is used:

  1. structured status attributes equal to a synonym
     (data-status="paused", data-testid="zap-status-paused")
  2. accessible labels containing a synonym (aria-label on status elements)
  3. status-element text or class names containing a synonym as a word
  4. for on/off categories only, switch and checkbox checked state

Strategies are never summed: the same item is typically visible to several
of them. Within one strategy an item matched by two synonyms counts once.

When the caller already resolved the item rows, every match is keyed by the
row that contains it and matches outside all rows (filter bars, banners) are
dropped, so a count can never exceed the number of rows. Without rows the
profile's item_selector is used to find the enclosing item.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag

from flowhealth.locators import closest, select_all

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusProfile:
    """Per-platform markup hints for status counting."""

    testid_prefix: str
    item_selector: str
    status_selectors: tuple[str, ...] = (
        '[data-testid*="status"]',
        '[class*="status" i]',
        '[role="status"]',
    )


@dataclass(frozen=True)
class StatusCategory:
    name: str
    synonyms: tuple[str, ...]
    # True/False for categories a toggle can express (on / off); None otherwise.
    toggle_state: bool | None = None


DEFAULT_PROFILE = StatusProfile(
    testid_prefix="status-",
    item_selector='tr, [role="listitem"]',
)


def _quote(term: str) -> str:
    return term.replace("\\", "\\\\").replace('"', '\\"')


def _term_pattern(synonyms: tuple[str, ...]) -> re.Pattern:
    alternatives = "|".join(re.escape(t.lower()) for t in synonyms if t)
    return re.compile(rf"(?<![a-z0-9])(?:{alternatives})(?![a-z0-9])")


def _item_key(element: Tag, profile: StatusProfile, item_ids: set[int] | None) -> int | None:
    if item_ids is None:
        item = closest(element, profile.item_selector)
        return id(item if item is not None else element)
    node = element
    while node is not None:
        if id(node) in item_ids:
            return id(node)
        node = node.parent
    return None


def _inside_item(element: Tag, profile: StatusProfile, item_ids: set[int] | None) -> bool:
    if item_ids is None:
        return closest(element, profile.item_selector) is not None
    return _item_key(element, profile, item_ids) is not None


def _count_items(elements, profile: StatusProfile, item_ids: set[int] | None) -> int:
    keys = {_item_key(el, profile, item_ids) for el in elements}
    keys.discard(None)
    return len(keys)


def _by_structured_attribute(document, synonyms, profile) -> list[Tag]:
    found: list[Tag] = []
    for term in synonyms:
        quoted = _quote(term)
        for selector in (
            f'[data-testid="{_quote(profile.testid_prefix)}{quoted}"]',
            f'[data-status="{quoted}" i]',
        ):
            found.extend(select_all(document, selector))
    return found


def _by_accessible_label(document, synonyms, profile) -> list[Tag]:
    pattern = _term_pattern(synonyms)
    found: list[Tag] = []
    for selector in ('[role="status"][aria-label]',) + tuple(
        f"{s}[aria-label]" for s in profile.status_selectors
    ):
        for el in select_all(document, selector):
            if pattern.search(el.get("aria-label", "").lower()):
                found.append(el)
    return found


def _by_text_or_class(document, synonyms, profile, item_ids) -> list[Tag]:
    pattern = _term_pattern(synonyms)
    found: list[Tag] = []
    for selector in profile.status_selectors:
        for el in select_all(document, selector):
            classes = el.get("class") or []
            haystack = " ".join(
                [el.get_text(" ", strip=True), el.get("aria-label", ""), " ".join(classes)]
            ).lower()
            if pattern.search(haystack):
                found.append(el)
    # Bare class-name indicators (error icons etc.) only count inside an item row.
    for term in synonyms:
        if " " in term:
            continue
        for el in select_all(document, f'[class*="{_quote(term)}" i]'):
            if not _inside_item(el, profile, item_ids):
                continue
            classes = " ".join(el.get("class") or []).lower()
            if pattern.search(classes):
                found.append(el)
    return found


def _by_toggle_state(document, toggle_state: bool) -> list[Tag]:
    if toggle_state:
        selectors = ('[role="switch"][aria-checked="true"]', 'input[type="checkbox"]:checked')
    else:
        selectors = ('[role="switch"][aria-checked="false"]', 'input[type="checkbox"]:not(:checked)')
    for selector in selectors:
        elements = select_all(document, selector)
        if elements:
            return elements
    return []


def count_by_category(
    document: BeautifulSoup | Tag,
    category: StatusCategory,
    profile: StatusProfile = DEFAULT_PROFILE,
    items: list[Tag] | None = None,
) -> int:
    """Number of distinct items in the given status category (0 if none found).

    Pass the resolved item rows as `items` to count each row at most once.
    """
    item_ids = {id(item) for item in items} if items else None
    synonyms = tuple(t.lower() for t in category.synonyms if t)
    if not synonyms:
        return 0

    strategies = [
        ("structured attribute", lambda: _by_structured_attribute(document, synonyms, profile)),
        ("accessible label", lambda: _by_accessible_label(document, synonyms, profile)),
        ("text or class", lambda: _by_text_or_class(document, synonyms, profile, item_ids)),
    ]
    if category.toggle_state is not None:
        strategies.append(("toggle state", lambda: _by_toggle_state(document, category.toggle_state)))

    for name, strategy in strategies:
        count = _count_items(strategy(), profile, item_ids)
        if count > 0:
            logger.debug("status %s: %d item(s) via %s", category.name, count, name)
            return count
    return 0
