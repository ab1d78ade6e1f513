"""Ordered fallback lookups over a page snapshot.

A StrategyChain lists LookupDescriptors from most to least trusted:
machine-readable hooks (data-testid), then accessibility attributes, then
structural patterns, then free-text phrases. The first descriptor that
produces a non-empty value wins and the rest are never consulted, even if a
later one would be more precise.

Page markup is not under our control, so a descriptor that cannot be
evaluated (bad selector, unsupported pseudo-class) is skipped rather than
failing the chain.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

import soupsieve as sv
from bs4 import BeautifulSoup, Tag
from bs4.element import PreformattedString

from flowhealth.parsing import extract_ratio_pattern, largest_number

logger = logging.getLogger(__name__)

BLOCK_SELECTOR = "div, section, li, tr, td"
_SKIP_TEXT_PARENTS = {"script", "style", "noscript", "template"}

# Raised by soupsieve for malformed or unsupported selectors.
LOCATOR_ERRORS = (sv.SelectorSyntaxError, ValueError, NotImplementedError, TypeError)


class LocatorKind(str, Enum):
    SELECTOR = "selector"
    PHRASE = "phrase"


class ValueReader(str, Enum):
    TEXT = "text"
    ATTRIBUTE = "attribute"
    LARGEST_NUMBER = "largest_number"
    RATIO_USED = "ratio_used"
    RATIO_LIMIT = "ratio_limit"
    CHOICE = "choice"


@dataclass(frozen=True)
class LookupDescriptor:
    name: str
    kind: LocatorKind
    pattern: str
    read: ValueReader = ValueReader.TEXT
    attribute: str | None = None
    choices: tuple[str, ...] = ()
    exact: bool = False


@dataclass(frozen=True)
class StrategyChain:
    metric: str
    descriptors: tuple[LookupDescriptor, ...]

    def __iter__(self):
        return iter(self.descriptors)

    def __len__(self) -> int:
        return len(self.descriptors)


@dataclass(frozen=True)
class Match:
    descriptor: LookupDescriptor
    element: Tag
    value: str


@dataclass(frozen=True)
class MatchAll:
    descriptor: LookupDescriptor
    elements: list[Tag] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.elements)


# --- Descriptor constructors used by the per-platform chain tables ---

def css(name: str, pattern: str, **kwargs) -> LookupDescriptor:
    return LookupDescriptor(name=name, kind=LocatorKind.SELECTOR, pattern=pattern, **kwargs)


def phrase(name: str, pattern: str, **kwargs) -> LookupDescriptor:
    return LookupDescriptor(name=name, kind=LocatorKind.PHRASE, pattern=pattern, **kwargs)


def chain(metric: str, *descriptors: LookupDescriptor) -> StrategyChain:
    return StrategyChain(metric=metric, descriptors=tuple(descriptors))


# --- Matching primitives ---

def _root(document: BeautifulSoup | Tag) -> Tag:
    body = document.find("body") if isinstance(document, BeautifulSoup) else None
    return body or document


def select_one(document: BeautifulSoup | Tag, selector: str) -> Tag | None:
    """select_one that treats a malformed selector as a local failure."""
    try:
        return sv.select_one(selector, document)
    except LOCATOR_ERRORS as e:
        logger.debug("Skipping unusable selector %r: %s", selector, e)
        return None


def select_all(document: BeautifulSoup | Tag, selector: str) -> list[Tag]:
    try:
        return sv.select(selector, document)
    except LOCATOR_ERRORS as e:
        logger.debug("Skipping unusable selector %r: %s", selector, e)
        return []


def closest(element: Tag, selector: str) -> Tag | None:
    """Nearest ancestor-or-self matching selector, or None."""
    try:
        return sv.closest(selector, element)
    except LOCATOR_ERRORS as e:
        logger.debug("Skipping unusable selector %r: %s", selector, e)
        return None


def closest_block(element: Tag) -> Tag:
    """The enclosing layout block of an element, falling back to its parent."""
    block = closest(element, BLOCK_SELECTOR)
    if block is not None:
        return block
    return element.parent if isinstance(element.parent, Tag) else element


def element_text(element: Tag | None) -> str:
    if element is None:
        return ""
    return element.get_text(" ", strip=True)


def _visible_strings(root: Tag):
    for node in root.find_all(string=True):
        if isinstance(node, PreformattedString):
            continue
        parent = node.parent
        if parent is None or parent.name in _SKIP_TEXT_PARENTS:
            continue
        yield node


def find_by_text(document: BeautifulSoup | Tag, text: str, exact: bool = False) -> Tag | None:
    """Return the parent element of the first text node containing text.

    Matching is case-insensitive unless exact is set, in which case the
    stripped text node must equal text.
    """
    if not text:
        return None
    needle = text.lower()
    for node in _visible_strings(_root(document)):
        content = str(node)
        matched = content.strip() == text if exact else needle in content.lower()
        if matched:
            return node.parent
    return None


def find_all_by_text(document: BeautifulSoup | Tag, text: str, exact: bool = False) -> list[Tag]:
    if not text:
        return []
    needle = text.lower()
    found: list[Tag] = []
    seen: set[int] = set()
    for node in _visible_strings(_root(document)):
        content = str(node)
        matched = content.strip() == text if exact else needle in content.lower()
        if matched and id(node.parent) not in seen:
            seen.add(id(node.parent))
            found.append(node.parent)
    return found


def find_value_near_label(document: BeautifulSoup | Tag, label: str) -> int | None:
    """Largest number in the block around the first occurrence of label."""
    element = find_by_text(document, label)
    if element is None:
        return None
    return largest_number(element_text(closest_block(element)))


# --- Resolution ---

def _locate(document: BeautifulSoup | Tag, descriptor: LookupDescriptor) -> Tag | None:
    if descriptor.kind is LocatorKind.SELECTOR:
        return select_one(document, descriptor.pattern)
    element = find_by_text(document, descriptor.pattern, exact=descriptor.exact)
    if element is None:
        return None
    # A phrase only names the label; its value lives somewhere in the block.
    return closest_block(element)


def _read(element: Tag, descriptor: LookupDescriptor) -> str:
    reader = descriptor.read
    if reader is ValueReader.ATTRIBUTE:
        raw = element.get(descriptor.attribute or "")
        if isinstance(raw, list):
            raw = " ".join(raw)
        return (raw or "").strip()

    text = element_text(element)
    if reader is ValueReader.TEXT:
        return text
    if reader is ValueReader.LARGEST_NUMBER:
        value = largest_number(text)
        return "" if value is None else str(value)
    if reader in (ValueReader.RATIO_USED, ValueReader.RATIO_LIMIT):
        ratio = extract_ratio_pattern(text)
        if ratio is None:
            return ""
        return str(ratio.used if reader is ValueReader.RATIO_USED else ratio.limit)
    if reader is ValueReader.CHOICE:
        for choice in descriptor.choices:
            if choice in text:
                return choice
        return ""
    return ""


def resolve(document: BeautifulSoup | Tag, strategy: StrategyChain) -> Match | None:
    """Evaluate a chain in order and return the first non-empty match."""
    for descriptor in strategy:
        element = _locate(document, descriptor)
        if element is None:
            continue
        value = _read(element, descriptor)
        if not value:
            continue
        logger.debug("%s: matched %s (%s)", strategy.metric, descriptor.name, descriptor.pattern)
        return Match(descriptor=descriptor, element=element, value=value)
    logger.debug("%s: no descriptor matched", strategy.metric)
    return None


def resolve_all(document: BeautifulSoup | Tag, strategy: StrategyChain) -> MatchAll | None:
    """Like resolve, but the first descriptor yielding a non-empty collection wins."""
    for descriptor in strategy:
        if descriptor.kind is LocatorKind.SELECTOR:
            elements = select_all(document, descriptor.pattern)
        else:
            elements = find_all_by_text(document, descriptor.pattern, exact=descriptor.exact)
        if elements:
            logger.debug(
                "%s: matched %d via %s (%s)",
                strategy.metric, len(elements), descriptor.name, descriptor.pattern,
            )
            return MatchAll(descriptor=descriptor, elements=elements)
    logger.debug("%s: no descriptor matched any elements", strategy.metric)
    return None
