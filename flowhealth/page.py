"""The page an extractor is embedded in: current URL and markup.

Reads are snapshots: snapshot() parses the markup as it is right now, and
the page may change again before the next read. Mutation listeners run
synchronously and must stay brief (flip state or re-arm a controller,
never extract inline).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

MutationListener = Callable[[], None]


class Page:
    def __init__(self, url: str | None, html: str = ""):
        self.url = url
        self.html = html
        self._listeners: list[MutationListener] = []

    @classmethod
    def from_file(cls, path: str | Path, url: str | None = None) -> Page:
        path = Path(path)
        return cls(url=url or path.resolve().as_uri(), html=path.read_text(encoding="utf-8"))

    def snapshot(self) -> BeautifulSoup:
        return BeautifulSoup(self.html, "html.parser")

    def add_mutation_listener(self, listener: MutationListener) -> None:
        self._listeners.append(listener)

    def remove_mutation_listener(self, listener: MutationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def mutate(self, html: str) -> None:
        """The page's own scripts re-rendered part of the document."""
        self.html = html
        self._notify()

    def navigate(self, url: str, html: str | None = None) -> None:
        """Client-side route change: the URL changes without a reload."""
        self.url = url
        if html is not None:
            self.html = html
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Mutation listener failed")
