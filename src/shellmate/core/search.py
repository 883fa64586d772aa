"""Hand general knowledge queries to a web search."""

from __future__ import annotations

import webbrowser
from collections.abc import Callable
from urllib import parse as urllib_parse

from loguru import logger

SEARCH_URL = "https://www.google.com/search?q={query}"

UrlOpener = Callable[[str], object]


def build_search_url(query: str) -> str:
    return SEARCH_URL.format(query=urllib_parse.quote_plus(query.strip()))


class SearchHandler:
    """Opens a search page for a query and reports what happened."""

    def __init__(self, *, opener: UrlOpener | None = webbrowser.open, enabled: bool = True) -> None:
        self._opener = opener
        self._enabled = enabled

    def handle(self, query: str) -> str:
        url = build_search_url(query)
        if not self._enabled or self._opener is None:
            return f'Search the web for "{query}": {url}'
        try:
            self._opener(url)
        except Exception:
            # Browser launchers are platform specific; degrade to showing the link.
            logger.opt(exception=True).warning("search.open_failed url={}", url)
            return f'Search the web for "{query}": {url}'
        logger.info("search.opened url={}", url)
        return f'Opened Google search for: "{query}"'
