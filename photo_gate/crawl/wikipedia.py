"""Wikipedia ``action=query`` client used to find landmark reference images."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from requests import Session

from ..config import DEFAULT_CONFIG, GateConfig
from .fetch import ensure_http_scheme, fetch_json

logger = logging.getLogger(__name__)


class WikipediaClient:
    """Thin wrapper over the two MediaWiki queries the resolver needs.

    Both methods let transport errors propagate; the resolver is responsible
    for downgrading them to a "not found" outcome.
    """

    def __init__(
        self,
        config: GateConfig = DEFAULT_CONFIG,
        session: Session | None = None,
    ) -> None:
        self.api_url = config.wikipedia_api_url
        self.thumbnail_size = config.thumbnail_size
        self.timeout = config.http_timeout
        self._session = session

    def lookup_by_title(self, title: str) -> str | None:
        """Return the page thumbnail URL for an exact *title*, if any."""
        params = {
            "action": "query",
            "titles": title,
            "prop": "pageimages",
            "pithumbsize": self.thumbnail_size,
            "format": "json",
        }
        payload = fetch_json(
            self.api_url, params=params, timeout=self.timeout, session=self._session
        )
        return _thumbnail_from_payload(payload)

    def search_best_match(self, query: str) -> str | None:
        """Return the canonical title of the top full-text search hit."""
        params = {
            "action": "query",
            "list": "search",
            "srsearch": query,
            "srlimit": 1,
            "format": "json",
        }
        payload = fetch_json(
            self.api_url, params=params, timeout=self.timeout, session=self._session
        )
        hits = (payload.get("query") or {}).get("search") or []
        if not hits:
            return None
        title = hits[0].get("title")
        logger.debug("Search for %r matched %r", query, title)
        return title if isinstance(title, str) and title.strip() else None


def _thumbnail_from_payload(payload: Mapping[str, Any]) -> str | None:
    pages = (payload.get("query") or {}).get("pages")
    if not isinstance(pages, Mapping) or not pages:
        return None
    page = next(iter(pages.values()))
    if not isinstance(page, Mapping):
        return None
    thumbnail = page.get("thumbnail") or {}
    source = thumbnail.get("source") if isinstance(thumbnail, Mapping) else None
    if not isinstance(source, str) or not source.strip():
        return None
    return ensure_http_scheme(source)
