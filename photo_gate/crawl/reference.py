"""Resolve landmark names to reference image URLs, with a name-keyed cache."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, Dict, Protocol, TypeVar, Union

import requests

from ..errors import InvalidInput, RetryableHTTPStatusError
from ..io.models import LookupStatus, ReferenceLookup

logger = logging.getLogger(__name__)


class _NotFound:
    """Cache marker for names known to have no reference image."""

    _instance: "_NotFound | None" = None

    def __new__(cls) -> "_NotFound":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = _NotFound()

CacheValue = Union[str, _NotFound]
T = TypeVar("T")

# Errors a single lookup step may raise that mean "no answer from this step".
_STEP_ERRORS = (
    requests.RequestException,
    RetryableHTTPStatusError,
    ValueError,
    KeyError,
    TypeError,
)


class EncyclopediaClient(Protocol):
    def lookup_by_title(self, title: str) -> str | None: ...

    def search_best_match(self, query: str) -> str | None: ...


class ReferenceCache(Protocol):
    def get(self, name: str) -> CacheValue | None: ...

    def put(self, name: str, value: CacheValue) -> None: ...

    def has(self, name: str) -> bool: ...


class InMemoryReferenceCache:
    """Unbounded process-lifetime cache keyed by the exact landmark name."""

    def __init__(self) -> None:
        self._store: Dict[str, CacheValue] = {}
        self._lock = Lock()

    def get(self, name: str) -> CacheValue | None:
        with self._lock:
            return self._store.get(name)

    def put(self, name: str, value: CacheValue) -> None:
        with self._lock:
            self._store[name] = value

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._store

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


class ReferenceResolver:
    """Find a reference thumbnail for a landmark via title lookup, then search.

    Network failures never escape :meth:`resolve`; they are logged and treated
    as "not found". Only a blank name raises, and it does so before any
    request is made. Concurrent calls for the same uncached name may each hit
    the network.
    """

    def __init__(
        self,
        client: EncyclopediaClient,
        cache: ReferenceCache | None = None,
    ) -> None:
        self.client = client
        self.cache: ReferenceCache = cache if cache is not None else InMemoryReferenceCache()

    def resolve(self, name: str) -> ReferenceLookup:
        """Return the reference lookup outcome for landmark *name*."""
        if not isinstance(name, str) or not name.strip():
            raise InvalidInput("Landmark name must be a non-empty string")

        if self.cache.has(name):
            cached = self.cache.get(name)
            if isinstance(cached, str):
                return ReferenceLookup(name, LookupStatus.FOUND, url=cached, cached=True)
            return ReferenceLookup(name, LookupStatus.NOT_FOUND, cached=True)

        had_error = False

        url, failed = self._step("title lookup", name, self.client.lookup_by_title, name)
        had_error = had_error or failed
        if url:
            self.cache.put(name, url)
            return ReferenceLookup(name, LookupStatus.FOUND, url=url, title=name)

        title, failed = self._step("search", name, self.client.search_best_match, name)
        had_error = had_error or failed
        if title:
            url, failed = self._step(
                "search-hit lookup", name, self.client.lookup_by_title, title
            )
            had_error = had_error or failed
            if url:
                self.cache.put(name, url)
                return ReferenceLookup(name, LookupStatus.FOUND, url=url, title=title)

        if had_error:
            logger.info("No reference for %r after lookup errors; not caching", name)
        else:
            self.cache.put(name, NOT_FOUND)
            logger.info("No reference image for %r", name)
        return ReferenceLookup(name, LookupStatus.NOT_FOUND)

    @staticmethod
    def _step(
        label: str, name: str, call: Callable[[str], T | None], arg: str
    ) -> tuple[T | None, bool]:
        try:
            return call(arg), False
        except _STEP_ERRORS as exc:
            logger.warning("Reference %s failed for %r: %s", label, name, exc)
            return None, True
