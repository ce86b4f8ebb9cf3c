"""HTTP fetching utilities shared by the reference lookup and image decoder."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Mapping

import requests
from requests import Session
from tenacity import (  # type: ignore[import-untyped]
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import DEFAULT_CONFIG
from ..errors import RetryableHTTPStatusError

logger = logging.getLogger(__name__)

_session_lock = Lock()
_session: Session | None = None


def get_session() -> Session:
    """Return a shared requests session configured with default headers."""
    global _session
    if _session is None:
        with _session_lock:
            if _session is None:
                session = requests.Session()
                session.headers.update(
                    {
                        "User-Agent": DEFAULT_CONFIG.user_agent,
                        "Accept-Language": "en-US,en;q=0.5",
                    }
                )
                _session = session
    return _session


_retryer = Retrying(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=5),
    retry=retry_if_exception_type(
        (requests.Timeout, requests.ConnectionError, RetryableHTTPStatusError)
    ),
    before_sleep=before_sleep_log(logger, logging.DEBUG),
    reraise=True,
)


def _get_once(
    session: Session,
    url: str,
    params: Mapping[str, Any] | None,
    headers: Mapping[str, str] | None,
    timeout: float,
) -> requests.Response:
    """Issue a single GET and raise for non-2xx responses."""
    response = session.get(
        url, params=params, headers=headers, timeout=timeout, allow_redirects=True
    )
    if 500 <= response.status_code < 600:
        raise RetryableHTTPStatusError(response.status_code)
    response.raise_for_status()
    return response


def get_with_retries(
    url: str,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
    timeout: float | None = None,
    session: Session | None = None,
) -> requests.Response:
    """GET *url*, retrying timeouts, connection errors and 5xx responses.

    Errors are not swallowed here: after the final attempt the underlying
    ``requests`` exception (or :class:`RetryableHTTPStatusError`) propagates so
    that each caller can decide how to degrade.
    """
    active = session or get_session()
    limit = DEFAULT_CONFIG.http_timeout if timeout is None else timeout
    return _retryer(lambda: _get_once(active, url, params, headers, limit))


def fetch_json(
    url: str,
    params: Mapping[str, Any] | None = None,
    timeout: float | None = None,
    session: Session | None = None,
) -> dict[str, Any]:
    """Return the decoded JSON object served at *url*."""
    response = get_with_retries(url, params=params, timeout=timeout, session=session)
    payload = response.json()
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object from {url}")
    return payload


def fetch_bytes(
    url: str,
    timeout: float | None = None,
    session: Session | None = None,
) -> bytes:
    """Return the raw body served at *url*."""
    response = get_with_retries(
        url,
        headers={"Accept": "image/*,*/*;q=0.8"},
        timeout=timeout,
        session=session,
    )
    return response.content


def ensure_http_scheme(url: str) -> str:
    """Ensure *url* is qualified with an HTTP scheme, defaulting to https."""
    cleaned = url.strip()
    if not cleaned:
        return cleaned
    if cleaned.startswith(("http://", "https://")):
        return cleaned
    if cleaned.startswith("//"):
        return f"https:{cleaned}"
    return f"https://{cleaned}"
