"""Client for the Tag Chain proxy, used by the game front end.

Translates the proxy's JSON error bodies back into the exceptions in
tagchain.errors and memoizes successful lookups for the life of the client.
"""

import asyncio
import logging
import threading
from typing import Any, Optional, Sequence

import requests

from tagchain.ao3 import CooccurrenceCount
from tagchain.errors import (
    MalformedQuery,
    RateLimited,
    TransportError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

MIN_TERM_LENGTH = 2


class TagChainAPI:
    """Talks to /api/autocomplete and /api/cooccurrence on a proxy."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Proxy root, e.g. http://127.0.0.1:3000
            timeout: Per-request timeout in seconds.
            session: Optional pre-built session.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

        # Lookups run on worker threads, so the memo is lock-guarded
        self._cache: dict[str, Any] = {}
        self._lock = threading.Lock()

    def _cached(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._cache.get(key)

    def _store(self, key: str, value: Any) -> None:
        with self._lock:
            self._cache[key] = value

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def _request(self, path: str, params: dict[str, str]) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Proxy request to {url} failed: {e}")
            raise TransportError(str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = None

        error = data.get("error") if isinstance(data, dict) else None

        if response.status_code == 429 or error == "rate_limited":
            raise RateLimited()
        if response.status_code == 400:
            raise MalformedQuery(error or "bad_request")
        if error == "ao3_error":
            raise UpstreamError(data.get("status"))
        if error == "fetch_failed":
            raise TransportError(data.get("message") or "fetch failed")
        if not response.ok:
            raise UpstreamError(response.status_code)
        if data is None:
            raise TransportError(f"Invalid JSON from proxy at {url}")
        return data

    def autocomplete(self, term: str) -> list[dict[str, Any]]:
        """Get freeform tag suggestions for a partial name.

        Args:
            term: What the player has typed so far.

        Returns:
            List of {"id", "name"} dicts; empty for terms under 2 characters.
        """
        if not term or len(term) < MIN_TERM_LENGTH:
            return []

        key = f"ac:{term.lower()}"
        cached = self._cached(key)
        if cached is not None:
            return cached

        results = self._request("/api/autocomplete", {"term": term})
        self._store(key, results)
        return results

    def cooccurrence(self, tags: Sequence[str]) -> CooccurrenceCount:
        """Count works carrying every one of the given tags.

        Args:
            tags: Two or more tag names.

        Returns:
            CooccurrenceCount from the proxy.
        """
        key = "co:" + "|||".join(sorted(tags))
        cached = self._cached(key)
        if cached is not None:
            return cached

        data = self._request("/api/cooccurrence", {"tags": ",".join(tags)})
        result = CooccurrenceCount(
            count=int(data.get("count") or 0),
            parsed=bool(data.get("parsed", True)),
        )
        # An unreadable page may read fine a moment later
        if result.parsed:
            self._store(key, result)
        return result

    async def autocomplete_async(self, term: str) -> list[dict[str, Any]]:
        """autocomplete() on a worker thread, for use from the event loop."""
        return await asyncio.to_thread(self.autocomplete, term)

    async def cooccurrence_async(self, tags: Sequence[str]) -> CooccurrenceCount:
        """cooccurrence() on a worker thread, for use from the event loop."""
        return await asyncio.to_thread(self.cooccurrence, list(tags))
