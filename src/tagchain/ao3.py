"""AO3 client for freeform tag autocomplete and co-occurrence counts.

AO3 has no public API for either lookup. Autocomplete is the JSON endpoint the
site's own tag fields use; co-occurrence is scraped from the "N Found" heading
of a work search that ANDs all given freeform tags together. That heading is
the fragile part, so it lives in parse_found_count() and nowhere else.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Sequence
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from tagchain.errors import MalformedQuery, RateLimited, TransportError, UpstreamError

logger = logging.getLogger(__name__)

AO3_BASE_URL = "https://archiveofourown.org"
USER_AGENT = "Mozilla/5.0 (compatible; TagChainGame/1.0)"
REQUEST_TIMEOUT = 15.0

FOUND_PATTERN = re.compile(r"(\d[\d,]*)\s*Found", re.IGNORECASE)


@dataclass(frozen=True)
class CooccurrenceCount:
    """Number of works tagged with every tag in a set.

    parsed is False when the search page had no recognizable count and the
    value defaulted to 0.
    """

    count: int
    parsed: bool = True


def parse_found_count(html: str) -> Optional[int]:
    """Extract the "<N> Found" result count from an AO3 search page.

    Checks the results heading first, then the whole page text.

    Returns:
        The count with thousands separators stripped, or None if absent.
    """
    soup = BeautifulSoup(html, "html.parser")

    candidates = [h.get_text(" ", strip=True) for h in soup.select("h3.heading")]
    candidates.append(soup.get_text(" ", strip=True))

    for text in candidates:
        match = FOUND_PATTERN.search(text)
        if match:
            return int(match.group(1).replace(",", ""))
    return None


class AO3Client:
    """Client for the AO3 tag autocomplete and work search pages."""

    def __init__(
        self,
        base_url: str = AO3_BASE_URL,
        user_agent: str = USER_AGENT,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: AO3 root URL.
            user_agent: User-Agent header sent with every request.
            timeout: Per-request timeout in seconds.
            session: Optional pre-built session (tests pass a fake here).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def _get(self, url: str, accept: str, **kwargs: Any) -> requests.Response:
        try:
            return self.session.get(
                url, headers={"Accept": accept}, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.warning(f"Request to {url} failed: {e}")
            raise TransportError(str(e)) from e

    @staticmethod
    def _check_status(response: requests.Response) -> None:
        if response.status_code == 429:
            logger.warning("AO3 rate limit hit")
            raise RateLimited()
        if not 200 <= response.status_code < 300:
            logger.warning(f"AO3 returned HTTP {response.status_code}")
            raise UpstreamError(response.status_code)

    def lookup_suggestions(self, term: str) -> list[dict[str, Any]]:
        """Look up freeform tags matching a search term.

        Args:
            term: Partial tag name.

        Returns:
            AO3's suggestion list, [{"id": ..., "name": ...}, ...], unmodified.

        Raises:
            RateLimited, UpstreamError, TransportError
        """
        url = f"{self.base_url}/autocomplete/freeform"
        logger.debug(f"Autocomplete lookup for {term!r}")

        response = self._get(url, "application/json", params={"term": term})
        self._check_status(response)

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from AO3: {e}") from e

    def lookup_cooccurrence_count(self, tags: Sequence[str]) -> CooccurrenceCount:
        """Count works tagged with all of the given freeform tags.

        Follows at most one redirect.

        Args:
            tags: Two or more tag names.

        Returns:
            CooccurrenceCount; parsed=False if the page had no count.

        Raises:
            MalformedQuery, RateLimited, UpstreamError, TransportError
        """
        if len(tags) < 2:
            raise MalformedQuery("need_at_least_2_tags")

        url = f"{self.base_url}/works/search"
        params = {"work_search[freeform_names]": ",".join(tags)}
        logger.debug(f"Co-occurrence lookup for {list(tags)}")

        response = self._get(url, "text/html", params=params, allow_redirects=False)

        location = response.headers.get("Location")
        if 300 <= response.status_code < 400 and location:
            target = urljoin(self.base_url + "/", location)
            logger.debug(f"Following redirect to {target}")
            response = self._get(target, "text/html", allow_redirects=False)

        self._check_status(response)

        count = parse_found_count(response.text)
        if count is None:
            logger.warning(
                f"No result count found on AO3 search page for {list(tags)}; treating as 0"
            )
            return CooccurrenceCount(0, parsed=False)
        return CooccurrenceCount(count)
