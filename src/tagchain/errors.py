"""Tag Chain exception hierarchy.

Upstream failures carry the stable JSON shape the proxy returns for them, so
the same classes are used on both sides of the proxy.
"""

from typing import Any, Optional


class TagChainError(Exception):
    """Base class for all Tag Chain errors."""


class LookupFailure(TagChainError):
    """A lookup against AO3 (directly or through the proxy) failed."""

    error_code = "lookup_failed"
    http_status = 502

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error_code}


class RateLimited(LookupFailure):
    """AO3 answered with HTTP 429."""

    error_code = "rate_limited"
    http_status = 429

    def __init__(self, message: str = "AO3 rate limit hit"):
        super().__init__(message)


class UpstreamError(LookupFailure):
    """AO3 answered with an unexpected non-2xx status."""

    error_code = "ao3_error"

    def __init__(self, status: Optional[int]):
        super().__init__(f"AO3 returned HTTP {status}")
        self.status = status

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error_code, "status": self.status}


class TransportError(LookupFailure):
    """Network, DNS, timeout or decoding failure talking to AO3."""

    error_code = "fetch_failed"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error_code, "message": self.message}


class MalformedQuery(TagChainError):
    """Missing or insufficient query parameters at the proxy boundary."""

    http_status = 400

    def __init__(self, code: str):
        super().__init__(code)
        self.error_code = code

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error_code}


class GameStateError(TagChainError):
    """An operation was attempted in a game phase that does not allow it."""
