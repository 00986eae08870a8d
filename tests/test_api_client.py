"""Tests for TagChainAPI, the game's view of the proxy."""

import asyncio

import pytest

from tagchain.ao3 import CooccurrenceCount
from tagchain.api_client import TagChainAPI
from tagchain.errors import MalformedQuery, RateLimited, TransportError, UpstreamError


def _api(session):
    return TagChainAPI("http://proxy.test/", session=session)


class TestAutocomplete:
    def test_short_term_makes_no_request(self, session_with):
        session = session_with()
        assert _api(session).autocomplete("a") == []
        assert session.calls == []

    def test_returns_and_caches_results(self, session_with, fake_response):
        data = [{"id": "Angst", "name": "Angst"}]
        session = session_with(fake_response(200, data))
        api = _api(session)

        assert api.autocomplete("Ang") == data
        # Cached case-insensitively, so no second request is queued or made
        assert api.autocomplete("ang") == data
        assert len(session.calls) == 1

        url, kwargs = session.calls[0]
        assert url == "http://proxy.test/api/autocomplete"
        assert kwargs["params"] == {"term": "Ang"}

    def test_rate_limit_is_not_cached(self, session_with, fake_response):
        data = [{"id": "Angst", "name": "Angst"}]
        session = session_with(
            fake_response(429, {"error": "rate_limited"}),
            fake_response(200, data),
        )
        api = _api(session)

        with pytest.raises(RateLimited):
            api.autocomplete("angst")
        assert api.autocomplete("angst") == data
        assert len(session.calls) == 2

    def test_ao3_error(self, session_with, fake_response):
        api = _api(session_with(fake_response(502, {"error": "ao3_error", "status": 503})))
        with pytest.raises(UpstreamError) as exc_info:
            api.autocomplete("angst")
        assert exc_info.value.status == 503

    def test_fetch_failed(self, session_with, fake_response):
        api = _api(session_with(fake_response(502, {"error": "fetch_failed", "message": "DNS"})))
        with pytest.raises(TransportError) as exc_info:
            api.autocomplete("angst")
        assert exc_info.value.message == "DNS"

    def test_unknown_failure_status(self, session_with, fake_response):
        api = _api(session_with(fake_response(404, text="Not Found")))
        with pytest.raises(UpstreamError) as exc_info:
            api.autocomplete("angst")
        assert exc_info.value.status == 404

    def test_proxy_unreachable(self, session_with, connection_error):
        api = _api(session_with(connection_error))
        with pytest.raises(TransportError):
            api.autocomplete("angst")

    def test_async_variant(self, session_with, fake_response):
        data = [{"id": "Fluff", "name": "Fluff"}]
        api = _api(session_with(fake_response(200, data)))
        assert asyncio.run(api.autocomplete_async("fluff")) == data


class TestCooccurrence:
    def test_returns_count(self, session_with, fake_response):
        session = session_with(
            fake_response(200, {"tags": ["Angst", "Slow Burn"], "count": 812, "parsed": True})
        )
        api = _api(session)

        assert api.cooccurrence(["Angst", "Slow Burn"]) == CooccurrenceCount(812)
        assert session.calls[0][1]["params"] == {"tags": "Angst,Slow Burn"}

    def test_cache_ignores_tag_order(self, session_with, fake_response):
        session = session_with(fake_response(200, {"tags": ["A", "B"], "count": 10}))
        api = _api(session)

        api.cooccurrence(["A", "B"])
        assert api.cooccurrence(["B", "A"]).count == 10
        assert len(session.calls) == 1

    def test_unparsed_count_is_not_cached(self, session_with, fake_response):
        session = session_with(
            fake_response(200, {"tags": ["A", "B"], "count": 0, "parsed": False}),
            fake_response(200, {"tags": ["A", "B"], "count": 42, "parsed": True}),
        )
        api = _api(session)

        assert api.cooccurrence(["A", "B"]) == CooccurrenceCount(0, parsed=False)
        assert api.cooccurrence(["A", "B"]).count == 42

    def test_bad_request(self, session_with, fake_response):
        api = _api(session_with(fake_response(400, {"error": "need_at_least_2_tags"})))
        with pytest.raises(MalformedQuery) as exc_info:
            api.cooccurrence(["A", "B"])
        assert exc_info.value.error_code == "need_at_least_2_tags"

    def test_clear_cache(self, session_with, fake_response):
        session = session_with(
            fake_response(200, {"count": 1}),
            fake_response(200, {"count": 2}),
        )
        api = _api(session)

        api.cooccurrence(["A", "B"])
        api.clear_cache()
        assert api.cooccurrence(["A", "B"]).count == 2
