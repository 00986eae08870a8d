"""
Shared test fixtures for Tag Chain tests.
Stands in for requests sessions so no test touches the network.
"""

import json

import pytest
import requests


class FakeResponse:
    """Just enough of requests.Response for the clients."""

    def __init__(self, status_code=200, body=None, text=None, headers=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else (json.dumps(body) if body is not None else "")
        self.headers = headers or {}

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._body is None:
            return json.loads(self.text)
        return self._body


class FakeSession:
    """Replays queued responses (or exceptions) and records every call."""

    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if not self.responses:
            raise AssertionError(f"Unexpected request to {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def session_with():
    """Build a FakeSession from responses: session_with(FakeResponse(...), ...)."""
    return FakeSession


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def connection_error():
    return requests.ConnectionError("Name or service not known")
