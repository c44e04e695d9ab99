"""Shared pytest fixtures for esbridge tests."""

import io
import json
import os
from unittest.mock import MagicMock

import pytest
import requests

from esbridge.client import SearchClient
from esbridge.config import ClientConfig


# ============================================================================
# Auto-mark tests based on directory
# ============================================================================

def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Get the test file path relative to tests/
        test_path = str(item.fspath)

        if '/tests/unit/' in test_path or '\\tests\\unit\\' in test_path:
            item.add_marker(pytest.mark.unit)
        elif '/tests/integration/' in test_path or '\\tests\\integration\\' in test_path:
            item.add_marker(pytest.mark.integration)
        elif '/tests/e2e/' in test_path or '\\tests\\e2e\\' in test_path:
            item.add_marker(pytest.mark.e2e)


# ============================================================================
# Fake HTTP responses
# ============================================================================

def make_response(status_code=200, body=b"", headers=None):
    """Build a real requests.Response over an in-memory body.

    close() is replaced with a MagicMock so tests can assert it was called.
    """
    if isinstance(body, (dict, list)):
        body = json.dumps(body).encode("utf-8")
    elif isinstance(body, str):
        body = body.encode("utf-8")

    response = requests.Response()
    response.status_code = status_code
    response.raw = io.BytesIO(body)
    response.headers.update(headers or {"Content-Type": "application/json"})
    response.url = "http://localhost:9200/"
    response.close = MagicMock()
    return response


class FakeRequest:
    """Stand-in for PendingRequest returning a canned response or raising."""

    def __init__(self, response=None, error=None, method="GET", url="http://localhost:9200/test"):
        self.response = response
        self.error = error
        self.method = method
        self.url = url
        self.timeouts = []

    def execute(self, timeout=None):
        self.timeouts.append(timeout)
        if self.error is not None:
            raise self.error
        return self.response

    def __repr__(self):
        return f"FakeRequest({self.method} {self.url})"


@pytest.fixture
def response_factory():
    """Factory for fake responses: response_factory(404, b'{}')."""
    return make_response


@pytest.fixture
def fake_request():
    """Factory for fake requests: fake_request(response) or fake_request(error=...)."""
    return FakeRequest


# ============================================================================
# Client fixtures
# ============================================================================

@pytest.fixture
def mock_session():
    """A MagicMock standing in for requests.Session."""
    session = MagicMock(spec=requests.Session)
    session.request.return_value = make_response(200, {})
    return session


@pytest.fixture
def client(mock_session):
    """SearchClient wired to mock_session, no network."""
    config = ClientConfig(hosts=["http://es.test:9200"], connect_timeout=1, request_timeout=2)
    return SearchClient(config, session=mock_session)


def search_body(sorts, total=None):
    """Search response JSON with one hit per sort array."""
    hits = [
        {"_index": "books", "_id": str(i), "_score": None, "_source": {"n": i}, "sort": sort}
        for i, sort in enumerate(sorts)
    ]
    return {
        "took": 3,
        "timed_out": False,
        "_shards": {"total": 1, "successful": 1, "skipped": 0, "failed": 0},
        "hits": {
            "total": {"value": len(sorts) if total is None else total, "relation": "eq"},
            "max_score": None,
            "hits": hits,
        },
    }


@pytest.fixture
def search_response_body():
    """Factory building search responses: search_response_body([[1, "a"], [2, "b"]])."""
    return search_body


# ============================================================================
# Environment Fixtures
# ============================================================================

@pytest.fixture
def clean_env():
    """Provide a clean environment without ESBRIDGE_* variables."""
    env_vars = [
        'ESBRIDGE_URL', 'ESBRIDGE_TIMEOUT', 'ESBRIDGE_CA_CERT',
        'ESBRIDGE_VERIFY', 'ESBRIDGE_V7_COMPATIBLE',
    ]
    old_values = {}
    for var in env_vars:
        old_values[var] = os.environ.pop(var, None)

    yield

    # Restore old values
    for var, value in old_values.items():
        if value is not None:
            os.environ[var] = value
