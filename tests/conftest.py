"""
Shared test fixtures for the New Relic MCP test suite.

No test talks to New Relic. Upstream HTTP is replaced by an httpx.MockTransport
that replays queued responses and records every request it receives, so
tests can assert on exactly what would have been sent (method, URL, query,
headers, body) and on how many calls were made.

Key fixtures:
- upstream: An UpstreamStub; queue responses with upstream.respond(...)
- rest: A NewRelicRestClient (US region) wired to the stub
- nerdgraph / newrelic: NerdGraph transport and query builder wired to the stub
- next_link: Builds a Link header value pointing at a given page

Testing approach:
- test_rest_client.py / test_nerdgraph.py: transports against the stub
- test_pagination.py: the pagination engine with plain async fetch functions
- test_rest_*.py: each REST adapter end to end through the real transport
- test_accounts.py: NerdGraph query building and response mapping
- test_server.py: the MCP server in-memory through httpx.ASGITransport
"""

import json
from typing import Any

import httpx
import pytest

from newrelic_mcp.accounts import NewRelicClient
from newrelic_mcp.nerdgraph import NerdGraphClient
from newrelic_mcp.rest_client import NewRelicRestClient

TEST_API_KEY = "test-api-key"
REST_BASE = "https://api.newrelic.com/v2"


class UpstreamStub:
    """
    Records requests and answers them from a FIFO queue of canned responses.

    A request arriving with an empty queue fails the test, which is how
    "no upstream call was made" is asserted.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._responses: list[httpx.Response | Exception] = []

    def respond(
        self,
        status: int = 200,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
    ) -> "UpstreamStub":
        if content is not None:
            response = httpx.Response(status, headers=headers, content=content)
        elif json_body is not None:
            response = httpx.Response(status, headers=headers, json=json_body)
        else:
            response = httpx.Response(status, headers=headers)
        self._responses.append(response)
        return self

    def fail_with(self, error: Exception) -> "UpstreamStub":
        self._responses.append(error)
        return self

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            raise AssertionError(f"Unexpected upstream request: {request.method} {request.url}")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def json_body(self, index: int = 0) -> Any:
        return json.loads(self.requests[index].content)


@pytest.fixture
def upstream() -> UpstreamStub:
    return UpstreamStub()


@pytest.fixture
def rest(upstream) -> NewRelicRestClient:
    return NewRelicRestClient(TEST_API_KEY, "US", transport=upstream.transport)


@pytest.fixture
def nerdgraph(upstream) -> NerdGraphClient:
    return NerdGraphClient(TEST_API_KEY, "US", transport=upstream.transport)


@pytest.fixture
def newrelic(nerdgraph) -> NewRelicClient:
    return NewRelicClient(nerdgraph, default_account_id="123456")


@pytest.fixture
def next_link():
    """
    Factory for Link headers.

    Usage:
        upstream.respond(json_body=[...], headers=next_link("/applications", 2))
    """

    def _next_link(path: str, page: int, **params: str) -> dict[str, str]:
        query = "&".join([f"page={page}"] + [f"{k}={v}" for k, v in params.items()])
        return {"Link": f'<{REST_BASE}{path}.json?{query}>; rel="next"'}

    return _next_link
