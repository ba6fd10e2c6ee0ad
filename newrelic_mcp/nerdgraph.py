"""
Async transport for NerdGraph, New Relic's GraphQL API.

Every call is a POST of {"query": ..., "variables": ...} to the region's
/graphql endpoint with the key in the `API-Key` header. The decoded envelope
is returned untouched:

    {"data": {...}}                          success
    {"data": {...}, "errors": [{...}, ...]}  partial failure
    {"errors": [{"message": "..."}]}         failure

This module only turns HTTP-level failures into errors. Whether errors[]
means failure is up to the caller, since some callers want the partial data.
"""

import logging
from typing import Any

import httpx

from newrelic_mcp.errors import AuthError, ConfigurationError, TransportError
from newrelic_mcp.regions import Region, region_endpoints, resolve_region

logger = logging.getLogger("newrelic-mcp.nerdgraph")


class NerdGraphClient:
    """
    Args:
        api_key: User API key. Checked on every call, so an empty key only
                 fails when a query is actually executed.
        region: "US" or "EU" (case-insensitive), defaults to US.
        timeout: Seconds per HTTP call.
        transport: Optional httpx transport, used by tests to stub the network.
    """

    def __init__(
        self,
        api_key: str | None,
        region: str | Region | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key or ""
        self.region = resolve_region(region)
        self.url = region_endpoints(self.region).graphql_url
        self._timeout = timeout
        self._transport = transport

    async def execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Execute a GraphQL document and return the raw envelope.

        Raises:
            ConfigurationError: No API key is configured
            AuthError: NerdGraph answered 401
            TransportError: Any other non-2xx, a network failure, or a body that
                            is not a JSON object
        """
        if not self.api_key:
            raise ConfigurationError("New Relic API key is not configured")

        headers = {"API-Key": self.api_key, "Content-Type": "application/json"}
        payload = {"query": query, "variables": variables}

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self.url, headers=headers, json=payload)
        except httpx.TransportError as e:
            raise TransportError(
                f"NerdGraph request failed: {e.__class__.__name__}",
                status=0,
                reason=str(e),
            ) from e

        logger.debug("POST %s -> %d", self.url, response.status_code)

        if response.status_code == 401:
            raise AuthError()
        if not response.is_success:
            raise TransportError(
                f"NerdGraph API error: {response.status_code} {response.reason_phrase}",
                status=response.status_code,
                reason=response.reason_phrase,
            )

        try:
            envelope = response.json()
        except ValueError as e:
            raise TransportError(
                "NerdGraph API error: response is not valid JSON",
                status=response.status_code,
                reason=response.reason_phrase,
            ) from e

        if not isinstance(envelope, dict):
            raise TransportError(
                "NerdGraph API error: response is not a JSON object",
                status=response.status_code,
                reason=response.reason_phrase,
            )
        return envelope
