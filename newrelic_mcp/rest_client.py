"""
Async client for the New Relic REST v2 API.

Every call builds `{rest_base_url}{path}.json`, sends the API key in the
`Api-Key` header and returns a RestResponse carrying the literal status, the
decoded JSON body, the final request URL and the relations parsed from the
RFC 5988 `Link` header:

    Link: <https://api.newrelic.com/v2/applications.json?page=2>; rel="next",
          <https://api.newrelic.com/v2/applications.json?page=9>; rel="last"

    -> {"next": "...?page=2", "last": "...?page=9"}

The client holds only read-only configuration (key, region, timeout), so one
instance can serve any number of concurrent calls.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from newrelic_mcp.errors import AuthError, ConfigurationError, RestApiError
from newrelic_mcp.regions import Region, region_endpoints, resolve_region

logger = logging.getLogger("newrelic-mcp.rest")

# One `<url>; param; rel="tokens"` segment. The URL is delimited by angle
# brackets, so commas inside it (e.g. filter[ids]=1,2) don't split segments.
_LINK_SEGMENT = re.compile(r"<(?P<url>[^>]*)>(?P<params>[^<]*)")
_REL_PARAM = re.compile(r';\s*rel\s*=\s*(?:"(?P<quoted>[^"]*)"|(?P<bare>[^\s;,]+))', re.IGNORECASE)

# Keep error diagnostics short; bodies of failed calls can be whole HTML pages.
_MAX_ERROR_BODY = 500


@dataclass(frozen=True)
class RestResponse:
    status: int
    data: Any
    url: str
    links: dict[str, str] = field(default_factory=dict)


def parse_link_header(value: str | None) -> dict[str, str]:
    """
    Parse a `Link` header into a relation -> URL mapping.

    Segments without a URL or without a rel parameter are skipped. A rel that
    lists several tokens (rel="next last") maps each of them to the URL.
    """
    links: dict[str, str] = {}
    if not value:
        return links

    for segment in _LINK_SEGMENT.finditer(value):
        url = segment.group("url").strip()
        rel = _REL_PARAM.search(segment.group("params"))
        if not url or rel is None:
            continue
        tokens = rel.group("quoted") if rel.group("quoted") is not None else rel.group("bare")
        for token in tokens.split():
            links[token.lower()] = url
    return links


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def serialize_query(query: Mapping[str, Any] | None) -> list[tuple[str, str]]:
    """
    Turn a query mapping into ordered (key, value) pairs.

    - None values and empty collections are dropped entirely
    - booleans become "true"/"false"
    - collections are joined with commas into one value, except for keys
      ending in "[]" which repeat once per element (names[]=a&names[]=b)
    """
    params: list[tuple[str, str]] = []
    if not query:
        return params

    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple, set, frozenset)):
            values = [v for v in value if v is not None]
            if not values:
                continue
            if key.endswith("[]"):
                params.extend((key, _format_value(v)) for v in values)
            else:
                params.append((key, ",".join(_format_value(v) for v in values)))
            continue
        params.append((key, _format_value(value)))
    return params


class NewRelicRestClient:
    """
    REST v2 transport.

    Args:
        api_key: User API key. May be empty; every call re-checks it.
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
        self.base_url = region_endpoints(self.region).rest_base_url
        self._timeout = timeout
        self._transport = transport

    async def get(self, path: str, query: Mapping[str, Any] | None = None) -> RestResponse:
        return await self._request("GET", path, query=query)

    async def post(self, path: str, body: Any) -> RestResponse:
        return await self._request("POST", path, body=body)

    async def delete(self, path: str) -> RestResponse:
        return await self._request("DELETE", path)

    def build_url(self, path: str) -> str:
        return f"{self.base_url}{path}.json"

    async def _request(
        self,
        method: str,
        path: str,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
    ) -> RestResponse:
        if not self.api_key:
            raise ConfigurationError("New Relic API key is not configured")

        headers = {"Api-Key": self.api_key, "Accept": "application/json"}
        url = self.build_url(path)
        params = serialize_query(query)

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                if method == "POST":
                    response = await client.request(method, url, params=params, headers=headers, json=body)
                else:
                    response = await client.request(method, url, params=params, headers=headers)
        except httpx.TransportError as e:
            # No HTTP status exists for connection failures and timeouts.
            raise RestApiError(
                f"REST API request failed: {e.__class__.__name__}",
                status=0,
                reason=str(e),
                details={"url": url},
            ) from e

        final_url = str(response.url)
        logger.debug("%s %s -> %d", method, final_url, response.status_code)

        if not response.is_success:
            self._raise_for_status(response, final_url)

        return RestResponse(
            status=response.status_code,
            data=self._decode_body(response, final_url),
            url=final_url,
            links=parse_link_header(response.headers.get("link")),
        )

    @staticmethod
    def _decode_body(response: httpx.Response, url: str) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RestApiError(
                f"REST API error: {response.status_code} response is not valid JSON",
                status=response.status_code,
                reason=response.reason_phrase,
                details={"url": url, "body": response.text[:_MAX_ERROR_BODY]},
            ) from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, url: str) -> None:
        details = {"url": url, "body": response.text[:_MAX_ERROR_BODY]}
        if response.status_code == 401:
            raise AuthError(details=details)
        raise RestApiError(
            f"REST API error: {response.status_code} {response.reason_phrase}",
            status=response.status_code,
            reason=response.reason_phrase,
            details=details,
        )
