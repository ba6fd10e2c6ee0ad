"""
Region routing for the New Relic APIs.

New Relic runs two data centers with separate API hosts:

    US: https://api.newrelic.com        (default)
    EU: https://api.eu.newrelic.com

Both the REST v2 API and NerdGraph (GraphQL) live on the same host, so one
region token selects both base URLs.
"""

from dataclasses import dataclass
from enum import Enum


class Region(str, Enum):
    US = "US"
    EU = "EU"


@dataclass(frozen=True)
class RegionEndpoints:
    """Base URLs for one region. REST paths are appended to `rest_base_url`."""

    rest_base_url: str
    graphql_base_url: str

    @property
    def graphql_url(self) -> str:
        return f"{self.graphql_base_url}/graphql"


_ENDPOINTS: dict[Region, RegionEndpoints] = {
    Region.US: RegionEndpoints(
        rest_base_url="https://api.newrelic.com/v2",
        graphql_base_url="https://api.newrelic.com",
    ),
    Region.EU: RegionEndpoints(
        rest_base_url="https://api.eu.newrelic.com/v2",
        graphql_base_url="https://api.eu.newrelic.com",
    ),
}


def resolve_region(token: str | Region | None) -> Region:
    """
    Map a region token to a Region.

    Matching is case-insensitive. Anything other than "EU" (including None,
    empty strings and unknown regions) falls back to US.
    """
    if isinstance(token, Region):
        return token
    if token and token.strip().upper() == Region.EU.value:
        return Region.EU
    return Region.US


def region_endpoints(region: str | Region | None) -> RegionEndpoints:
    return _ENDPOINTS[resolve_region(region)]
