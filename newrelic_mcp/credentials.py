"""
Per-request New Relic credentials.

Each MCP request can carry its own New Relic identity, so one server process
serves many tenants without sharing any mutable client state:

    X-New-Relic-Api-Key      User API key (required for every tool call)
    X-New-Relic-Account-Id   Default account for account-scoped tools
    X-New-Relic-Region       "US" (default) or "EU"

A missing header falls back to the matching NEW_RELIC_* environment value
(see config.NewRelicSettings). The result is an immutable Credentials object
that the server builds clients from for the duration of a single call.

The key itself is not validated here. An empty key is carried through and
the transports raise ConfigurationError when a call is attempted; the
server's middleware rejects such calls up front.
"""

from dataclasses import dataclass, field
from typing import Mapping

from newrelic_mcp.config import NewRelicSettings, newrelic_settings
from newrelic_mcp.regions import Region, resolve_region

API_KEY_HEADER = "x-new-relic-api-key"
ACCOUNT_ID_HEADER = "x-new-relic-account-id"
REGION_HEADER = "x-new-relic-region"


@dataclass(frozen=True)
class Credentials:
    """
    Credentials for one tool call.

    Attributes:
        api_key: The User API key, possibly empty
        account_id: Default account id, or None
        region: Resolved data center region
    """

    # Never shown in repr, so it stays out of logs and tracebacks.
    api_key: str = field(repr=False)
    account_id: str | None
    region: Region

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def resolve_credentials(
    headers: Mapping[str, str] | None,
    defaults: NewRelicSettings | None = None,
) -> Credentials:
    """
    Build Credentials from request headers, falling back to environment defaults.

    Args:
        headers: Request headers (any case), or None when there is no HTTP
                 request (e.g. the stdio transport)
        defaults: Fallback settings, the module-level singleton by default

    Returns:
        Credentials for this call
    """
    defaults = defaults or newrelic_settings
    lowered = {k.lower(): v for k, v in (headers or {}).items()}

    api_key = _header(lowered, API_KEY_HEADER) or defaults.api_key or ""
    account_id = _header(lowered, ACCOUNT_ID_HEADER) or defaults.account_id or None
    region = _header(lowered, REGION_HEADER) or defaults.region

    return Credentials(api_key=api_key, account_id=account_id, region=resolve_region(region))
