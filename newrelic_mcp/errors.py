"""
Error taxonomy for the New Relic client core.

Every failure raised by the transports, the pagination engine, the REST
adapters and the NerdGraph query builder is one of the kinds below, so the
MCP layer can always surface a labelled error instead of a generic one:

    ConfigurationError   API key missing at call time, account id unresolvable
    AuthError            upstream answered 401
    TransportError       any other non-2xx (RestApiError for the REST API)
    ValidationError      a local argument precondition failed
    PreconditionError    a destructive call was not explicitly confirmed
    NotFoundError        the query was well formed but the target is absent
    QueryError           NerdGraph returned errors[] (NrqlSyntaxError for
                         NRQL syntax problems)

None of these are retried. They propagate to the caller as-is; the only
place that converts them is NewRelicClient.validate_credentials(), which is
a boolean check.
"""

from typing import Any


class NewRelicError(Exception):
    """
    Base class for every error raised by the core.

    Attributes:
        message: Human-readable error description, surfaced verbatim to the caller
        details: Extra diagnostic context (never contains credentials)
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(NewRelicError):
    """Credentials or account configuration are missing."""


class AuthError(NewRelicError):
    """The upstream API rejected the API key (HTTP 401)."""

    def __init__(self, message: str = "Unauthorized: Invalid API key", details: dict[str, Any] | None = None):
        self.status_code = 401
        super().__init__(message, details)


class TransportError(NewRelicError):
    """
    The upstream API answered with a non-2xx status other than 401.

    Attributes:
        status: The numeric HTTP status
        reason: The HTTP reason phrase (e.g. "Internal Server Error")
    """

    def __init__(self, message: str, status: int, reason: str, details: dict[str, Any] | None = None):
        self.status = status
        self.reason = reason
        super().__init__(message, details)


class RestApiError(TransportError):
    """Non-2xx response from the REST v2 API."""


class ValidationError(NewRelicError):
    """A caller-supplied argument failed a local check. No request was sent."""


class PreconditionError(ValidationError):
    """A destructive operation was called without an explicit confirmation."""


class NotFoundError(NewRelicError):
    """The requested entity does not exist upstream."""


class QueryError(NewRelicError):
    """NerdGraph returned an errors[] array. The message is the first entry's."""


class NrqlSyntaxError(QueryError):
    """The NRQL query was rejected as syntactically invalid."""
