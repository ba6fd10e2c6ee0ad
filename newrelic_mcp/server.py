"""
MCP server exposing New Relic NerdGraph and REST v2 operations as tools.

This module creates and runs the FastMCP server with:
- NerdGraph tools: NRQL queries, APM applications, entity search and
  details, account details, alert policies, open incidents and their
  acknowledgement, synthetic monitors, and a raw NerdGraph passthrough
- REST v2 tools: deployments, APM applications, host metrics, alert
  policies and incidents (with optional auto-pagination)
- Per-request credentials taken from X-New-Relic-* headers
- Health and service-info HTTP endpoints
- Structured JSON logging
- Streamable HTTP transport

Request flow for every tool call:

    1. Client sends the MCP request with X-New-Relic-Api-Key (and optionally
       X-New-Relic-Account-Id / X-New-Relic-Region) headers
    2. CredentialsMiddleware resolves Credentials for this call, rejects the
       call if there is no API key or an account-scoped tool has no account
    3. The tool handler builds fresh clients from those credentials, builds
       the typed argument record and runs the operation
    4. New Relic errors are re-raised as ToolError("<Kind>: <message>") so
       the client sees which kind of failure happened

No client object outlives a call, so concurrent sessions with different
credentials never share state.

Running the server:
    python -m newrelic_mcp.server

    This starts the server on http://0.0.0.0:8000 with:
    - MCP endpoint at /mcp (Streamable HTTP)
    - Health check at /health
    - Service info at /
"""

import json
import logging
import sys
import uuid
from contextlib import contextmanager
from dataclasses import asdict
from typing import Any, Iterator

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.server.dependencies import get_http_request
from fastmcp.server.middleware import CallNext, Middleware, MiddlewareContext
from fastmcp.tools.tool import ToolResult
from mcp.types import CallToolRequestParams
from pydantic import ValidationError as ArgumentError
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from newrelic_mcp import __version__
from newrelic_mcp.accounts import NewRelicClient
from newrelic_mcp.config import settings
from newrelic_mcp.credentials import Credentials, resolve_credentials
from newrelic_mcp.errors import ConfigurationError, NewRelicError
from newrelic_mcp.nerdgraph import NerdGraphClient
from newrelic_mcp.rest import RestAlerts, RestApm, RestDeployments, RestMetrics
from newrelic_mcp.rest_client import NewRelicRestClient
from newrelic_mcp.schemas import (
    AcknowledgeIncidentArgs,
    CreateBrowserMonitorArgs,
    CreateDeploymentArgs,
    DeleteDeploymentArgs,
    EntityDetailsArgs,
    GetMetricDataArgs,
    ListApplicationHostsArgs,
    ListApplicationsArgs,
    ListDeploymentsArgs,
    ListIncidentsArgs,
    ListMetricNamesArgs,
    ListPoliciesArgs,
    SearchEntitiesArgs,
)
from newrelic_mcp.tools import TOOL_REGISTRY

# ---------------------------------------------------------------------------
# Structured JSON Logging
# ---------------------------------------------------------------------------
# One JSON object per line on stdout, so log collectors can index fields like
# tool, api and decision without parsing free text.


class JSONLogFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects.

    Example output:

        {"timestamp": "2026-02-06 10:30:00,123", "level": "INFO", "logger": "newrelic-mcp",
         "message": "Tool call allowed", "tool": "run_nrql_query", "api": "nerdgraph"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Structured fields passed via logger.info("msg", extra={"log_data": {...}})
        if hasattr(record, "log_data"):
            log_entry.update(record.log_data)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


handler = logging.StreamHandler(sys.stdout)
handler.setFormatter(JSONLogFormatter())

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    handlers=[handler],
)
logger = logging.getLogger("newrelic-mcp")


# ---------------------------------------------------------------------------
# Per-request credentials
# ---------------------------------------------------------------------------


def _get_request_headers() -> dict[str, str] | None:
    """
    Headers of the HTTP request behind the current MCP call.

    Returns None when there is no HTTP request (e.g. stdio transport); the
    NEW_RELIC_* environment defaults apply then.
    """
    try:
        request = get_http_request()
        return dict(request.headers)
    except RuntimeError:
        return None


def current_credentials() -> Credentials:
    return resolve_credentials(_get_request_headers())


def rest_client(credentials: Credentials) -> NewRelicRestClient:
    return NewRelicRestClient(credentials.api_key, credentials.region, timeout=settings.request_timeout)


def newrelic_client(credentials: Credentials) -> NewRelicClient:
    nerdgraph = NerdGraphClient(credentials.api_key, credentials.region, timeout=settings.request_timeout)
    return NewRelicClient(nerdgraph, default_account_id=credentials.account_id)


@contextmanager
def surface_errors(tool_name: str) -> Iterator[None]:
    """
    Re-raise core errors as ToolError labelled with their kind.

    FastMCP passes ToolError messages through to the client unchanged, so
    "ValidationError: Invalid account ID format" reaches the caller as-is.
    """
    try:
        yield
    except NewRelicError as e:
        logger.warning(
            "Tool call failed",
            extra={
                "log_data": {
                    "tool": tool_name,
                    "error_type": e.__class__.__name__,
                    "error": e.message,
                    "details": e.details,
                }
            },
        )
        raise ToolError(f"{e.__class__.__name__}: {e.message}") from e
    except ArgumentError as e:
        logger.warning(
            "Tool call failed",
            extra={"log_data": {"tool": tool_name, "error_type": "ValidationError", "error": str(e)}},
        )
        raise ToolError(f"ValidationError: {e}") from e


# ---------------------------------------------------------------------------
# Credentials Middleware
# ---------------------------------------------------------------------------


class CredentialsMiddleware(Middleware):
    """
    Checks every tools/call before the handler runs.

    - The tool must be in TOOL_REGISTRY (unknown tools are denied)
    - An API key must be present (header or NEW_RELIC_API_KEY)
    - Account-scoped tools need an account id (target_account_id argument,
      header or NEW_RELIC_ACCOUNT_ID)
    """

    async def on_call_tool(
        self,
        context: MiddlewareContext[CallToolRequestParams],
        call_next: CallNext[CallToolRequestParams, ToolResult],
    ) -> ToolResult:
        request_id = str(uuid.uuid4())[:8]
        tool_name = context.message.name
        arguments = context.message.arguments or {}
        spec = TOOL_REGISTRY.get(tool_name)

        if spec is None:
            logger.warning(
                "Tool call denied: tool not registered",
                extra={"log_data": {"request_id": request_id, "tool": tool_name, "decision": "denied"}},
            )
            raise ToolError(f"Tool {tool_name} not found")

        credentials = current_credentials()
        log_data = {
            "request_id": request_id,
            "tool": tool_name,
            "api": spec.api,
            "region": credentials.region.value,
        }

        if not credentials.has_api_key:
            logger.warning(
                "Tool call rejected: missing credentials",
                extra={"log_data": {**log_data, "decision": "rejected", "reason": "missing_api_key"}},
            )
            raise ToolError(
                "ConfigurationError: Missing New Relic credentials. Provide X-New-Relic-Api-Key header."
            )

        account_id = arguments.get("target_account_id") or credentials.account_id
        if spec.requires_account and not account_id:
            logger.warning(
                "Tool call rejected: missing account id",
                extra={"log_data": {**log_data, "decision": "rejected", "reason": "missing_account_id"}},
            )
            raise ToolError(
                "ConfigurationError: Account ID must be provided via header or tool argument"
            )

        level = logging.WARNING if spec.destructive else logging.INFO
        logger.log(level, "Tool call allowed", extra={"log_data": {**log_data, "decision": "allowed"}})

        return await call_next(context)


mcp = FastMCP(
    name="newrelic-mcp",
    instructions=(
        "Query New Relic observability data: run NRQL, inspect APM applications, "
        "hosts and metrics, list alert policies and incidents, and record or remove "
        "deployment markers. Credentials are taken from X-New-Relic-* request headers."
    ),
    middleware=[CredentialsMiddleware()],
)


# ---------------------------------------------------------------------------
# NerdGraph tools
# ---------------------------------------------------------------------------


@mcp.tool(description="Run an NRQL query against a New Relic account.")
async def run_nrql_query(nrql: str, target_account_id: str | None = None) -> dict[str, Any]:
    """Results plus metadata; metadata.timeSeries is set for TIMESERIES queries."""
    credentials = current_credentials()
    with surface_errors("run_nrql_query"):
        account_id = target_account_id or credentials.account_id
        if not account_id:
            raise ConfigurationError("Account ID must be provided")
        result = await newrelic_client(credentials).run_nrql_query(nrql, account_id)
        return asdict(result)


@mcp.tool(description="List APM applications in a New Relic account (NerdGraph entity search).")
async def list_apm_applications(target_account_id: str | None = None) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("list_apm_applications"):
        applications = await newrelic_client(credentials).list_apm_applications(target_account_id)
        return {"applications": [asdict(app) for app in applications], "count": len(applications)}


@mcp.tool(description="Get New Relic account details.")
async def get_account_details(target_account_id: str | None = None) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("get_account_details"):
        details = await newrelic_client(credentials).get_account_details(target_account_id)
        return asdict(details)


@mcp.tool(description="Execute an arbitrary NerdGraph (GraphQL) query and return the raw response.")
async def run_nerdgraph_query(query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("run_nerdgraph_query"):
        return await newrelic_client(credentials).run_nerdgraph_query(query, variables)


@mcp.tool(description="Search entities in a New Relic account by name, optionally narrowed to entity types.")
async def search_entities(
    query: str,
    entity_types: list[str] | None = None,
    target_account_id: str | None = None,
) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("search_entities"):
        args = SearchEntitiesArgs(query=query, entity_types=entity_types)
        entities = await newrelic_client(credentials).search_entities(args, target_account_id)
        return {"entities": [asdict(entity) for entity in entities], "count": len(entities)}


@mcp.tool(description="Get details for one entity by GUID.")
async def get_entity_details(entity_guid: str) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("get_entity_details"):
        entity = await newrelic_client(credentials).get_entity_details(EntityDetailsArgs(entity_guid=entity_guid))
        return asdict(entity)


# ---------------------------------------------------------------------------
# NerdGraph: alerts and synthetics
# ---------------------------------------------------------------------------


@mcp.tool(description="List alert policies in a New Relic account (NerdGraph).")
async def list_alert_policies(target_account_id: str | None = None) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("list_alert_policies"):
        policies = await newrelic_client(credentials).list_alert_policies(target_account_id)
        return {"policies": [asdict(policy) for policy in policies], "count": len(policies)}


@mcp.tool(description="List open (activated or created) incidents, optionally of one priority (NerdGraph).")
async def list_open_incidents(
    priority: str | None = None,
    target_account_id: str | None = None,
) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("list_open_incidents"):
        incidents = await newrelic_client(credentials).list_open_incidents(target_account_id, priority)
        return {"incidents": [asdict(incident) for incident in incidents], "count": len(incidents)}


@mcp.tool(description="Acknowledge an open incident.")
async def acknowledge_incident(
    incident_id: str,
    comment: str | None = None,
    target_account_id: str | None = None,
) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("acknowledge_incident"):
        args = AcknowledgeIncidentArgs(incident_id=incident_id, comment=comment)
        return await newrelic_client(credentials).acknowledge_incident(args, target_account_id)


@mcp.tool(description="List synthetic monitors in a New Relic account.")
async def list_synthetics_monitors(target_account_id: str | None = None) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("list_synthetics_monitors"):
        monitors = await newrelic_client(credentials).list_synthetics_monitors(target_account_id)
        return {"monitors": [asdict(monitor) for monitor in monitors], "count": len(monitors)}


@mcp.tool(
    description=(
        "Create a simple browser monitor. frequency is in minutes "
        "(1, 5, 10, 15, 30, 60, 360, 720 or 1440); locations are public location ids."
    )
)
async def create_browser_monitor(
    name: str,
    url: str,
    frequency: int,
    locations: list[str],
    target_account_id: str | None = None,
) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("create_browser_monitor"):
        args = CreateBrowserMonitorArgs(name=name, url=url, frequency=frequency, locations=locations)
        return await newrelic_client(credentials).create_browser_monitor(args, target_account_id)


# ---------------------------------------------------------------------------
# REST v2: deployments
# ---------------------------------------------------------------------------


@mcp.tool(description="Record a deployment marker for an APM application (REST v2).")
async def create_deployment(
    application_id: int,
    revision: str,
    changelog: str | None = None,
    description: str | None = None,
    user: str | None = None,
) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("create_deployment"):
        args = CreateDeploymentArgs(
            application_id=application_id,
            revision=revision,
            changelog=changelog,
            description=description,
            user=user,
        )
        return await RestDeployments(rest_client(credentials)).create(args)


@mcp.tool(description="List deployments for an APM application (REST v2).")
async def list_deployments_rest(
    application_id: int,
    page: int | None = None,
    auto_paginate: bool = False,
) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("list_deployments_rest"):
        args = ListDeploymentsArgs(application_id=application_id, page=page, auto_paginate=auto_paginate)
        return dict(await RestDeployments(rest_client(credentials)).list(args))


@mcp.tool(
    description=(
        "Delete a deployment marker (REST v2). Irreversible: requires confirm=true."
    )
)
async def delete_deployment(application_id: int, id: int, confirm: bool = False) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("delete_deployment"):
        args = DeleteDeploymentArgs(application_id=application_id, id=id, confirm=confirm)
        return await RestDeployments(rest_client(credentials)).delete(args)


# ---------------------------------------------------------------------------
# REST v2: APM applications
# ---------------------------------------------------------------------------


@mcp.tool(description="List APM applications with optional filters (REST v2).")
async def list_apm_applications_rest(
    filter_name: str | None = None,
    filter_host: str | None = None,
    filter_language: str | None = None,
    filter_ids: list[int] | None = None,
    page: int | None = None,
    auto_paginate: bool = False,
) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("list_apm_applications_rest"):
        args = ListApplicationsArgs(
            filter_name=filter_name,
            filter_host=filter_host,
            filter_language=filter_language,
            filter_ids=filter_ids,
            page=page,
            auto_paginate=auto_paginate,
        )
        return dict(await RestApm(rest_client(credentials)).list_applications(args))


# ---------------------------------------------------------------------------
# REST v2: metrics
# ---------------------------------------------------------------------------


@mcp.tool(description="List metric names for an application host (REST v2).")
async def list_metric_names_for_host(
    application_id: int,
    host_id: int,
    name: str | None = None,
    page: int | None = None,
    auto_paginate: bool = False,
) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("list_metric_names_for_host"):
        args = ListMetricNamesArgs(
            application_id=application_id,
            host_id=host_id,
            name=name,
            page=page,
            auto_paginate=auto_paginate,
        )
        return dict(await RestMetrics(rest_client(credentials)).list_metric_names(args))


@mcp.tool(
    description=(
        "Get metric timeslice data for an application host (REST v2). "
        "from_time/to_time are ISO-8601 timestamps, period is in seconds."
    )
)
async def get_metric_data_for_host(
    application_id: int,
    host_id: int,
    names: list[str],
    values: list[str] | None = None,
    from_time: str | None = None,
    to_time: str | None = None,
    period: int | None = None,
    summarize: bool | None = None,
    page: int | None = None,
    auto_paginate: bool = False,
) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("get_metric_data_for_host"):
        args = GetMetricDataArgs(
            application_id=application_id,
            host_id=host_id,
            names=names,
            values=values,
            from_=from_time,
            to=to_time,
            period=period,
            summarize=summarize,
            page=page,
            auto_paginate=auto_paginate,
        )
        return dict(await RestMetrics(rest_client(credentials)).get_metric_data(args))


@mcp.tool(description="List hosts for an APM application (REST v2).")
async def list_application_hosts(
    application_id: int,
    filter_hostname: str | None = None,
    filter_ids: str | list[int] | None = None,
    page: int | None = None,
    auto_paginate: bool = False,
) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("list_application_hosts"):
        args = ListApplicationHostsArgs(
            application_id=application_id,
            filter_hostname=filter_hostname,
            filter_ids=filter_ids,
            page=page,
            auto_paginate=auto_paginate,
        )
        return dict(await RestMetrics(rest_client(credentials)).list_application_hosts(args))


# ---------------------------------------------------------------------------
# REST v2: alerts
# ---------------------------------------------------------------------------


@mcp.tool(description="List alert policies (REST v2).")
async def list_alert_policies_rest(
    filter_name: str | None = None,
    page: int | None = None,
    auto_paginate: bool = False,
) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("list_alert_policies_rest"):
        args = ListPoliciesArgs(filter_name=filter_name, page=page, auto_paginate=auto_paginate)
        return dict(await RestAlerts(rest_client(credentials)).list_policies(args))


@mcp.tool(
    description=(
        "List alert incidents (REST v2). only_open and priority are applied "
        "client-side after all requested pages are fetched."
    )
)
async def list_open_incidents_rest(
    only_open: bool = False,
    priority: str | None = None,
    page: int | None = None,
    auto_paginate: bool = False,
) -> dict[str, Any]:
    credentials = current_credentials()
    with surface_errors("list_open_incidents_rest"):
        args = ListIncidentsArgs(only_open=only_open, priority=priority, page=page, auto_paginate=auto_paginate)
        return dict(await RestAlerts(rest_client(credentials)).list_incidents(args))


# ---------------------------------------------------------------------------
# Health and service info endpoints
# ---------------------------------------------------------------------------
# Plain HTTP routes, not MCP. No credentials needed: they never call New Relic.


@mcp.custom_route("/health", methods=["GET"])
async def health_check(request: Request) -> Response:
    return JSONResponse({"status": "healthy", "service": "newrelic-mcp"})


@mcp.custom_route("/", methods=["GET"])
async def service_info(request: Request) -> Response:
    return JSONResponse(
        {
            "name": "newrelic-mcp",
            "version": __version__,
            "description": "MCP server for New Relic observability platform integration",
            "endpoints": {"health": "/health", "mcp": "/mcp (POST)"},
            "headers": {
                "required": ["X-New-Relic-Api-Key"],
                "optional": ["X-New-Relic-Account-Id", "X-New-Relic-Region"],
            },
        }
    )


if __name__ == "__main__":
    logger.info(
        "Starting New Relic MCP server on %s:%d (transport=streamable-http)",
        settings.host,
        settings.port,
    )
    mcp.run(
        transport="streamable-http",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )
