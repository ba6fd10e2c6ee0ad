"""
Alert policies and incidents.

The incidents endpoint has no usable server-side filter for priority or open
state, so list_incidents() fetches first (every page when auto_paginate is
set) and filters the concatenated items afterwards.
"""

from typing import Any

from newrelic_mcp.pagination import PageResult
from newrelic_mcp.rest.base import RestAdapter
from newrelic_mcp.schemas import ListIncidentsArgs, ListPoliciesArgs


def is_open_incident(incident: dict[str, Any]) -> bool:
    # closed_at is 0/null/absent while the incident is open
    return not incident.get("closed_at")


def filter_incidents(
    incidents: list[dict[str, Any]],
    only_open: bool = False,
    priority: str | None = None,
) -> list[dict[str, Any]]:
    result = incidents
    if only_open:
        result = [i for i in result if is_open_incident(i)]
    if priority is not None:
        result = [i for i in result if i.get("priority") == priority]
    return result


class RestAlerts(RestAdapter):
    async def list_policies(self, args: ListPoliciesArgs) -> PageResult:
        query: dict[str, Any] = {}
        if args.filter_name:
            query["filter[name]"] = args.filter_name

        return await self._list("/alerts_policies", query, args, items_key="policies")

    async def list_incidents(self, args: ListIncidentsArgs) -> PageResult:
        result = await self._list("/alerts_incidents", {}, args, items_key="incidents")
        result["items"] = filter_incidents(result["items"], only_open=args.only_open, priority=args.priority)
        return result
