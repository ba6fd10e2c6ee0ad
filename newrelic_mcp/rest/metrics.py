"""
Host-level metrics for an APM application.

    /applications/{app}/hosts                      list_application_hosts
    /applications/{app}/hosts/{host}/metrics       list_metric_names
    /applications/{app}/hosts/{host}/metrics/data  get_metric_data

Metric data takes repeated names[] / values[] parameters rather than a
comma-joined list; the `[]` suffix on the query key tells the transport to
repeat it.
"""

from typing import Any

from newrelic_mcp.errors import ValidationError
from newrelic_mcp.pagination import PageResult
from newrelic_mcp.rest.base import RestAdapter
from newrelic_mcp.schemas import GetMetricDataArgs, ListApplicationHostsArgs, ListMetricNamesArgs


def _host_path(application_id: int, host_id: int) -> str:
    return f"/applications/{application_id}/hosts/{host_id}"


class RestMetrics(RestAdapter):
    async def list_metric_names(self, args: ListMetricNamesArgs) -> PageResult:
        query: dict[str, Any] = {}
        if args.name:
            query["name"] = args.name

        return await self._list(
            f"{_host_path(args.application_id, args.host_id)}/metrics",
            query,
            args,
            items_key="metrics",
        )

    async def get_metric_data(self, args: GetMetricDataArgs) -> PageResult:
        names = [n for n in args.names if n]
        if not names:
            raise ValidationError("get_metric_data: at least one metric name is required")

        query: dict[str, Any] = {
            "names[]": names,
            "values[]": args.values or None,
            "from": args.from_,
            "to": args.to,
            "period": args.period,
            "summarize": args.summarize,
        }

        return await self._list(
            f"{_host_path(args.application_id, args.host_id)}/metrics/data",
            query,
            args,
            items_key="metric_data",
        )

    async def list_application_hosts(self, args: ListApplicationHostsArgs) -> PageResult:
        query: dict[str, Any] = {}
        if args.filter_hostname:
            query["filter[hostname]"] = args.filter_hostname
        if args.filter_ids:
            query["filter[ids]"] = args.filter_ids

        return await self._list(
            f"/applications/{args.application_id}/hosts",
            query,
            args,
            items_key="application_hosts",
        )
