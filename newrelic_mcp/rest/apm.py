"""APM applications via REST: GET /applications with server-side filters."""

from typing import Any

from newrelic_mcp.pagination import PageResult
from newrelic_mcp.rest.base import RestAdapter
from newrelic_mcp.schemas import ListApplicationsArgs

# argument name -> upstream query key
APPLICATION_FILTERS = {
    "filter_name": "filter[name]",
    "filter_host": "filter[host]",
    "filter_language": "filter[language]",
    "filter_ids": "filter[ids]",
}


class RestApm(RestAdapter):
    async def list_applications(self, args: ListApplicationsArgs) -> PageResult:
        query: dict[str, Any] = {}
        for name, key in APPLICATION_FILTERS.items():
            value = getattr(args, name)
            # An empty id list means "no filter", not "match nothing".
            if value is None or value == []:
                continue
            query[key] = value

        return await self._list("/applications", query, args, items_key="applications")
