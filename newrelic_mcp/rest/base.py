"""Shared plumbing for the REST adapters."""

from typing import Any

from newrelic_mcp.pagination import PageResult, collect_pages
from newrelic_mcp.rest_client import NewRelicRestClient, RestResponse
from newrelic_mcp.schemas import PaginationArgs


def response_dict(response: RestResponse) -> dict[str, Any]:
    """Single-call result, returned verbatim."""
    return {"status": response.status, "data": response.data, "url": response.url}


class RestAdapter:
    def __init__(self, rest: NewRelicRestClient):
        self.rest = rest

    async def _list(
        self,
        path: str,
        query: dict[str, Any],
        args: PaginationArgs,
        items_key: str | None = None,
    ) -> PageResult:
        """GET a list endpoint through the pagination engine."""

        async def fetch_page(params: dict[str, Any]) -> RestResponse:
            merged = {**query, **params}
            return await self.rest.get(path, merged or None)

        return await collect_pages(
            fetch_page,
            auto_paginate=args.auto_paginate,
            page=args.page,
            items_key=items_key,
            base_query=query,
        )
