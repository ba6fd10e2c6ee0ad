"""
Auto-pagination over `Link: <...>; rel="next"` continuations.

The REST v2 list endpoints return one page per call and advertise the next
page through the Link header. Adapters hand this module a `fetch_page`
callable that issues one GET with extra query parameters; the engine decides
which parameters to pass and how many times to call it:

    auto_paginate=False  one call, that page's items only. A `next` relation
                         in the response is ignored.
    auto_paginate=True   keep calling with the query parameters of each
                         `next` URL until there is none, concatenating items
                         in fetch order.

Pages are fetched strictly one after another (each URL is only known once
the previous page arrives). A failure on any page propagates immediately
and the pages collected so far are dropped.
"""

import logging
from typing import Any, Awaitable, Callable, TypedDict
from urllib.parse import parse_qsl, urlsplit

from newrelic_mcp.rest_client import RestResponse, serialize_query

logger = logging.getLogger("newrelic-mcp.pagination")

FetchPage = Callable[[dict[str, Any]], Awaitable[RestResponse]]


class PageResult(TypedDict):
    status: int
    url: str
    items: list[Any]
    pages: int


def extract_items(data: Any, items_key: str | None = None) -> list[Any]:
    """
    Pull the item list out of one page body.

    REST v2 wraps collections in an object ({"applications": [...]}); a bare
    list body is used as-is.
    """
    if data is None:
        return []
    if isinstance(data, list):
        return list(data)
    if items_key is not None and isinstance(data, dict):
        if items_key not in data:
            return []
        value = data[items_key]
        if isinstance(value, list):
            return list(value)
        return [] if value is None else [value]
    return [data]


def page_key(params: dict[str, Any]) -> frozenset[tuple[str, str]]:
    """
    Identity of one page request, independent of how its URL was spelled.

    Values go through the same serialization as the outgoing query, so
    filter[ids]=[1, 2] and a link carrying filter%5Bids%5D=1,2 compare equal.
    A request without a page parameter is page 1.
    """
    return frozenset(serialize_query({"page": 1, **params}))


def next_page_params(url: str) -> dict[str, Any]:
    """Query parameters of a continuation URL. Repeated keys become lists."""
    params: dict[str, Any] = {}
    for key, value in parse_qsl(urlsplit(url).query, keep_blank_values=True):
        if key in params:
            existing = params[key]
            params[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            params[key] = value
    return params


async def collect_pages(
    fetch_page: FetchPage,
    *,
    auto_paginate: bool = False,
    page: int | None = None,
    items_key: str | None = None,
    base_query: dict[str, Any] | None = None,
) -> PageResult:
    """
    Fetch one page, or every page, of a REST list endpoint.

    Args:
        fetch_page: Issues one GET; receives the parameters to merge into the
                    adapter's base query ({} or {"page": n} for the first call).
        auto_paginate: Follow `next` relations until exhausted.
        page: Starting page. Without auto-pagination this is the only page fetched.
        items_key: Key holding the item list in wrapped response bodies.
        base_query: The query fetch_page merges parameters into. Only used to
                    recognise a `next` link that leads back to a page already
                    fetched.

    Returns:
        PageResult with the first page's status and URL, the concatenated
        items and the number of pages fetched.
    """
    first_params = {"page": page} if page is not None else {}
    first = await fetch_page(first_params)
    items = extract_items(first.data, items_key)
    pages = 1

    if auto_paginate:
        base_query = base_query or {}
        visited = {page_key({**base_query, **first_params})}
        next_url = first.links.get("next")
        while next_url:
            params = next_page_params(next_url)
            key = page_key({**base_query, **params})
            if key in visited:
                # Upstream linked back to a page already fetched.
                logger.warning(
                    "Pagination stopped: repeated next link",
                    extra={"log_data": {"url": next_url, "pages": pages}},
                )
                break
            visited.add(key)
            response = await fetch_page(params)
            items.extend(extract_items(response.data, items_key))
            pages += 1
            logger.debug("Fetched page %d (%d items so far)", pages, len(items))
            next_url = response.links.get("next")

    return PageResult(status=first.status, url=first.url, items=items, pages=pages)
