"""Tests for the alerts adapter (newrelic_mcp/rest/alerts.py)."""

from newrelic_mcp.rest import RestAlerts
from newrelic_mcp.rest.alerts import filter_incidents
from newrelic_mcp.schemas import ListIncidentsArgs, ListPoliciesArgs


class TestListPolicies:
    async def test_maps_filter_name(self, rest, upstream):
        upstream.respond(json_body={"policies": [{"id": 1, "name": "foo"}]})

        out = await RestAlerts(rest).list_policies(ListPoliciesArgs(filter_name="foo"))

        assert out["status"] == 200
        assert out["items"] == [{"id": 1, "name": "foo"}]
        assert upstream.requests[0].url.path == "/v2/alerts_policies.json"
        assert upstream.requests[0].url.params["filter[name]"] == "foo"


class TestListIncidents:
    async def test_paginates_then_applies_client_side_filters(self, rest, upstream, next_link):
        upstream.respond(
            json_body={"incidents": [{"id": 1, "priority": "HIGH", "closed_at": 0}]},
            headers=next_link("/alerts_incidents", 2),
        )
        upstream.respond(json_body={"incidents": [{"id": 2, "priority": "LOW", "closed_at": 123}]})

        out = await RestAlerts(rest).list_incidents(
            ListIncidentsArgs(auto_paginate=True, only_open=True, priority="HIGH")
        )

        assert len(upstream.requests) == 2
        assert [i["id"] for i in out["items"]] == [1]

    async def test_filters_are_not_sent_upstream(self, rest, upstream):
        upstream.respond(json_body={"incidents": []})

        await RestAlerts(rest).list_incidents(ListIncidentsArgs(only_open=True, priority="HIGH"))

        assert upstream.requests[0].url.query == b""

    async def test_only_open_sees_items_from_every_page(self, rest, upstream, next_link):
        """Open incidents on a later page are kept; the filter runs after concatenation."""
        upstream.respond(
            json_body={"incidents": [{"id": 1, "closed_at": 99}]},
            headers=next_link("/alerts_incidents", 2),
        )
        upstream.respond(json_body={"incidents": [{"id": 2, "closed_at": None}, {"id": 3}]})

        out = await RestAlerts(rest).list_incidents(ListIncidentsArgs(auto_paginate=True, only_open=True))

        assert [i["id"] for i in out["items"]] == [2, 3]

    async def test_first_page_only_without_auto_paginate(self, rest, upstream, next_link):
        upstream.respond(
            json_body={"incidents": [{"id": 10, "priority": "MEDIUM", "closed_at": 0}]},
            headers=next_link("/alerts_incidents", 2),
        )

        out = await RestAlerts(rest).list_incidents(ListIncidentsArgs(auto_paginate=False))

        assert len(upstream.requests) == 1
        assert [i["id"] for i in out["items"]] == [10]


class TestFilterIncidents:
    INCIDENTS = [
        {"id": 1, "priority": "HIGH", "closed_at": 0},
        {"id": 2, "priority": "high", "closed_at": 0},
        {"id": 3, "priority": "HIGH", "closed_at": 1700000000000},
        {"id": 4, "priority": "LOW"},
    ]

    def test_no_filters_keeps_everything(self):
        assert filter_incidents(self.INCIDENTS) == self.INCIDENTS

    def test_priority_is_case_sensitive(self):
        assert [i["id"] for i in filter_incidents(self.INCIDENTS, priority="HIGH")] == [1, 3]

    def test_only_open_treats_missing_closed_at_as_open(self):
        assert [i["id"] for i in filter_incidents(self.INCIDENTS, only_open=True)] == [1, 2, 4]

    def test_combined(self):
        assert [i["id"] for i in filter_incidents(self.INCIDENTS, only_open=True, priority="HIGH")] == [1]
