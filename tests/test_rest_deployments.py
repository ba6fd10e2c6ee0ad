"""Tests for the deployments adapter (newrelic_mcp/rest/deployments.py)."""

import pytest
from pydantic import ValidationError as ArgumentError

from newrelic_mcp.errors import PreconditionError, ValidationError
from newrelic_mcp.rest import RestDeployments
from newrelic_mcp.schemas import CreateDeploymentArgs, DeleteDeploymentArgs, ListDeploymentsArgs


class TestCreate:
    async def test_posts_only_the_fields_given(self, rest, upstream):
        upstream.respond(201, json_body={"deployment": {"id": 9, "revision": "abc123"}})

        res = await RestDeployments(rest).create(
            CreateDeploymentArgs(application_id=123, revision="abc123", changelog="notes")
        )

        assert len(upstream.requests) == 1
        request = upstream.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v2/applications/123/deployments.json"
        assert upstream.json_body() == {"deployment": {"revision": "abc123", "changelog": "notes"}}
        assert res["status"] == 201
        assert res["data"] == {"deployment": {"id": 9, "revision": "abc123"}}

    async def test_posts_all_optional_fields(self, rest, upstream):
        upstream.respond(json_body={"deployment": {}})

        await RestDeployments(rest).create(
            CreateDeploymentArgs(
                application_id=123,
                revision="abc123",
                changelog="notes",
                description="desc",
                user="me",
            )
        )

        assert upstream.json_body() == {
            "deployment": {"revision": "abc123", "changelog": "notes", "description": "desc", "user": "me"}
        }

    def test_revision_is_required(self):
        with pytest.raises(ArgumentError):
            CreateDeploymentArgs(application_id=123, revision="")


class TestList:
    async def test_first_request_has_no_query(self, rest, upstream):
        upstream.respond(json_body={"deployments": [{"id": 1}]})

        out = await RestDeployments(rest).list(ListDeploymentsArgs(application_id=1))

        assert str(upstream.requests[0].url) == "https://api.newrelic.com/v2/applications/1/deployments.json"
        assert out["items"] == [{"id": 1}]

    async def test_auto_paginate_follows_next(self, rest, upstream, next_link):
        upstream.respond(
            json_body={"deployments": [{"id": 1}]},
            headers=next_link("/applications/1/deployments", 2),
        )
        upstream.respond(json_body={"deployments": [{"id": 2}]})

        out = await RestDeployments(rest).list(ListDeploymentsArgs(application_id=1, auto_paginate=True))

        assert [d["id"] for d in out["items"]] == [1, 2]
        assert upstream.requests[1].url.params["page"] == "2"

    async def test_page_override_without_auto_paginate(self, rest, upstream, next_link):
        upstream.respond(
            json_body={"deployments": [{"id": 5}]},
            headers=next_link("/applications/1/deployments", 4),
        )

        out = await RestDeployments(rest).list(ListDeploymentsArgs(application_id=1, page=3))

        assert len(upstream.requests) == 1
        assert upstream.requests[0].url.params["page"] == "3"
        assert out["items"] == [{"id": 5}]


class TestDelete:
    async def test_confirmed_delete_calls_upstream(self, rest, upstream):
        upstream.respond(json_body={"deployment": {"id": 2}})

        out = await RestDeployments(rest).delete(DeleteDeploymentArgs(application_id=1, id=2, confirm=True))

        assert upstream.requests[0].method == "DELETE"
        assert upstream.requests[0].url.path == "/v2/applications/1/deployments/2.json"
        assert out["status"] == 200

    @pytest.mark.parametrize("confirm", [None, False])
    async def test_unconfirmed_delete_makes_no_request(self, rest, upstream, confirm):
        args = (
            DeleteDeploymentArgs(application_id=1, id=2)
            if confirm is None
            else DeleteDeploymentArgs(application_id=1, id=2, confirm=confirm)
        )

        with pytest.raises(PreconditionError, match="confirm"):
            await RestDeployments(rest).delete(args)

        assert upstream.requests == []

    async def test_precondition_error_is_a_validation_error(self, rest):
        with pytest.raises(ValidationError):
            await RestDeployments(rest).delete(DeleteDeploymentArgs(application_id=1, id=2))
