"""
Deployment markers: /applications/{application_id}/deployments.

Deleting a deployment is irreversible, so delete() refuses to run unless the
caller passed confirm=True, regardless of what the API key is allowed to do.
"""

import logging
from typing import Any

from newrelic_mcp.errors import PreconditionError
from newrelic_mcp.pagination import PageResult
from newrelic_mcp.rest.base import RestAdapter, response_dict
from newrelic_mcp.schemas import CreateDeploymentArgs, DeleteDeploymentArgs, ListDeploymentsArgs

logger = logging.getLogger("newrelic-mcp.rest.deployments")

_OPTIONAL_FIELDS = ("changelog", "description", "user")


class RestDeployments(RestAdapter):
    async def create(self, args: CreateDeploymentArgs) -> dict[str, Any]:
        deployment: dict[str, Any] = {"revision": args.revision}
        for name in _OPTIONAL_FIELDS:
            value = getattr(args, name)
            if value is not None:
                deployment[name] = value

        response = await self.rest.post(
            f"/applications/{args.application_id}/deployments",
            {"deployment": deployment},
        )
        return response_dict(response)

    async def list(self, args: ListDeploymentsArgs) -> PageResult:
        return await self._list(
            f"/applications/{args.application_id}/deployments",
            {},
            args,
            items_key="deployments",
        )

    async def delete(self, args: DeleteDeploymentArgs) -> dict[str, Any]:
        if args.confirm is not True:
            raise PreconditionError(
                "Refusing to delete deployment: set confirm=true to acknowledge this is irreversible",
                details={"application_id": args.application_id, "id": args.id},
            )

        logger.info(
            "Deleting deployment",
            extra={"log_data": {"application_id": args.application_id, "deployment_id": args.id}},
        )
        response = await self.rest.delete(f"/applications/{args.application_id}/deployments/{args.id}")
        return response_dict(response)
