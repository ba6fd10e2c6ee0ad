"""
Argument records for the REST adapters and the NerdGraph operations that
take free-form input.

One closed pydantic model per operation. The MCP layer builds these
from tool arguments, so shape problems (wrong types, unknown keys) are
rejected at the boundary and the adapters only deal with well-typed input.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints


class _Args(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)


class PaginationArgs(_Args):
    page: int | None = Field(None, ge=1, description="Page number to fetch (1-based)")
    auto_paginate: bool = Field(False, description="Follow Link rel=next until all pages are fetched")


# --- Deployments ---


class CreateDeploymentArgs(_Args):
    application_id: int
    revision: str = Field(..., min_length=1)
    changelog: str | None = None
    description: str | None = None
    user: str | None = None


class ListDeploymentsArgs(PaginationArgs):
    application_id: int


class DeleteDeploymentArgs(_Args):
    application_id: int
    id: int
    confirm: bool = False


# --- APM applications ---


class ListApplicationsArgs(PaginationArgs):
    filter_name: str | None = None
    filter_host: str | None = None
    filter_language: str | None = None
    filter_ids: list[int] | None = None


# --- Metrics ---


class ListMetricNamesArgs(PaginationArgs):
    application_id: int
    host_id: int
    name: str | None = None


class GetMetricDataArgs(PaginationArgs):
    application_id: int
    host_id: int
    names: list[str]
    values: list[str] | None = None
    # ISO-8601 strings, forwarded verbatim
    from_: str | None = Field(None, alias="from")
    to: str | None = None
    period: int | None = Field(None, ge=1, description="Timeslice period in seconds")
    summarize: bool | None = None


class ListApplicationHostsArgs(PaginationArgs):
    application_id: int
    filter_hostname: str | None = None
    filter_ids: str | list[int] | None = None


# --- Alerts ---


class ListPoliciesArgs(PaginationArgs):
    filter_name: str | None = None


class ListIncidentsArgs(PaginationArgs):
    only_open: bool = False
    priority: str | None = None


# --- NerdGraph entities, alerts and synthetics ---

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class SearchEntitiesArgs(_Args):
    query: NonEmptyStr
    entity_types: list[str] | None = None


class EntityDetailsArgs(_Args):
    entity_guid: NonEmptyStr


class AcknowledgeIncidentArgs(_Args):
    incident_id: NonEmptyStr
    comment: str | None = None


class CreateBrowserMonitorArgs(_Args):
    name: NonEmptyStr
    url: NonEmptyStr
    frequency: int = Field(..., gt=0, description="Check interval in minutes")
    locations: list[str]
