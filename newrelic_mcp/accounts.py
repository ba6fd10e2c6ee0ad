"""
Fixed NerdGraph queries for accounts, NRQL, entities, alerts and synthetics.

NewRelicClient builds the query documents, runs them through a
NerdGraphClient and maps the nested `actor { ... }` responses into flat
records:

    validate_credentials()      actor.user                        -> bool
    get_account_details()       actor.account(id)                 -> AccountDetails
    run_nrql_query()            actor.account(id).nrql(...)       -> NrqlQueryResult
    list_apm_applications()     actor.entitySearch(APM apps)      -> [ApmApplication]
    search_entities()           actor.entitySearch(name, types)   -> [Entity]
    get_entity_details()        actor.entity(guid)                -> Entity
    list_alert_policies()       account.alerts.policiesSearch     -> [AlertPolicy]
    list_open_incidents()       account.aiIssues.issues           -> [Incident]
    acknowledge_incident()      aiIssuesAckIssue mutation         -> dict
    list_synthetics_monitors()  actor.entitySearch(SYNTH)         -> [SyntheticsMonitor]
    create_browser_monitor()    syntheticsCreateSimpleBrowserMonitor -> dict
    run_nerdgraph_query()       anything                          -> raw envelope

Two checks are plain substring heuristics rather than structural parses.
They live in is_time_series_query() and is_syntax_error() so they can be
replaced in one place.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from newrelic_mcp.errors import (
    ConfigurationError,
    NotFoundError,
    NrqlSyntaxError,
    QueryError,
    ValidationError,
)
from newrelic_mcp.nerdgraph import NerdGraphClient
from newrelic_mcp.schemas import (
    AcknowledgeIncidentArgs,
    CreateBrowserMonitorArgs,
    EntityDetailsArgs,
    SearchEntitiesArgs,
)

logger = logging.getLogger("newrelic-mcp.accounts")

_ACCOUNT_ID = re.compile(r"[0-9]+")

USER_QUERY = """{
  actor {
    user {
      id
      email
    }
  }
}"""

ACCOUNT_QUERY = """query ($id: Int!) {
  actor {
    account(id: $id) {
      id
      name
    }
  }
}"""

NRQL_QUERY = """{
  actor {
    account(id: %(account_id)s) {
      nrql(query: "%(nrql)s") {
        results
        metadata {
          eventTypes
          timeWindow {
            begin
            end
          }
          facets
        }
      }
    }
  }
}"""

APM_ENTITY_SEARCH_QUERY = """{
  actor {
    entitySearch(query: "domain = 'APM' AND type = 'APPLICATION' AND accountId = '%(account_id)s'") {
      results {
        entities {
          guid
          name
          ... on ApmApplicationEntityOutline {
            language
            reporting
            alertSeverity
            tags {
              key
              values
            }
          }
        }
      }
    }
  }
}"""

ENTITY_SEARCH_QUERY = """query ($query: String!) {
  actor {
    entitySearch(query: $query) {
      count
      results {
        entities {
          guid
          name
          type
          entityType
          domain
          accountId
          reporting
          alertSeverity
          tags {
            key
            values
          }
        }
      }
    }
  }
}"""

ENTITY_QUERY = """query ($guid: EntityGuid!) {
  actor {
    entity(guid: $guid) {
      guid
      name
      type
      entityType
      domain
      accountId
      reporting
      alertSeverity
      permalink
      tags {
        key
        values
      }
    }
  }
}"""

ALERT_POLICIES_QUERY = """query ($accountId: Int!) {
  actor {
    account(id: $accountId) {
      alerts {
        policiesSearch {
          policies {
            id
            name
            incidentPreference
          }
          totalCount
        }
      }
    }
  }
}"""

OPEN_INCIDENTS_QUERY = """query ($accountId: Int!) {
  actor {
    account(id: $accountId) {
      aiIssues {
        issues(filter: {states: [ACTIVATED, CREATED]}) {
          issues {
            issueId
            title
            priority
            state
            activatedAt
            entityNames
          }
        }
      }
    }
  }
}"""

ACKNOWLEDGE_ISSUE_MUTATION = """mutation ($accountId: Int!, $issueId: ID!) {
  aiIssuesAckIssue(accountId: $accountId, issueId: $issueId) {
    result {
      action
    }
    error
  }
}"""

SYNTHETICS_SEARCH_QUERY = """query ($query: String!) {
  actor {
    entitySearch(query: $query) {
      results {
        entities {
          guid
          name
          reporting
          ... on SyntheticMonitorEntityOutline {
            monitorType
            period
            monitoredUrl
          }
          tags {
            key
            values
          }
        }
      }
    }
  }
}"""

CREATE_BROWSER_MONITOR_MUTATION = """mutation ($accountId: Int!, $monitor: SyntheticsCreateSimpleBrowserMonitorInput!) {
  syntheticsCreateSimpleBrowserMonitor(accountId: $accountId, monitor: $monitor) {
    monitor {
      guid
      name
      uri
      period
      status
    }
    errors {
      type
      description
    }
  }
}"""

# Check interval in minutes -> SyntheticsMonitorPeriod
MONITOR_PERIODS = {
    1: "EVERY_MINUTE",
    5: "EVERY_5_MINUTES",
    10: "EVERY_10_MINUTES",
    15: "EVERY_15_MINUTES",
    30: "EVERY_30_MINUTES",
    60: "EVERY_HOUR",
    360: "EVERY_6_HOURS",
    720: "EVERY_12_HOURS",
    1440: "EVERY_DAY",
}


@dataclass(frozen=True)
class AccountDetails:
    account_id: str
    name: str
    region: str | None = None


@dataclass(frozen=True)
class ApmApplication:
    guid: str
    name: str
    language: str = "unknown"
    reporting: bool = False
    alert_severity: str | None = None
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Entity:
    guid: str
    name: str
    entity_type: str | None = None
    domain: str | None = None
    account_id: int | None = None
    reporting: bool = False
    alert_severity: str | None = None
    permalink: str | None = None
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AlertPolicy:
    id: str
    name: str
    incident_preference: str | None = None


@dataclass(frozen=True)
class Incident:
    issue_id: str
    title: Any = None
    priority: str | None = None
    state: str | None = None
    activated_at: int | None = None
    entity_names: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SyntheticsMonitor:
    guid: str
    name: str
    monitor_type: str | None = None
    period: int | None = None
    url: str | None = None
    reporting: bool = False
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class NrqlQueryResult:
    results: list[dict[str, Any]]
    metadata: dict[str, Any]


def is_time_series_query(nrql: str) -> bool:
    """True when the NRQL text mentions TIMESERIES anywhere (case-insensitive)."""
    return "timeseries" in nrql.lower()


def is_syntax_error(message: str) -> bool:
    """True when an upstream error message reports an NRQL syntax error (case-sensitive)."""
    return "Syntax error" in message


def escape_nrql(nrql: str) -> str:
    """Escape double quotes for embedding in a GraphQL string literal."""
    return nrql.replace('"', '\\"')


def _quote(value: str) -> str:
    """Single-quoted literal for an entity search expression."""
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def parse_tags(tags: list[dict[str, Any]] | None) -> dict[str, str]:
    """Flatten [{key, values: [...]}] into {key: first value}. Tags without values are dropped."""
    result: dict[str, str] = {}
    for tag in tags or []:
        if not isinstance(tag, dict):
            continue
        key = tag.get("key")
        values = tag.get("values")
        if key and isinstance(values, list) and values:
            result[key] = values[0]
    return result


def _dig(envelope: dict[str, Any], *path: str) -> Any:
    node: Any = envelope.get("data")
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _objects(node: Any) -> list[dict[str, Any]]:
    """The dict members of a list node; nulls and scalars are skipped."""
    if not isinstance(node, list):
        return []
    return [item for item in node if isinstance(item, dict)]


def _first_error(envelope: dict[str, Any]) -> str | None:
    errors = envelope.get("errors")
    if errors is None:
        return None
    if not isinstance(errors, list):
        raise QueryError("NerdGraph returned a malformed errors field", details={"errors": repr(errors)[:200]})
    if not errors:
        return None
    first = errors[0] if isinstance(errors[0], dict) else {}
    return first.get("message") or "NerdGraph query failed"


def _raise_for_errors(envelope: dict[str, Any]) -> None:
    message = _first_error(envelope)
    if message:
        raise QueryError(message)


def _entity(node: dict[str, Any]) -> Entity:
    return Entity(
        guid=node.get("guid", ""),
        name=node.get("name", ""),
        entity_type=node.get("entityType") or node.get("type"),
        domain=node.get("domain"),
        account_id=node.get("accountId"),
        reporting=bool(node.get("reporting")),
        alert_severity=node.get("alertSeverity"),
        permalink=node.get("permalink"),
        tags=parse_tags(node.get("tags")),
    )


class NewRelicClient:
    """
    Query builder on top of a NerdGraphClient.

    Args:
        nerdgraph: The GraphQL transport
        default_account_id: Used when an operation is called without an account id
    """

    def __init__(self, nerdgraph: NerdGraphClient, default_account_id: str | None = None):
        self.nerdgraph = nerdgraph
        self.default_account_id = default_account_id or None

    def _resolve_account_id(self, account_id: str | None) -> str:
        resolved = account_id or self.default_account_id
        if not resolved:
            raise ConfigurationError("Account ID must be provided")
        resolved = str(resolved)
        if not _ACCOUNT_ID.fullmatch(resolved):
            raise ValidationError("Invalid account ID format", details={"account_id": resolved})
        return resolved

    async def validate_credentials(self) -> bool:
        """
        Health check for the configured API key.

        Never raises: a network failure, a 401, a missing key or a malformed
        response all mean "not valid" here.
        """
        try:
            envelope = await self.nerdgraph.execute(USER_QUERY)
            return bool(_dig(envelope, "actor", "user"))
        except Exception as e:
            logger.debug("Credential validation failed: %s", e.__class__.__name__)
            return False

    async def get_account_details(self, account_id: str | None = None) -> AccountDetails:
        resolved = self._resolve_account_id(account_id)
        envelope = await self.nerdgraph.execute(ACCOUNT_QUERY, {"id": int(resolved)})

        account = _dig(envelope, "actor", "account")
        if not isinstance(account, dict) or not account:
            details = {"account_id": resolved}
            upstream = _first_error(envelope)
            if upstream:
                details["upstream_error"] = upstream
            raise NotFoundError(f"Account {resolved} not found", details=details)

        _raise_for_errors(envelope)

        return AccountDetails(
            account_id=str(account.get("id")),
            name=account.get("name", ""),
            region=self.nerdgraph.region.value,
        )

    async def run_nrql_query(self, nrql: str, account_id: str) -> NrqlQueryResult:
        """
        Run an NRQL query against one account.

        Raises:
            ValidationError: Empty/non-string NRQL or a non-numeric account id.
                             Nothing is sent in that case.
            QueryError: NerdGraph returned errors[], or no nrql node came back
            NrqlSyntaxError: The upstream message reports a syntax error
        """
        if not nrql or not isinstance(nrql, str):
            raise ValidationError("Invalid or empty NRQL query provided")
        if not account_id or not isinstance(account_id, str) or not _ACCOUNT_ID.fullmatch(account_id):
            raise ValidationError("Invalid account ID format", details={"account_id": account_id})

        query = NRQL_QUERY % {"account_id": account_id, "nrql": escape_nrql(nrql)}
        envelope = await self.nerdgraph.execute(query)

        message = _first_error(envelope)
        if message:
            if is_syntax_error(message):
                raise NrqlSyntaxError(f"NRQL Syntax error: {message}")
            raise QueryError(message)

        nrql_result = _dig(envelope, "actor", "account", "nrql")
        if not isinstance(nrql_result, dict) or not nrql_result:
            raise QueryError("No results returned from NRQL query")

        metadata = dict(nrql_result.get("metadata") or {})
        metadata["timeSeries"] = is_time_series_query(nrql)
        return NrqlQueryResult(results=nrql_result.get("results") or [], metadata=metadata)

    async def list_apm_applications(self, account_id: str | None = None) -> list[ApmApplication]:
        resolved = self._resolve_account_id(account_id)
        envelope = await self.nerdgraph.execute(APM_ENTITY_SEARCH_QUERY % {"account_id": resolved})
        _raise_for_errors(envelope)

        entities = _objects(_dig(envelope, "actor", "entitySearch", "results", "entities"))
        return [
            ApmApplication(
                guid=entity.get("guid", ""),
                name=entity.get("name", ""),
                language=entity.get("language") or "unknown",
                reporting=bool(entity.get("reporting")),
                alert_severity=entity.get("alertSeverity"),
                tags=parse_tags(entity.get("tags")),
            )
            for entity in entities
        ]

    async def search_entities(self, args: SearchEntitiesArgs, account_id: str | None = None) -> list[Entity]:
        """
        Entities of one account whose name contains `args.query`.

        `entity_types` narrows the search to those entity types
        (APPLICATION, HOST, MONITOR, ...); an empty list means no narrowing.
        """
        resolved = self._resolve_account_id(account_id)
        search = f"name LIKE {_quote('%' + args.query + '%')} AND accountId = '{resolved}'"
        if args.entity_types:
            search += " AND type IN (" + ", ".join(_quote(t) for t in args.entity_types) + ")"

        envelope = await self.nerdgraph.execute(ENTITY_SEARCH_QUERY, {"query": search})
        _raise_for_errors(envelope)

        entities = _objects(_dig(envelope, "actor", "entitySearch", "results", "entities"))
        return [_entity(entity) for entity in entities]

    async def get_entity_details(self, args: EntityDetailsArgs) -> Entity:
        envelope = await self.nerdgraph.execute(ENTITY_QUERY, {"guid": args.entity_guid})

        entity = _dig(envelope, "actor", "entity")
        if not isinstance(entity, dict) or not entity:
            details = {"entity_guid": args.entity_guid}
            upstream = _first_error(envelope)
            if upstream:
                details["upstream_error"] = upstream
            raise NotFoundError(f"Entity {args.entity_guid} not found", details=details)

        _raise_for_errors(envelope)
        return _entity(entity)

    async def list_alert_policies(self, account_id: str | None = None) -> list[AlertPolicy]:
        resolved = self._resolve_account_id(account_id)
        envelope = await self.nerdgraph.execute(ALERT_POLICIES_QUERY, {"accountId": int(resolved)})
        _raise_for_errors(envelope)

        policies = _objects(_dig(envelope, "actor", "account", "alerts", "policiesSearch", "policies"))
        return [
            AlertPolicy(
                id=str(policy.get("id", "")),
                name=policy.get("name", ""),
                incident_preference=policy.get("incidentPreference"),
            )
            for policy in policies
        ]

    async def list_open_incidents(
        self,
        account_id: str | None = None,
        priority: str | None = None,
    ) -> list[Incident]:
        """Activated and created issues; `priority` filters client-side (exact match)."""
        resolved = self._resolve_account_id(account_id)
        envelope = await self.nerdgraph.execute(OPEN_INCIDENTS_QUERY, {"accountId": int(resolved)})
        _raise_for_errors(envelope)

        issues = _objects(_dig(envelope, "actor", "account", "aiIssues", "issues", "issues"))
        incidents = [
            Incident(
                issue_id=str(issue.get("issueId", "")),
                title=issue.get("title"),
                priority=issue.get("priority"),
                state=issue.get("state"),
                activated_at=issue.get("activatedAt"),
                entity_names=issue.get("entityNames") or [],
            )
            for issue in issues
        ]
        if priority is not None:
            incidents = [i for i in incidents if i.priority == priority]
        return incidents

    async def acknowledge_incident(
        self,
        args: AcknowledgeIncidentArgs,
        account_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Acknowledge an open issue.

        The mutation has no comment field; the comment is logged with the
        acknowledgement and echoed back in the result.
        """
        resolved = self._resolve_account_id(account_id)
        logger.info(
            "Acknowledging incident",
            extra={"log_data": {"account_id": resolved, "incident_id": args.incident_id, "comment": args.comment}},
        )
        envelope = await self.nerdgraph.execute(
            ACKNOWLEDGE_ISSUE_MUTATION,
            {"accountId": int(resolved), "issueId": args.incident_id},
        )
        _raise_for_errors(envelope)

        outcome = _dig(envelope, "aiIssuesAckIssue")
        if not isinstance(outcome, dict):
            raise QueryError("No result returned from incident acknowledgement")
        if outcome.get("error"):
            raise QueryError(str(outcome["error"]), details={"incident_id": args.incident_id})

        return {
            "incident_id": args.incident_id,
            "acknowledged": True,
            "action": (outcome.get("result") or {}).get("action"),
            "comment": args.comment,
        }

    async def list_synthetics_monitors(self, account_id: str | None = None) -> list[SyntheticsMonitor]:
        resolved = self._resolve_account_id(account_id)
        search = f"domain = 'SYNTH' AND type = 'MONITOR' AND accountId = '{resolved}'"
        envelope = await self.nerdgraph.execute(SYNTHETICS_SEARCH_QUERY, {"query": search})
        _raise_for_errors(envelope)

        entities = _objects(_dig(envelope, "actor", "entitySearch", "results", "entities"))
        return [
            SyntheticsMonitor(
                guid=entity.get("guid", ""),
                name=entity.get("name", ""),
                monitor_type=entity.get("monitorType"),
                period=entity.get("period"),
                url=entity.get("monitoredUrl"),
                reporting=bool(entity.get("reporting")),
                tags=parse_tags(entity.get("tags")),
            )
            for entity in entities
        ]

    async def create_browser_monitor(
        self,
        args: CreateBrowserMonitorArgs,
        account_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Create an enabled simple-browser monitor running from public locations.

        Raises:
            ValidationError: `frequency` is not one of MONITOR_PERIODS (minutes)
            QueryError: errors[] or the mutation's own errors list is non-empty
        """
        resolved = self._resolve_account_id(account_id)
        period = MONITOR_PERIODS.get(args.frequency)
        if period is None:
            raise ValidationError(
                f"create_browser_monitor: unsupported frequency {args.frequency}",
                details={"supported_minutes": sorted(MONITOR_PERIODS)},
            )

        monitor = {
            "name": args.name,
            "uri": args.url,
            "period": period,
            "status": "ENABLED",
            "locations": {"public": list(args.locations)},
        }
        envelope = await self.nerdgraph.execute(
            CREATE_BROWSER_MONITOR_MUTATION,
            {"accountId": int(resolved), "monitor": monitor},
        )
        _raise_for_errors(envelope)

        outcome = _dig(envelope, "syntheticsCreateSimpleBrowserMonitor")
        if not isinstance(outcome, dict):
            raise QueryError("No result returned from monitor creation")
        errors = _objects(outcome.get("errors"))
        if errors:
            raise QueryError(
                errors[0].get("description") or "Monitor creation failed",
                details={"errors": errors},
            )

        created = outcome.get("monitor") or {}
        logger.info(
            "Created browser monitor",
            extra={"log_data": {"account_id": resolved, "guid": created.get("guid"), "period": period}},
        )
        return created

    async def run_nerdgraph_query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Pass a caller-written document through. errors[] is returned, not raised."""
        if not query or not isinstance(query, str):
            raise ValidationError("NerdGraph query must be a non-empty string")
        return await self.nerdgraph.execute(query, variables)
