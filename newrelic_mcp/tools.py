"""
Tool registry.

Maps every MCP tool name to the facts the server's middleware needs before
letting a call through:

    TOOL_REGISTRY = {
        "tool_name": ToolSpec(api=..., requires_account=..., destructive=...),
    }

- api: which upstream API the tool talks to ("nerdgraph" or "rest"), logged
  with every call
- requires_account: the call needs an account id, either from the
  target_account_id argument or the X-New-Relic-Account-Id header
- destructive: the call deletes data upstream; logged at warning level

A tool without an entry here is rejected, even if a handler is registered.
"""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class ToolSpec:
    api: Literal["nerdgraph", "rest"]
    requires_account: bool = False
    destructive: bool = False


TOOL_REGISTRY: dict[str, ToolSpec] = {
    # NerdGraph
    "run_nrql_query": ToolSpec(api="nerdgraph", requires_account=True),
    "list_apm_applications": ToolSpec(api="nerdgraph", requires_account=True),
    "get_account_details": ToolSpec(api="nerdgraph", requires_account=True),
    "search_entities": ToolSpec(api="nerdgraph", requires_account=True),
    "get_entity_details": ToolSpec(api="nerdgraph"),
    "list_alert_policies": ToolSpec(api="nerdgraph", requires_account=True),
    "list_open_incidents": ToolSpec(api="nerdgraph", requires_account=True),
    "acknowledge_incident": ToolSpec(api="nerdgraph", requires_account=True),
    "list_synthetics_monitors": ToolSpec(api="nerdgraph", requires_account=True),
    "create_browser_monitor": ToolSpec(api="nerdgraph", requires_account=True),
    "run_nerdgraph_query": ToolSpec(api="nerdgraph"),
    # REST v2
    "create_deployment": ToolSpec(api="rest"),
    "list_deployments_rest": ToolSpec(api="rest"),
    "delete_deployment": ToolSpec(api="rest", destructive=True),
    "list_apm_applications_rest": ToolSpec(api="rest"),
    "list_metric_names_for_host": ToolSpec(api="rest"),
    "get_metric_data_for_host": ToolSpec(api="rest"),
    "list_application_hosts": ToolSpec(api="rest"),
    "list_alert_policies_rest": ToolSpec(api="rest"),
    "list_open_incidents_rest": ToolSpec(api="rest"),
}
