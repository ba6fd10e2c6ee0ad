"""Adapters for the New Relic REST v2 resource families."""

from newrelic_mcp.rest.alerts import RestAlerts
from newrelic_mcp.rest.apm import RestApm
from newrelic_mcp.rest.deployments import RestDeployments
from newrelic_mcp.rest.metrics import RestMetrics

__all__ = ["RestAlerts", "RestApm", "RestDeployments", "RestMetrics"]
