"""Unit tests for region routing (newrelic_mcp/regions.py)."""

import pytest

from newrelic_mcp.regions import Region, region_endpoints, resolve_region


class TestResolveRegion:
    @pytest.mark.parametrize("token", ["EU", "eu", "Eu", " eU "])
    def test_eu_any_case(self, token):
        assert resolve_region(token) is Region.EU

    @pytest.mark.parametrize("token", [None, "", "US", "us", "APAC", "europe", "E U"])
    def test_everything_else_is_us(self, token):
        """Unknown and missing regions fall back to US instead of failing."""
        assert resolve_region(token) is Region.US

    def test_region_enum_passes_through(self):
        assert resolve_region(Region.EU) is Region.EU


class TestRegionEndpoints:
    def test_us_endpoints(self):
        endpoints = region_endpoints("US")

        assert endpoints.rest_base_url == "https://api.newrelic.com/v2"
        assert endpoints.graphql_url == "https://api.newrelic.com/graphql"

    def test_eu_endpoints(self):
        endpoints = region_endpoints("eu")

        assert endpoints.rest_base_url == "https://api.eu.newrelic.com/v2"
        assert endpoints.graphql_url == "https://api.eu.newrelic.com/graphql"

    def test_unknown_region_uses_us_hosts(self):
        assert region_endpoints("mars") == region_endpoints(None) == region_endpoints(Region.US)
