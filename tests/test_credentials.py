"""
Unit tests for per-request credential resolution (newrelic_mcp/credentials.py).

resolve_credentials() is exercised directly with plain header dicts. The
environment fallback is given explicitly as a NewRelicSettings instance so
the tests never depend on the NEW_RELIC_* variables of the machine running
them.
"""

import pytest

from newrelic_mcp.config import NewRelicSettings
from newrelic_mcp.credentials import (
    ACCOUNT_ID_HEADER,
    API_KEY_HEADER,
    REGION_HEADER,
    Credentials,
    resolve_credentials,
)
from newrelic_mcp.regions import Region


@pytest.fixture
def no_defaults() -> NewRelicSettings:
    return NewRelicSettings(api_key="", account_id=None, region="US")


@pytest.fixture
def env_defaults() -> NewRelicSettings:
    return NewRelicSettings(api_key="env-key", account_id="999", region="EU")


class TestHeaders:
    def test_all_headers_present(self, no_defaults):
        creds = resolve_credentials(
            {
                "X-New-Relic-Api-Key": "NRAK-abc",
                "X-New-Relic-Account-Id": "123456",
                "X-New-Relic-Region": "EU",
            },
            no_defaults,
        )

        assert creds.api_key == "NRAK-abc"
        assert creds.account_id == "123456"
        assert creds.region is Region.EU
        assert creds.has_api_key

    def test_header_names_are_case_insensitive(self, no_defaults):
        creds = resolve_credentials({API_KEY_HEADER.upper(): "NRAK-abc", ACCOUNT_ID_HEADER: "1"}, no_defaults)

        assert creds.api_key == "NRAK-abc"
        assert creds.account_id == "1"

    def test_values_are_stripped(self, no_defaults):
        creds = resolve_credentials({API_KEY_HEADER: "  NRAK-abc  ", REGION_HEADER: " eu "}, no_defaults)

        assert creds.api_key == "NRAK-abc"
        assert creds.region is Region.EU

    @pytest.mark.parametrize("region", ["US", "us", "", "APAC", None])
    def test_anything_but_eu_is_us(self, no_defaults, region):
        headers = {API_KEY_HEADER: "k"}
        if region is not None:
            headers[REGION_HEADER] = region

        assert resolve_credentials(headers, no_defaults).region is Region.US


class TestFallback:
    def test_no_headers_uses_environment(self, env_defaults):
        creds = resolve_credentials(None, env_defaults)

        assert creds.api_key == "env-key"
        assert creds.account_id == "999"
        assert creds.region is Region.EU

    def test_headers_win_over_environment(self, env_defaults):
        creds = resolve_credentials(
            {API_KEY_HEADER: "header-key", ACCOUNT_ID_HEADER: "1", REGION_HEADER: "US"},
            env_defaults,
        )

        assert creds.api_key == "header-key"
        assert creds.account_id == "1"
        assert creds.region is Region.US

    def test_blank_header_falls_back(self, env_defaults):
        creds = resolve_credentials({API_KEY_HEADER: "   "}, env_defaults)

        assert creds.api_key == "env-key"

    def test_nothing_configured(self, no_defaults):
        creds = resolve_credentials({}, no_defaults)

        assert creds.api_key == ""
        assert creds.account_id is None
        assert not creds.has_api_key


class TestCredentials:
    def test_repr_hides_api_key(self):
        creds = Credentials(api_key="NRAK-secret", account_id="1", region=Region.US)

        assert "NRAK-secret" not in repr(creds)
        assert "account_id='1'" in repr(creds)

    def test_is_immutable(self):
        creds = Credentials(api_key="k", account_id=None, region=Region.US)

        with pytest.raises(AttributeError):
            creds.api_key = "other"
