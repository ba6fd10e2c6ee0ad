"""Tests for the credential check CLI (scripts/check_credentials.py)."""

from scripts.check_credentials import check_credentials

from conftest import TEST_API_KEY


async def test_valid_key_without_account(upstream):
    upstream.respond(json_body={"data": {"actor": {"user": {"id": 1, "email": "a@b.c"}}}})

    report = await check_credentials(TEST_API_KEY, transport=upstream.transport)

    assert report == {"valid": True, "region": "US", "account": None, "error": None}


async def test_valid_key_and_account_in_eu(upstream):
    upstream.respond(json_body={"data": {"actor": {"user": {"id": 1, "email": "a@b.c"}}}})
    upstream.respond(json_body={"data": {"actor": {"account": {"id": 42, "name": "Prod"}}}})

    report = await check_credentials(TEST_API_KEY, "42", "eu", transport=upstream.transport)

    assert report["valid"] is True
    assert report["account"] == {"account_id": "42", "name": "Prod", "region": "EU"}
    assert str(upstream.requests[1].url) == "https://api.eu.newrelic.com/graphql"


async def test_invalid_key_skips_account_lookup(upstream):
    upstream.respond(401)

    report = await check_credentials("bad", "42", transport=upstream.transport)

    assert report["valid"] is False
    assert report["account"] is None
    assert len(upstream.requests) == 1


async def test_unknown_account_is_reported(upstream):
    upstream.respond(json_body={"data": {"actor": {"user": {"id": 1}}}})
    upstream.respond(json_body={"data": {"actor": {"account": None}}})

    report = await check_credentials(TEST_API_KEY, "42", transport=upstream.transport)

    assert report["valid"] is True
    assert report["error"] == "NotFoundError: Account 42 not found"
