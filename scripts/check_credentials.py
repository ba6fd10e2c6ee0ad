"""
CLI utility to check New Relic credentials before wiring them into an MCP client.

Runs the same check the server relies on (NewRelicClient.validate_credentials)
and, when an account id is given, fetches the account details so you can
confirm the key can see that account.

Usage examples:

    # Validate a key (US region)
    python -m scripts.check_credentials --api-key NRAK-...

    # Validate a key and look up an account in the EU region
    python -m scripts.check_credentials --api-key NRAK-... --account-id 1234567 --region EU

    # Use NEW_RELIC_API_KEY / NEW_RELIC_ACCOUNT_ID / NEW_RELIC_REGION from the environment
    python -m scripts.check_credentials

Exit code is 0 when the key is valid (and the account, if given, was found),
1 otherwise.

Once the check passes, the same values go into the MCP client config as headers:

    claude mcp add --transport http newrelic http://localhost:8000/mcp \\
      --header "X-New-Relic-Api-Key: NRAK-..." \\
      --header "X-New-Relic-Account-Id: 1234567"
"""

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from typing import Any

import httpx

from newrelic_mcp.accounts import NewRelicClient
from newrelic_mcp.config import newrelic_settings
from newrelic_mcp.errors import NewRelicError
from newrelic_mcp.nerdgraph import NerdGraphClient


async def check_credentials(
    api_key: str,
    account_id: str | None = None,
    region: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    """
    Check the key and optionally one account.

    Args:
        api_key: New Relic User API key
        account_id: Account to look up (optional)
        region: "US" or "EU"
        transport: Optional httpx transport (tests)

    Returns:
        {"valid": bool, "region": str, "account": {...} | None, "error": str | None}
    """
    nerdgraph = NerdGraphClient(api_key, region, transport=transport)
    client = NewRelicClient(nerdgraph, default_account_id=account_id)

    report: dict[str, Any] = {
        "valid": await client.validate_credentials(),
        "region": nerdgraph.region.value,
        "account": None,
        "error": None,
    }

    if report["valid"] and account_id:
        try:
            report["account"] = asdict(await client.get_account_details(account_id))
        except NewRelicError as e:
            report["error"] = f"{e.__class__.__name__}: {e.message}"

    return report


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Check New Relic credentials for the MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Validate a key:
    %(prog)s --api-key NRAK-XXXX

  Validate a key and an account in the EU region:
    %(prog)s --api-key NRAK-XXXX --account-id 1234567 --region EU
        """,
    )

    parser.add_argument(
        "--api-key",
        default=newrelic_settings.api_key,
        help="New Relic User API key (default: NEW_RELIC_API_KEY)",
    )
    parser.add_argument(
        "--account-id",
        default=newrelic_settings.account_id,
        help="Account id to look up (default: NEW_RELIC_ACCOUNT_ID)",
    )
    parser.add_argument(
        "--region",
        default=newrelic_settings.region,
        help="Data center region, US or EU (default: NEW_RELIC_REGION or US)",
    )

    args = parser.parse_args()

    if not args.api_key:
        parser.error("an API key is required (--api-key or NEW_RELIC_API_KEY)")

    report = asyncio.run(check_credentials(args.api_key, args.account_id, args.region))
    print(json.dumps(report, indent=2))

    if not report["valid"] or report["error"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
