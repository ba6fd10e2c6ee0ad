"""
Application configuration loaded from environment variables.

Uses pydantic-settings to define typed configuration that automatically reads
from environment variables (and a local .env file).

Two groups of settings live here:

- Settings (MCP_ prefix): how the MCP server itself runs - bind address,
  port, log level and the per-request timeout used for upstream HTTP calls.
- NewRelicSettings (NEW_RELIC_ prefix): fallback New Relic credentials. Each
  MCP request normally carries its own credentials in X-New-Relic-* headers;
  these values are only used when a header is absent (e.g. single-tenant
  deployments or the stdio transport).
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Server configuration with environment variable bindings.

    Each field maps to an environment variable with the MCP_ prefix.
    For example, `port` reads from MCP_PORT.
    """

    # "0.0.0.0" is required inside containers so traffic from outside can reach us.
    host: str = "0.0.0.0"

    port: int = 8000

    # Maps to Python's logging levels.
    log_level: str = "info"

    # Seconds allowed for a single upstream HTTP call. A paginated listing
    # makes several calls, each with its own budget.
    request_timeout: float = 30.0

    model_config = {
        "env_prefix": "MCP_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


class NewRelicSettings(BaseSettings):
    """
    Fallback New Relic credentials.

    NEW_RELIC_API_KEY, NEW_RELIC_ACCOUNT_ID and NEW_RELIC_REGION. An empty
    api_key is allowed here: the clients check the key on every call and
    raise ConfigurationError then, not at startup.
    """

    api_key: str = ""
    account_id: str | None = None
    region: str = "US"

    model_config = {
        "env_prefix": "NEW_RELIC_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
newrelic_settings = NewRelicSettings()
