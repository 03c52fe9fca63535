"""Client environment configuration.

An :class:`Environment` describes one identity provider: which client type to
build, the issuer URI, the HTTP timeout and (for plain OAuth2 providers) the
explicit endpoint URLs. Environments are immutable; the client cache keys
clients on ``(type, issuer_uri, http_timeout)``.

Environment variables read by :meth:`Environment.from_env`:
    OAUTH_CLIENT_TYPE: OAuth2, OAuth2JWT, OpenID or Salesforce (default: Salesforce)
    OAUTH_ISSUER_URI: Issuer URI (default: https://login.salesforce.com)
    OAUTH_HTTP_TIMEOUT: HTTP timeout in milliseconds (default: 4000)
    OAUTH_AUTHORIZATION_ENDPOINT: Authorization endpoint (OAuth2/OAuth2JWT only)
    OAUTH_TOKEN_ENDPOINT: Token endpoint (OAuth2/OAuth2JWT only)
    OAUTH_REVOCATION_ENDPOINT: Revocation endpoint (OAuth2/OAuth2JWT only)
    OAUTH_INTROSPECTION_ENDPOINT: Introspection endpoint (optional)
"""

from __future__ import annotations

import os
from typing import Any, Literal

import msgspec

from .errors import ConfigurationError
from .logging_config import get_logger

logger = get_logger("config")

ClientTypeName = Literal["OAuth2", "OAuth2JWT", "OpenID", "Salesforce"]

CLIENT_TYPES: tuple[str, ...] = ("OAuth2", "OAuth2JWT", "OpenID", "Salesforce")

DEFAULT_ISSUER_URI = "https://login.salesforce.com"
DEFAULT_HTTP_TIMEOUT = 4000


class Environment(msgspec.Struct, frozen=True, kw_only=True):
    """Identity provider configuration bound to a single client."""

    type: ClientTypeName
    issuer_uri: str
    http_timeout: int
    authorization_endpoint: str | None = None
    token_endpoint: str | None = None
    revocation_endpoint: str | None = None
    introspection_endpoint: str | None = None

    @property
    def timeout_seconds(self) -> float:
        """HTTP timeout converted for httpx."""
        return self.http_timeout / 1000

    @classmethod
    def from_env(cls) -> "Environment":
        """Create an Environment from OAUTH_* environment variables.

        Raises:
            ConfigurationError: If the resulting environment is invalid
        """
        raw_timeout = os.getenv("OAUTH_HTTP_TIMEOUT", str(DEFAULT_HTTP_TIMEOUT))
        try:
            http_timeout: Any = int(raw_timeout)
        except ValueError:
            http_timeout = raw_timeout

        values = {
            "type": os.getenv("OAUTH_CLIENT_TYPE", "Salesforce"),
            "issuer_uri": os.getenv("OAUTH_ISSUER_URI", DEFAULT_ISSUER_URI),
            "http_timeout": http_timeout,
            "authorization_endpoint": os.getenv("OAUTH_AUTHORIZATION_ENDPOINT") or None,
            "token_endpoint": os.getenv("OAUTH_TOKEN_ENDPOINT") or None,
            "revocation_endpoint": os.getenv("OAUTH_REVOCATION_ENDPOINT") or None,
            "introspection_endpoint": os.getenv("OAUTH_INTROSPECTION_ENDPOINT") or None,
        }
        logger.debug(
            "Loaded environment: type=%s, issuer_uri=%s, http_timeout=%s",
            values["type"],
            values["issuer_uri"],
            values["http_timeout"],
        )
        return validate_environment(values)


def validate_environment(env: "Environment | dict[str, Any] | None") -> Environment:
    """Check the presence and type of the fields every client needs.

    Accepts an Environment or a plain mapping using the Environment field
    names, and returns an Environment.

    Raises:
        ConfigurationError: Naming the first missing or invalid field
    """
    if env is None:
        raise ConfigurationError("Missing required object parameter.")

    values = msgspec.structs.asdict(env) if isinstance(env, Environment) else dict(env)

    http_timeout = values.get("http_timeout")
    if http_timeout is None:
        raise ConfigurationError("Missing required number parameter: httpTimeout.")
    if isinstance(http_timeout, bool) or not isinstance(http_timeout, int):
        raise ConfigurationError("Invalid parameter: httpTimeout is not a number.")

    issuer_uri = values.get("issuer_uri")
    if issuer_uri is None:
        raise ConfigurationError("Missing required string parameter: issuerURI.")
    if not isinstance(issuer_uri, str):
        raise ConfigurationError("Invalid parameter: issuerURI is not a string.")
    if not issuer_uri:
        raise ConfigurationError("Invalid parameter: issuerURI cannot be empty.")

    client_type = values.get("type")
    if client_type is None:
        raise ConfigurationError("Missing required string parameter: type.")
    if client_type not in CLIENT_TYPES:
        raise ConfigurationError(
            f"Invalid parameter: type is not one of {', '.join(CLIENT_TYPES)}."
        )

    if isinstance(env, Environment):
        return env
    return Environment(**values)
