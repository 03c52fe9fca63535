"""Plain OAuth 2.0 client (RFC 6749, RFC 7009, RFC 7662).

Endpoints come from the environment and clients authenticate with a shared
client secret.
"""

from __future__ import annotations

from ..errors import MissingParameterError
from .base import AuthClient, ClientProfile
from .models import AnyGrantParams, Endpoints, GrantOptions


async def init_from_environment(client: AuthClient) -> Endpoints:
    """Take the endpoints from the client's environment."""
    env = client.env

    if not env.authorization_endpoint:
        raise MissingParameterError("env[authorizationEndpoint]")
    if not env.revocation_endpoint:
        raise MissingParameterError("env[revocationEndpoint]")
    if not env.token_endpoint:
        raise MissingParameterError("env[tokenEndpoint]")

    return Endpoints(
        authorization_endpoint=env.authorization_endpoint,
        token_endpoint=env.token_endpoint,
        revocation_endpoint=env.revocation_endpoint,
        introspection_endpoint=env.introspection_endpoint or None,
    )


async def authenticate_with_client_secret(
    client: AuthClient,
    params: AnyGrantParams,
    body: dict[str, str],
    opts: GrantOptions,
) -> None:
    """Add client_secret_post client authentication to a token request."""
    if not params.client_id:
        raise MissingParameterError("clientId")
    if not opts.client_secret:
        raise MissingParameterError("clientSecret")

    body["client_id"] = params.client_id
    body["client_secret"] = opts.client_secret


OAUTH2 = ClientProfile(
    client_type="OAuth2",
    initialize=init_from_environment,
    authenticate=authenticate_with_client_secret,
)


class OAuth2Client(AuthClient):
    """OAuth 2.0 client configured from explicit endpoints."""

    profile = OAUTH2
