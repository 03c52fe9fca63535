"""OAuth 2.0 client with JWT bearer support (RFC 7523).

Adds the JWT bearer grant type and lets the authorization code and refresh
token grants authenticate with a signed client assertion instead of a shared
secret.
"""

from __future__ import annotations

from ..errors import MissingParameterError
from ..logging_config import get_logger
from .assertion import build_client_assertion, build_grant_assertion
from .base import AuthClient
from .models import (
    CLIENT_ASSERTION_TYPE,
    JWT_BEARER,
    AnyGrantParams,
    GrantOptions,
    JwtGrantParams,
)
from .oauth2 import OAUTH2

logger = get_logger("client.oauth2_jwt")


async def authenticate_with_jwt(
    client: AuthClient,
    params: AnyGrantParams,
    body: dict[str, str],
    opts: GrantOptions,
) -> None:
    """Authenticate with a grant assertion, a client assertion or a client secret.

    - JWT bearer grants carry a grant assertion for ``params.user``.
    - Other grants use a client assertion when ``opts.signing_secret`` is set,
      otherwise the client secret.
    """
    if isinstance(params, JwtGrantParams):
        if not params.signing_secret:
            raise MissingParameterError("signingSecret", "object", ".")
        if not params.user:
            raise MissingParameterError("user", "object", ".")
        if not params.client_id:
            raise MissingParameterError("clientId")

        body["assertion"] = build_grant_assertion(
            client.env.issuer_uri,
            params.client_id,
            params.user.username,
            params.signing_secret,
        )
        body["grant_type"] = JWT_BEARER
        return

    if not params.client_id:
        raise MissingParameterError("clientId")

    body["client_id"] = params.client_id

    if opts.signing_secret:
        endpoints = client.require_endpoints()
        logger.debug("Using private key JWT client authentication for %s", params.client_id)
        body["client_assertion_type"] = CLIENT_ASSERTION_TYPE
        body["client_assertion"] = build_client_assertion(
            params.client_id, endpoints.token_endpoint, opts.signing_secret
        )
        return

    if not opts.client_secret:
        raise MissingParameterError("clientSecret")
    body["client_secret"] = opts.client_secret


OAUTH2_JWT = OAUTH2.extend(
    "OAuth2JWT",
    grant_types=(JWT_BEARER,),
    authenticate=authenticate_with_jwt,
)


class OAuth2JWTClient(AuthClient):
    """OAuth 2.0 client that can sign JWT bearer assertions."""

    profile = OAUTH2_JWT
