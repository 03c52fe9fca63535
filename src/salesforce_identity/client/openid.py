"""OpenID Connect client.

Endpoints are discovered from ``{issuer}/.well-known/openid-configuration``.
Successful token responses run two steps, in order:

1. ``verify_id_token_step``: check the ID token signature against the JWKS
2. ``decode_id_token_step``: replace the ``id_token`` string with its claims

A response without an ``id_token`` is only an error when its scope asks for
``openid``.
"""

from __future__ import annotations

from typing import Any

import jwt

from ..errors import ClientInitializationError, DiscoveryError, IdTokenError
from ..logging_config import get_logger
from .base import AuthClient
from .models import Endpoints, GrantOptions
from .oauth2_jwt import OAUTH2_JWT

logger = get_logger("client.openid")


async def init_from_discovery(client: AuthClient) -> Endpoints:
    """Resolve the endpoints from the provider's discovery document."""
    env = client.env
    failure = (
        f"Failed to initialise {client.client_type} client. "
        "OpenID configuration request failed."
    )

    try:
        metadata = await client.issuer_cache.discover_or_get(env.http_timeout, env.issuer_uri)
    except DiscoveryError as e:
        raise ClientInitializationError(failure) from e

    if not metadata.authorization_endpoint or not metadata.token_endpoint:
        raise ClientInitializationError(
            f"Failed to initialise {client.client_type} client. "
            "OpenID configuration is missing the authorization or token endpoint."
        )

    return Endpoints(
        authorization_endpoint=metadata.authorization_endpoint,
        token_endpoint=metadata.token_endpoint,
        revocation_endpoint=metadata.revocation_endpoint,
        introspection_endpoint=metadata.introspection_endpoint,
        userinfo_endpoint=metadata.userinfo_endpoint,
        jwks_uri=metadata.jwks_uri,
    )


def check_missing_id_token(response: dict[str, Any]) -> None:
    """Fail if a response without an ID token requested the openid scope."""
    scope = response.get("scope")
    if scope and "openid" in scope.split(" "):
        raise IdTokenError("No id_token present")


def decode_id_token(id_token: str) -> dict[str, Any]:
    """Decode the claims of an ID token without verifying its signature."""
    try:
        return jwt.decode(id_token, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        raise IdTokenError(f"Unable to decode ID token: {e}") from e


def verify_id_token(id_token: str, keys: dict[str, jwt.PyJWK] | None) -> dict[str, Any]:
    """Verify an ID token against the provider's keys and return its claims.

    The audience is not checked; expiry is.
    """
    if not keys:
        raise IdTokenError("Unable to verify ID token: No JWKs provided")

    try:
        header = jwt.get_unverified_header(id_token)
    except jwt.PyJWTError as e:
        raise IdTokenError(f"Unable to verify ID token: {e}") from e

    kid = header.get("kid")
    if not kid:
        raise IdTokenError(
            "Unable to verify ID token: decoded token header does not contain the kid"
        )

    key = keys.get(kid)
    if key is None:
        raise IdTokenError(f"Unable to verify ID token: no key for kid {kid}")

    try:
        return jwt.decode(
            id_token,
            key.key,
            algorithms=[key.algorithm_name],
            options={"verify_aud": False},
        )
    except jwt.PyJWTError as e:
        raise IdTokenError(f"Unable to verify ID token: {e}") from e


def is_openid_token_with_standard_claims(token: Any) -> bool:
    """Return True if decoded ID token claims include the standard profile claims."""
    return isinstance(token, dict) and "email" in token


async def require_id_token_step(
    client: AuthClient, response: dict[str, Any], opts: GrantOptions
) -> dict[str, Any]:
    if (opts.verify_id_token or opts.decode_id_token) and not response.get("id_token"):
        check_missing_id_token(response)
    return response


async def verify_id_token_step(
    client: AuthClient, response: dict[str, Any], opts: GrantOptions
) -> dict[str, Any]:
    id_token = response.get("id_token")
    if not opts.verify_id_token or not id_token:
        return response
    if not isinstance(id_token, str):
        raise IdTokenError("Unable to verify ID token: id_token is not a string")

    verify_id_token(id_token, await client.json_web_keys())
    logger.debug("ID token verified for %s client", client.client_type)
    return response


async def decode_id_token_step(
    client: AuthClient, response: dict[str, Any], opts: GrantOptions
) -> dict[str, Any]:
    id_token = response.get("id_token")
    if opts.decode_id_token and isinstance(id_token, str) and id_token:
        response["id_token"] = decode_id_token(id_token)
    return response


OPENID = OAUTH2_JWT.extend(
    "OpenID",
    initialize=init_from_discovery,
    access_token_steps=(require_id_token_step, verify_id_token_step, decode_id_token_step),
)


class OpenIdClient(AuthClient):
    """OpenID Connect client configured by discovery."""

    profile = OPENID
