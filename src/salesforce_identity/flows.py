"""Flow helpers over the client cache.

Each helper looks up (or builds) the initialised client for an environment and
performs one operation, setting the grant type tag on behalf of the caller.
Parameter mappings use the struct field names, without ``grantType``.

Example:
    token = await request_refresh_token(
        cache, env, {"client_id": "...", "refresh_token": "..."}, {"client_secret": "..."}
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from .client.models import (
    AuthCodeGrantParams,
    AuthOptions,
    AuthUrlParams,
    GrantOptions,
    GrantParams,
    JwtGrantParams,
    RefreshGrantParams,
    UserInfoOptions,
    resolve_options,
)
from .errors import GrantError, IdentityError, UserInfoError
from .logging_config import get_logger

if TYPE_CHECKING:
    from .client.cache import ClientCache
    from .config import Environment

logger = get_logger("flows")

GrantParamsT = TypeVar("GrantParamsT", bound=GrantParams)


def _grant_params(
    params: "GrantParamsT | dict[str, Any]", params_type: type[GrantParamsT]
) -> GrantParamsT:
    if isinstance(params, params_type):
        return params
    tagged = {**params, "grantType": params_type.__struct_config__.tag}  # type: ignore[dict-item]
    return resolve_options(tagged, params_type)


async def request_jwt_bearer_token(
    cache: "ClientCache",
    env: "Environment | dict[str, Any]",
    params: JwtGrantParams | dict[str, Any],
    opts: GrantOptions | dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Request an access token for a user with the JWT bearer grant.

    Raises:
        GrantError: ``Invalid grant for user ({username}). Caused by: {reason}``
    """
    jwt_params = _grant_params(params, JwtGrantParams)
    username = jwt_params.user.username if jwt_params.user else None

    try:
        client = await cache.find_or_create(env)
        return await client.grant(jwt_params, opts)
    except (IdentityError, httpx.HTTPError) as e:
        logger.warning("JWT bearer grant failed for user %s: %s", username, e)
        raise GrantError(f"Invalid grant for user ({username}). Caused by: {e}") from e


async def request_refresh_token(
    cache: "ClientCache",
    env: "Environment | dict[str, Any]",
    params: RefreshGrantParams | dict[str, Any],
    opts: GrantOptions | dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Exchange a refresh token for a new access token.

    The caller's refresh token is copied onto the response when the provider
    does not return one.
    """
    refresh_params = _grant_params(params, RefreshGrantParams)

    client = await cache.find_or_create(env)
    response = await client.grant(refresh_params, opts)
    if isinstance(response, dict):
        response.setdefault("refresh_token", refresh_params.refresh_token)
    return response


async def request_authorization_code_token(
    cache: "ClientCache",
    env: "Environment | dict[str, Any]",
    params: AuthCodeGrantParams | dict[str, Any],
    opts: GrantOptions | dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Exchange an authorization code for an access token (web server flow)."""
    code_params = _grant_params(params, AuthCodeGrantParams)

    client = await cache.find_or_create(env)
    return await client.grant(code_params, opts)


async def request_user_info(
    cache: "ClientCache",
    env: "Environment | dict[str, Any]",
    access_token: str,
    opts: UserInfoOptions | dict[str, Any] | None = None,
) -> Any:
    """Request the OpenID userinfo for an access token.

    Raises:
        UserInfoError: ``Failed to retrieve user information. Caused by: {reason}``
    """
    try:
        client = await cache.find_or_create(env)
        return await client.userinfo(access_token, opts)
    except (IdentityError, httpx.HTTPError) as e:
        raise UserInfoError(f"Failed to retrieve user information. Caused by: {e}") from e


async def generate_authorization_url(
    cache: "ClientCache",
    env: "Environment | dict[str, Any]",
    params: AuthUrlParams | dict[str, Any],
    opts: AuthOptions | dict[str, Any] | None = None,
) -> str:
    """Build the authorization URL that starts the web server flow."""
    client = await cache.find_or_create(env)
    return client.create_authorization_url(params, opts)
