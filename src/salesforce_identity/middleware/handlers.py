"""Request handlers run by :class:`~salesforce_identity.middleware.asgi.AuthenticationMiddleware`.

Each ``create_*`` factory returns an async handler taking a Starlette request.
Handlers record their results on ``request.state`` and deny the request
through :func:`~salesforce_identity.middleware.common.fail` on any error.

State set by the handlers:
    user: User (token validator, token introspection)
    token_information: introspection response (token introspection)
    grant_checked: True (grant checker)
    authorization: "{token_type} {access_token}" (auth callback)
    salesforce_user_info: Salesforce userInfo (auth callback)
    access_token: access token, if set_token_on_context (auth callback)
    salesforce_identity: identity URL response (identity retriever)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable

import httpx
import msgspec

from ..client.models import (
    GrantOptions,
    IntrospectionOptions,
    IntrospectionParams,
    JwtGrantParams,
    User,
)
from ..client.openid import is_openid_token_with_standard_claims
from ..client.salesforce import is_salesforce_access_token_response
from ..config import DEFAULT_HTTP_TIMEOUT
from ..errors import ConfigurationError, IdentityError, MissingParameterError, UserInfoError
from ..flows import (
    request_authorization_code_token,
    request_jwt_bearer_token,
    request_user_info,
)
from .common import (
    EVENT_AUTHORIZATION_HEADER_SET,
    EVENT_GRANT_CHECKED,
    EVENT_TOKEN_VALIDATED,
    EVENT_USER_IDENTITY_RETRIEVED,
    AuthEventListener,
    LoggingEventListener,
    client_host,
    extract_access_token,
    fail,
    parse_bearer,
)

if TYPE_CHECKING:
    from starlette.requests import Request

    from ..client.cache import ClientCache
    from ..config import Environment

Handler = Callable[["Request"], Awaitable[None]]

HANDLED_ERRORS = (IdentityError, httpx.HTTPError, msgspec.DecodeError)


def create_token_validator(
    cache: "ClientCache",
    env: "Environment",
    listener: AuthEventListener | None = None,
) -> Handler:
    """Validate the bearer token with the provider's userinfo endpoint."""
    listener = listener or LoggingEventListener()

    async def validate_token(request: "Request") -> None:
        try:
            access_token = extract_access_token(request)
            user_info = await request_user_info(cache, env, access_token)
            if not isinstance(user_info, dict):
                raise UserInfoError("Failed to retrieve user information. Caused by: not a JSON object")
        except HANDLED_ERRORS as e:
            fail(listener, request, e)

        user = User(
            username=user_info.get("preferred_username"),
            organization_id=user_info.get("organization_id"),
        )
        request.state.user = user
        listener(
            EVENT_TOKEN_VALIDATED,
            f"Token validated for {user.username} ({client_host(request)}).",
        )

    return validate_token


def create_token_introspector(
    cache: "ClientCache",
    env: "Environment",
    params: IntrospectionParams | dict[str, Any],
    opts: IntrospectionOptions | dict[str, Any] | None = None,
    listener: AuthEventListener | None = None,
) -> Handler:
    """Introspect the bearer token and record what the provider knows about it."""
    listener = listener or LoggingEventListener()

    async def introspect_token(request: "Request") -> None:
        try:
            access_token = extract_access_token(request)
            client = await cache.find_or_create(env)
            token_information = await client.introspect(access_token, params, opts)
        except HANDLED_ERRORS as e:
            fail(listener, request, e)

        username = token_information.get("username")
        if username:
            request.state.user = User(username=username)
            listener(
                EVENT_TOKEN_VALIDATED,
                f"Token validated for user ({username}) [{client_host(request)}].",
            )
        request.state.token_information = token_information

    return introspect_token


def _require_user(request: "Request") -> User:
    user = getattr(request.state, "user", None)
    if user is None:
        raise MissingParameterError("state[user]", "object")

    username = getattr(user, "username", None)
    if username is None:
        raise MissingParameterError("state[user][username]")
    if not username:
        raise ConfigurationError("Invalid parameter: state[user][username] cannot be empty")
    return user


def create_grant_checker(
    cache: "ClientCache",
    env: "Environment",
    client_id: str,
    signing_secret: str,
    listener: AuthEventListener | None = None,
) -> Handler:
    """Check that a JWT bearer grant can be obtained for ``request.state.user``."""
    listener = listener or LoggingEventListener()
    grant_opts = GrantOptions(verify_id_token=False, verify_signature=False)

    async def check_grant(request: "Request") -> None:
        try:
            user = _require_user(request)
            await request_jwt_bearer_token(
                cache,
                env,
                JwtGrantParams(
                    client_id=client_id,
                    signing_secret=signing_secret,
                    user=User(username=user.username),
                ),
                grant_opts,
            )
        except HANDLED_ERRORS as e:
            fail(listener, request, e)

        request.state.grant_checked = True
        listener(
            EVENT_GRANT_CHECKED,
            f"Grant checked for {user.username} ({client_host(request)}).",
        )

    return check_grant


def _validate_callback(request: "Request") -> str:
    error = request.query_params.get("error")
    if error:
        raise IdentityError(error)

    code = request.query_params.get("code")
    if not code:
        raise MissingParameterError("query[code]")
    return code


def create_auth_callback(
    cache: "ClientCache",
    env: "Environment",
    client_id: str,
    opts: GrantOptions | dict[str, Any] | None = None,
    *,
    set_token_on_context: bool = False,
    listener: AuthEventListener | None = None,
) -> Handler:
    """Complete the web server flow by exchanging the callback's authorization code.

    Args:
        cache: Client cache to obtain the client from
        env: Provider environment
        client_id: Connected app / OAuth client ID
        opts: Grant options, usually carrying client_secret and redirect_uri
        set_token_on_context: Also store the bare access token on request.state
        listener: Event listener (defaults to logging)
    """
    listener = listener or LoggingEventListener()

    async def handle_auth_callback(request: "Request") -> None:
        try:
            code = _validate_callback(request)
            token = await request_authorization_code_token(
                cache,
                env,
                {"client_id": client_id, "code": code},
                opts,
            )
        except HANDLED_ERRORS as e:
            fail(listener, request, e)

        request.state.authorization = f"{token.get('token_type')} {token.get('access_token')}"

        user = "unknown"
        if is_salesforce_access_token_response(token) and token.get("userInfo"):
            request.state.salesforce_user_info = token["userInfo"]
            user = token["userInfo"].get("id") or user
        if is_openid_token_with_standard_claims(token.get("id_token")):
            user = token["id_token"]["email"]

        if set_token_on_context:
            request.state.access_token = token.get("access_token")

        listener(
            EVENT_AUTHORIZATION_HEADER_SET,
            f"Authorization headers set for user ({user}) [{client_host(request)}].",
        )

    return handle_auth_callback


def _require_identity_url(request: "Request") -> str:
    user_info = getattr(request.state, "salesforce_user_info", None)
    if not user_info:
        raise MissingParameterError("state[salesforce_user_info]", "object", ".")

    url = user_info.get("url")
    if not url:
        raise MissingParameterError("state[salesforce_user_info][url]", suffix=".")

    validated = user_info.get("validated")
    if validated is False:
        raise IdentityError("The Identity URL must be validated.")
    if not validated:
        raise MissingParameterError("state[salesforce_user_info][validated]", suffix=".")
    return url


def create_identity_retriever(
    cache: "ClientCache",
    listener: AuthEventListener | None = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT / 1000,
) -> Handler:
    """Fetch the Salesforce identity for a validated identity URL."""
    listener = listener or LoggingEventListener()

    async def retrieve_identity(request: "Request") -> None:
        try:
            authorization = getattr(request.state, "authorization", None) or request.headers.get(
                "authorization"
            )
            parse_bearer(authorization)
            identity_url = _require_identity_url(request)

            response = await cache.http_client.get(
                identity_url,
                headers={"Authorization": authorization},
                timeout=timeout,
            )
            response.raise_for_status()
            identity = msgspec.json.decode(response.content)
        except HANDLED_ERRORS as e:
            fail(listener, request, e)

        request.state.salesforce_identity = identity
        username = identity.get("username") if isinstance(identity, dict) else None
        listener(
            EVENT_USER_IDENTITY_RETRIEVED,
            f"Identity information retrieved for user ({username}) [{client_host(request)}].",
        )

    return retrieve_identity
