"""Protocol core shared by every identity client.

An :class:`AuthClient` implements the generic OAuth 2.0 operations
(authorization URL, grant, introspection, revocation, userinfo). What differs
between provider flavours is supplied by a :class:`ClientProfile`:

- ``initialize`` resolves the endpoints (explicit configuration or discovery)
- ``authenticate`` adds client authentication to a token request
- ``access_token_steps`` post-process a successful token response, in order
- ``introspection_steps`` post-process a successful introspection response

Profiles are plain data, so the order in which response steps run is visible
in one place (see ``oauth2.py``, ``oauth2_jwt.py``, ``openid.py`` and
``salesforce.py``).

Every operation checks initialisation first, then validates its parameters,
and only then performs I/O.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, ClassVar, Iterable
from urllib.parse import parse_qsl, quote, urlencode

import httpx
import jwt
import msgspec

from ..errors import (
    ClientNotInitializedError,
    GrantError,
    IdentityError,
    IntrospectionError,
    MissingParameterError,
    UnsupportedOperationError,
    UserInfoError,
)
from ..logging_config import get_logger
from .issuer import IssuerCache
from .jwk import retrieve_json_web_keys
from .models import (
    AUTHORIZATION_CODE,
    REFRESH_TOKEN,
    AnyGrantParams,
    AuthCodeGrantParams,
    AuthOptions,
    AuthUrlParams,
    Endpoints,
    GrantOptions,
    IntrospectionOptions,
    IntrospectionParams,
    RefreshGrantParams,
    RevocationOptions,
    UserInfoOptions,
    resolve_options,
)

if TYPE_CHECKING:
    from ..config import Environment

logger = get_logger("client.base")

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

Initializer = Callable[["AuthClient"], Awaitable[Endpoints]]
Authenticator = Callable[
    ["AuthClient", AnyGrantParams, dict[str, str], GrantOptions], Awaitable[None]
]
ResponseStep = Callable[["AuthClient", dict[str, Any], Any], Awaitable[dict[str, Any]]]


class ClientProfile(msgspec.Struct, frozen=True, kw_only=True):
    """The strategies that make up one client flavour."""

    client_type: str
    initialize: Initializer
    authenticate: Authenticator
    grant_types: frozenset[str] = frozenset({AUTHORIZATION_CODE, REFRESH_TOKEN})
    access_token_steps: tuple[ResponseStep, ...] = ()
    introspection_steps: tuple[ResponseStep, ...] = ()

    def extend(
        self,
        client_type: str,
        *,
        grant_types: Iterable[str] = (),
        access_token_steps: Iterable[ResponseStep] = (),
        introspection_steps: Iterable[ResponseStep] = (),
        **changes: Any,
    ) -> "ClientProfile":
        """Derive a profile that runs extra steps after this profile's steps."""
        return msgspec.structs.replace(
            self,
            client_type=client_type,
            grant_types=self.grant_types | frozenset(grant_types),
            access_token_steps=self.access_token_steps + tuple(access_token_steps),
            introspection_steps=self.introspection_steps + tuple(introspection_steps),
            **changes,
        )


def decode_body(response: httpx.Response) -> Any:
    """Decode a response body according to its content type."""
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        return msgspec.json.decode(response.content)
    if FORM_CONTENT_TYPE in content_type:
        return dict(parse_qsl(response.text))
    return response.text


def describe_error(body: Any) -> str:
    """Format an OAuth error response as ``error (error_description)``."""
    if isinstance(body, dict):
        return f"{body.get('error')} ({body.get('error_description')})"
    return f"{body} (None)"


class AuthClient:
    """OAuth 2.0 client whose behaviour is configured by a ClientProfile.

    Subclasses only choose a profile; they do not override operations.
    """

    profile: ClassVar[ClientProfile]

    def __init__(
        self,
        env: "Environment",
        profile: ClientProfile | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        issuer_cache: IssuerCache | None = None,
    ) -> None:
        """Create an uninitialised client.

        Args:
            env: Provider environment; owned by this client for its lifetime
            profile: Strategies to use (defaults to the class profile)
            http_client: Shared HTTP client; one is created lazily if omitted
            issuer_cache: Shared discovery cache; a private one if omitted
        """
        self.env = env
        if profile is not None:
            self.profile = profile
        self._http_client = http_client
        self._owns_client = http_client is None
        self._owns_issuer_cache = issuer_cache is None
        self.issuer_cache = issuer_cache if issuer_cache is not None else IssuerCache(http_client)
        self.endpoints: Endpoints | None = None
        self._json_web_keys: dict[str, jwt.PyJWK] | None = None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(type={self.client_type!r}, "
            f"issuer_uri={self.env.issuer_uri!r}, initialized={self.initialized})"
        )

    @property
    def client_type(self) -> str:
        return self.profile.client_type

    def get_type(self) -> str:
        """Return the client type used in error messages."""
        return self.profile.client_type

    @property
    def initialized(self) -> bool:
        return self.endpoints is not None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._http_client is None:
            logger.debug("Creating async HTTP client for %s client", self.client_type)
            self._http_client = httpx.AsyncClient()
        return self._http_client

    def require_endpoints(self) -> Endpoints:
        """Return the resolved endpoints, failing if init() has not run."""
        if self.endpoints is None:
            raise ClientNotInitializedError(self.client_type)
        return self.endpoints

    async def init(self) -> None:
        """Resolve the endpoints this client talks to."""
        self.endpoints = await self.profile.initialize(self)
        logger.info(
            "%s client initialized: issuer_uri=%s, token_endpoint=%s",
            self.client_type,
            self.env.issuer_uri,
            self.endpoints.token_endpoint,
        )

    # --- Authorization URL ------------------------------------------------

    def create_authorization_url(
        self,
        params: AuthUrlParams | dict[str, Any],
        opts: AuthOptions | dict[str, Any] | None = None,
    ) -> str:
        """Build the authorization request URL (RFC 6749 section 4.1.1).

        Query parameters are sorted by name and spaces are encoded as %20.
        """
        endpoints = self.require_endpoints()
        url_params = resolve_options(params, AuthUrlParams)
        auth_opts = resolve_options(opts, AuthOptions)

        if not url_params.client_id:
            raise MissingParameterError("clientId")
        if not url_params.redirect_uri:
            raise MissingParameterError("redirectUri")

        data: dict[str, Any] = {
            "client_id": url_params.client_id,
            "redirect_uri": url_params.redirect_uri,
            "response_type": "code",
            "scope": url_params.scope,
            "display": auth_opts.display,
            "immediate": auth_opts.immediate,
            "prompt": auth_opts.prompt,
            "state": auth_opts.state,
        }
        query = urlencode(
            sorted(
                (key, str(value).lower() if isinstance(value, bool) else value)
                for key, value in data.items()
                if value is not None
            ),
            quote_via=quote,
        )
        return f"{endpoints.authorization_endpoint}?{query}"

    # --- Grant ------------------------------------------------------------

    async def grant(
        self,
        params: AnyGrantParams,
        opts: GrantOptions | dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Request an access token (RFC 6749 section 4.1.3 / 6, RFC 7523).

        Raises:
            ClientNotInitializedError: If init() has not completed
            ConfigurationError: If a required parameter is missing
            GrantError: If the token endpoint rejects the request or a
                post-processing step fails
        """
        endpoints = self.require_endpoints()
        self._validate_grant_params(params)
        grant_opts = resolve_options(opts, GrantOptions)

        body = self._create_grant_body(params, grant_opts)
        await self.profile.authenticate(self, params, body, grant_opts)

        logger.debug(
            "Requesting %s grant from %s", params.grant_type, endpoints.token_endpoint
        )
        client = await self._get_client()
        response = await client.post(
            endpoints.token_endpoint,
            data=body,
            headers={
                "Accept": grant_opts.response_format.value,
                "Content-Type": FORM_CONTENT_TYPE,
            },
            timeout=self.env.timeout_seconds,
        )
        data = decode_body(response)

        if response.status_code != 200:
            logger.warning(
                "Grant request failed: type=%s, status=%d",
                params.grant_type,
                response.status_code,
            )
            raise GrantError(f"Failed to obtain grant: {describe_error(data)}.")

        if not isinstance(data, dict):
            if self.profile.access_token_steps:
                raise GrantError(
                    f"Failed to obtain grant: cannot process a "
                    f"{grant_opts.response_format.value} response."
                )
            return data

        return await self._run_access_token_steps(data, grant_opts)

    def _validate_grant_params(self, params: AnyGrantParams) -> None:
        if params.grant_type not in self.profile.grant_types:
            raise UnsupportedOperationError(
                f"{self.client_type} client does not support the {params.grant_type} grant type"
            )
        if isinstance(params, AuthCodeGrantParams) and not params.code:
            raise MissingParameterError("code")
        if isinstance(params, RefreshGrantParams) and not params.refresh_token:
            raise MissingParameterError("refreshToken")

    @staticmethod
    def _create_grant_body(params: AnyGrantParams, opts: GrantOptions) -> dict[str, str]:
        # Build a fresh body so no caller field leaks into the request
        body: dict[str, str] = {}
        if isinstance(params, AuthCodeGrantParams):
            body["code"] = params.code or ""
            body["grant_type"] = AUTHORIZATION_CODE
            if opts.redirect_uri:
                body["redirect_uri"] = opts.redirect_uri
        elif isinstance(params, RefreshGrantParams):
            body["grant_type"] = REFRESH_TOKEN
            body["refresh_token"] = params.refresh_token or ""
        return body

    async def _run_access_token_steps(
        self, response: dict[str, Any], opts: GrantOptions
    ) -> dict[str, Any]:
        for step in self.profile.access_token_steps:
            try:
                response = await step(self, response, opts)
            except (IdentityError, jwt.PyJWTError) as e:
                logger.warning("%s failed for %s client: %s", step.__name__, self.client_type, e)
                raise GrantError(f"Failed to obtain grant: {e}.") from e
        return response

    # --- Introspection ----------------------------------------------------

    async def introspect(
        self,
        token: str,
        params: IntrospectionParams | dict[str, Any],
        opts: IntrospectionOptions | dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Introspect a token (RFC 7662)."""
        endpoints = self.require_endpoints()
        if endpoints.introspection_endpoint is None:
            raise UnsupportedOperationError(
                f"{self.client_type} client does not support token introspection"
            )

        introspection_params = resolve_options(params, IntrospectionParams)
        if not introspection_params.client_id:
            raise MissingParameterError("clientId")
        if not introspection_params.client_secret:
            raise MissingParameterError("clientSecret")
        introspection_opts = resolve_options(opts, IntrospectionOptions)

        client = await self._get_client()
        response = await client.post(
            endpoints.introspection_endpoint,
            data={
                "client_id": introspection_params.client_id,
                "client_secret": introspection_params.client_secret,
                "token": token,
            },
            headers={
                "Accept": introspection_opts.response_format.value,
                "Content-Type": FORM_CONTENT_TYPE,
            },
            timeout=self.env.timeout_seconds,
        )
        data = decode_body(response)

        if response.status_code != 200:
            raise IntrospectionError(f"Failed to introspect token: {describe_error(data)}.")

        for step in self.profile.introspection_steps:
            data = await step(self, data, introspection_opts)
        return data

    # --- Revocation -------------------------------------------------------

    async def revoke(
        self, token: str, opts: RevocationOptions | dict[str, Any] | None = None
    ) -> bool:
        """Revoke a token (RFC 7009). Returns True if the provider answered 200."""
        endpoints = self.require_endpoints()
        if endpoints.revocation_endpoint is None:
            raise UnsupportedOperationError(
                f"{self.client_type} client does not support token revocation"
            )
        revocation_opts = resolve_options(opts, RevocationOptions)

        client = await self._get_client()
        if revocation_opts.use_get:
            response = await client.get(
                endpoints.revocation_endpoint,
                params={"token": token},
                timeout=self.env.timeout_seconds,
            )
        else:
            response = await client.post(
                endpoints.revocation_endpoint,
                data={"token": token},
                headers={"Content-Type": FORM_CONTENT_TYPE},
                timeout=self.env.timeout_seconds,
            )

        logger.debug("Revocation response: status=%d", response.status_code)
        return response.status_code == 200

    # --- User information -------------------------------------------------

    async def userinfo(
        self, token: str, opts: UserInfoOptions | dict[str, Any] | None = None
    ) -> Any:
        """Request the OpenID userinfo for an access token."""
        if self.endpoints is None or self.endpoints.userinfo_endpoint is None:
            raise ClientNotInitializedError(self.client_type)
        userinfo_opts = resolve_options(opts, UserInfoOptions)

        client = await self._get_client()
        response = await client.get(
            self.endpoints.userinfo_endpoint,
            headers={
                "Accept": userinfo_opts.response_format.value,
                "Authorization": f"Bearer {token}",
            },
            timeout=self.env.timeout_seconds,
        )

        if response.status_code != 200:
            raise UserInfoError(f"Failed to obtain user information: {response.text}.")
        return decode_body(response)

    # --- JSON Web Keys ----------------------------------------------------

    async def json_web_keys(self) -> dict[str, jwt.PyJWK] | None:
        """Return the provider's signing keys by kid, fetched once per client."""
        endpoints = self.require_endpoints()
        if endpoints.jwks_uri is None:
            return None
        if self._json_web_keys is None:
            client = await self._get_client()
            self._json_web_keys = await retrieve_json_web_keys(
                client, endpoints.jwks_uri, self.env.timeout_seconds
            )
        return self._json_web_keys

    # --- Lifecycle --------------------------------------------------------

    async def aclose(self) -> None:
        """Close HTTP resources this client created."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
        if self._owns_issuer_cache:
            await self.issuer_cache.aclose()

    async def __aenter__(self) -> "AuthClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
