"""Request parameters, options and response shapes for the identity clients.

Parameters and options are msgspec structs whose defaults are the documented
option defaults. Responses stay as the provider's JSON objects (typed with
TypedDicts) because the post-processing steps annotate them in place.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, TypedDict, TypeVar, Union

import msgspec

from ..errors import ConfigurationError

AUTHORIZATION_CODE = "authorization_code"
REFRESH_TOKEN = "refresh_token"
JWT_BEARER = "urn:ietf:params:oauth:grant-type:jwt-bearer"
CLIENT_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"


class ResponseFormat(str, Enum):
    """Formats a token, introspection or userinfo response can be requested in."""

    JSON = "application/json"
    URL_ENCODED = "application/x-www-form-urlencoded"
    XML = "application/xml"


# --- Grant parameters -----------------------------------------------------


class User(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    """The user a JWT bearer grant is requested for."""

    username: str
    organization_id: str | None = None


class GrantParams(
    msgspec.Struct, kw_only=True, forbid_unknown_fields=True, tag_field="grantType"
):
    """Fields shared by every grant request."""

    client_id: str | None = None

    @property
    def grant_type(self) -> str:
        """The OAuth 2.0 grant_type this parameter set requests."""
        return self.__struct_config__.tag  # type: ignore[return-value]


class AuthCodeGrantParams(GrantParams, tag=AUTHORIZATION_CODE):
    """Authorization code grant (RFC 6749 section 4.1.3)."""

    code: str | None = None


class RefreshGrantParams(GrantParams, tag=REFRESH_TOKEN):
    """Refresh token grant (RFC 6749 section 6)."""

    refresh_token: str | None = None


class JwtGrantParams(GrantParams, tag=JWT_BEARER):
    """JWT bearer grant (RFC 7523 section 2.1)."""

    signing_secret: str | None = None
    user: User | None = None


AnyGrantParams = Union[AuthCodeGrantParams, RefreshGrantParams, JwtGrantParams]


# --- Options --------------------------------------------------------------


class GrantOptions(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    """Options controlling client authentication and response post-processing.

    Either ``client_secret`` or ``signing_secret`` authenticates the client for
    the authorization code and refresh token grants.
    """

    client_secret: str | None = None
    signing_secret: str | None = None
    redirect_uri: str | None = None
    response_format: ResponseFormat = ResponseFormat.JSON
    decode_id_token: bool = True
    parse_user_info: bool = True
    verify_id_token: bool = True
    verify_signature: bool = True


class AuthUrlParams(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    """Parameters of an authorization request (RFC 6749 section 4.1.1)."""

    client_id: str | None = None
    redirect_uri: str | None = None
    scope: str | None = None


class AuthOptions(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    """Optional authorization request parameters."""

    display: Literal["page", "popup", "touch", "mobile"] | None = None
    immediate: bool | None = None
    prompt: Literal["none", "login", "consent", "select_account"] | None = None
    state: str | None = None


class IntrospectionParams(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    client_id: str | None = None
    client_secret: str | None = None


class IntrospectionOptions(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    response_format: ResponseFormat = ResponseFormat.JSON
    parse_user_info: bool = True


class RevocationOptions(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    # Some providers only accept GET on their revocation endpoint
    use_get: bool = False


class UserInfoOptions(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    response_format: ResponseFormat = ResponseFormat.JSON


OptionsT = TypeVar("OptionsT", bound=msgspec.Struct)


def resolve_options(
    opts: "OptionsT | dict[str, Any] | None", options_type: type[OptionsT]
) -> OptionsT:
    """Resolve caller options against the defaults of ``options_type``.

    Explicit caller values win; anything not given takes the named default.
    Mappings use the field names of ``options_type``.

    Raises:
        ConfigurationError: If a mapping has an unknown field or a bad value
    """
    if opts is None:
        return options_type()
    if isinstance(opts, options_type):
        return opts
    try:
        return msgspec.convert(opts, options_type)
    except msgspec.ValidationError as e:
        raise ConfigurationError(f"Invalid {options_type.__name__}: {e}") from e


# --- Endpoints and metadata -----------------------------------------------


class Endpoints(msgspec.Struct, frozen=True, kw_only=True):
    """Endpoints a client resolved during init()."""

    authorization_endpoint: str
    token_endpoint: str
    revocation_endpoint: str | None = None
    introspection_endpoint: str | None = None
    userinfo_endpoint: str | None = None
    jwks_uri: str | None = None


class IssuerMetadata(msgspec.Struct, kw_only=True):
    """Provider metadata from the OpenID discovery document."""

    issuer: str | None = None
    authorization_endpoint: str | None = None
    token_endpoint: str | None = None
    revocation_endpoint: str | None = None
    introspection_endpoint: str | None = None
    userinfo_endpoint: str | None = None
    jwks_uri: str | None = None


# --- Responses ------------------------------------------------------------


class UserInfo(TypedDict, total=False):
    """User details derived from a Salesforce identity URL."""

    id: str
    organizationId: str
    url: str
    validated: bool


class AccessTokenResponse(TypedDict, total=False):
    """Access Token Response (RFC 6749 section 5.1)."""

    access_token: str
    token_type: str
    expires_in: int
    refresh_token: str
    scope: str


class OpenIDAccessTokenResponse(AccessTokenResponse, total=False):
    id_token: str | dict[str, Any] | None


class SalesforceAccessTokenResponse(OpenIDAccessTokenResponse, total=False):
    id: str
    instance_url: str
    issued_at: str
    signature: str
    sfdc_community_url: str
    sfdc_community_id: str
    userInfo: UserInfo


class IntrospectionResponse(TypedDict, total=False):
    """Introspection Response (RFC 7662 section 2.2)."""

    active: bool
    aud: str
    client_id: str
    exp: int
    iat: int
    iss: str
    jti: str
    nbf: int
    scope: str
    sub: str
    token_type: str
    username: str
    userInfo: UserInfo


class ErrorResponse(TypedDict, total=False):
    """Error Response (RFC 6749 section 5.2)."""

    error: str
    error_description: str
