"""Identity clients.

Four client flavours share one protocol core (:class:`AuthClient`) and differ
only in their :class:`ClientProfile`:

- **OAuth2**: endpoints from the environment, client secret authentication
- **OAuth2JWT**: adds the JWT bearer grant and private key JWT authentication
- **OpenID**: endpoints from discovery, ID token verification and decoding
- **Salesforce**: access token signature verification and identity URL parsing

Components:
    - AuthClient / ClientProfile: protocol core and strategy composition
    - OAuth2Client, OAuth2JWTClient, OpenIdClient, SalesforceClient
    - ClientCache / create_client: initialised client cache and factory
    - IssuerCache: OpenID discovery document cache
    - build_client_assertion / build_grant_assertion: RS256 assertions
"""

from .assertion import AssertionType, build_client_assertion, build_grant_assertion
from .base import AuthClient, ClientProfile
from .cache import CLIENT_CLASSES, ClientCache, create_client
from .issuer import IssuerCache, discovery_url
from .models import (
    AUTHORIZATION_CODE,
    JWT_BEARER,
    REFRESH_TOKEN,
    AccessTokenResponse,
    AnyGrantParams,
    AuthCodeGrantParams,
    AuthOptions,
    AuthUrlParams,
    Endpoints,
    GrantOptions,
    IntrospectionOptions,
    IntrospectionParams,
    IntrospectionResponse,
    IssuerMetadata,
    JwtGrantParams,
    OpenIDAccessTokenResponse,
    RefreshGrantParams,
    ResponseFormat,
    RevocationOptions,
    SalesforceAccessTokenResponse,
    User,
    UserInfo,
    UserInfoOptions,
)
from .oauth2 import OAUTH2, OAuth2Client
from .oauth2_jwt import OAUTH2_JWT, OAuth2JWTClient
from .openid import OPENID, OpenIdClient, is_openid_token_with_standard_claims
from .salesforce import (
    SALESFORCE,
    SalesforceClient,
    is_salesforce_access_token_response,
    parse_user_info,
    verify_signature,
)

__all__ = [
    # Core
    "AuthClient",
    "ClientProfile",
    # Client flavours
    "OAUTH2",
    "OAUTH2_JWT",
    "OPENID",
    "SALESFORCE",
    "OAuth2Client",
    "OAuth2JWTClient",
    "OpenIdClient",
    "SalesforceClient",
    # Caches
    "CLIENT_CLASSES",
    "ClientCache",
    "create_client",
    "IssuerCache",
    "discovery_url",
    # Assertions
    "AssertionType",
    "build_client_assertion",
    "build_grant_assertion",
    # Parameters and options
    "AUTHORIZATION_CODE",
    "JWT_BEARER",
    "REFRESH_TOKEN",
    "AnyGrantParams",
    "AuthCodeGrantParams",
    "AuthOptions",
    "AuthUrlParams",
    "GrantOptions",
    "IntrospectionOptions",
    "IntrospectionParams",
    "JwtGrantParams",
    "RefreshGrantParams",
    "ResponseFormat",
    "RevocationOptions",
    "User",
    "UserInfoOptions",
    # Responses and metadata
    "AccessTokenResponse",
    "Endpoints",
    "IntrospectionResponse",
    "IssuerMetadata",
    "OpenIDAccessTokenResponse",
    "SalesforceAccessTokenResponse",
    "UserInfo",
    # Helpers
    "is_openid_token_with_standard_claims",
    "is_salesforce_access_token_response",
    "parse_user_info",
    "verify_signature",
]
