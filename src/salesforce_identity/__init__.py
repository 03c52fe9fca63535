"""OAuth 2.0, OpenID Connect and Salesforce identity clients."""

from .client import (
    AuthClient,
    AuthCodeGrantParams,
    AuthOptions,
    AuthUrlParams,
    ClientCache,
    GrantOptions,
    IntrospectionOptions,
    IntrospectionParams,
    IssuerCache,
    JwtGrantParams,
    OAuth2Client,
    OAuth2JWTClient,
    OpenIdClient,
    RefreshGrantParams,
    ResponseFormat,
    RevocationOptions,
    SalesforceClient,
    User,
    UserInfoOptions,
)
from .config import Environment, validate_environment
from .errors import (
    AccessDeniedError,
    ClientInitializationError,
    ClientNotInitializedError,
    ConfigurationError,
    GrantError,
    IdentityError,
    MissingParameterError,
    UnsupportedOperationError,
)

__version__ = "0.1.0"

__all__ = [
    "AccessDeniedError",
    "AuthClient",
    "AuthCodeGrantParams",
    "AuthOptions",
    "AuthUrlParams",
    "ClientCache",
    "ClientInitializationError",
    "ClientNotInitializedError",
    "ConfigurationError",
    "Environment",
    "GrantError",
    "GrantOptions",
    "IdentityError",
    "IntrospectionOptions",
    "IntrospectionParams",
    "IssuerCache",
    "JwtGrantParams",
    "MissingParameterError",
    "OAuth2Client",
    "OAuth2JWTClient",
    "OpenIdClient",
    "RefreshGrantParams",
    "ResponseFormat",
    "RevocationOptions",
    "SalesforceClient",
    "UnsupportedOperationError",
    "User",
    "UserInfoOptions",
    "validate_environment",
]
