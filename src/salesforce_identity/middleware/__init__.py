"""Request authentication built on the identity clients.

Starlette:
    AuthenticationMiddleware runs a list of handlers before each request and
    answers 401 ``{"error": "access_denied", ...}`` when one denies it.

Handlers (each created by a factory):
    - create_token_validator: bearer token checked against userinfo
    - create_token_introspector: bearer token checked by introspection
    - create_grant_checker: JWT bearer grant for the validated user
    - create_auth_callback: authorization code exchange on the redirect URI
    - create_identity_retriever: Salesforce identity URL lookup

FastMCP:
    IdentityTokenVerifier validates Bearer tokens for MCP servers.
"""

from .asgi import AuthenticationMiddleware
from .common import (
    EVENT_AUTHORIZATION_HEADER_SET,
    EVENT_DENIED,
    EVENT_GRANT_CHECKED,
    EVENT_TOKEN_VALIDATED,
    EVENT_USER_IDENTITY_RETRIEVED,
    AuthEventListener,
    LoggingEventListener,
    extract_access_token,
    fail,
)
from .handlers import (
    Handler,
    create_auth_callback,
    create_grant_checker,
    create_identity_retriever,
    create_token_introspector,
    create_token_validator,
)
from .token_verifier import IdentityTokenVerifier

__all__ = [
    # Starlette
    "AuthenticationMiddleware",
    "Handler",
    "create_auth_callback",
    "create_grant_checker",
    "create_identity_retriever",
    "create_token_introspector",
    "create_token_validator",
    # Events
    "EVENT_AUTHORIZATION_HEADER_SET",
    "EVENT_DENIED",
    "EVENT_GRANT_CHECKED",
    "EVENT_TOKEN_VALIDATED",
    "EVENT_USER_IDENTITY_RETRIEVED",
    "AuthEventListener",
    "LoggingEventListener",
    # Helpers
    "extract_access_token",
    "fail",
    # FastMCP
    "IdentityTokenVerifier",
]
