"""Exception types raised by salesforce-identity."""


class IdentityError(Exception):
    """Base exception for all identity client failures."""


class ConfigurationError(IdentityError, ValueError):
    """Raised when an environment or parameter value is missing or invalid."""


class MissingParameterError(ConfigurationError):
    """Raised when a required parameter is absent."""

    def __init__(self, name: str, kind: str = "string", suffix: str = "") -> None:
        self.parameter = name
        super().__init__(f"Missing required {kind} parameter: {name}{suffix}")


class ClientNotInitializedError(IdentityError, RuntimeError):
    """Raised when a client operation is called before init()."""

    def __init__(self, client_type: str) -> None:
        self.client_type = client_type
        super().__init__(f"{client_type} client has not been initialized")


class UnsupportedOperationError(IdentityError):
    """Raised when the provider does not offer the requested endpoint."""


class ClientInitializationError(IdentityError):
    """Raised when a client fails to resolve its endpoints."""


class DiscoveryError(IdentityError):
    """Raised when provider metadata discovery fails."""


class AssertionSigningError(IdentityError):
    """Raised when a JWT bearer assertion cannot be signed."""


class GrantError(IdentityError):
    """Raised when a grant request or its post-processing fails."""


class IntrospectionError(IdentityError):
    """Raised when token introspection fails."""


class UserInfoError(IdentityError):
    """Raised when the userinfo endpoint returns an error."""


class IdTokenError(IdentityError):
    """Raised when an ID token cannot be decoded or verified."""


class InvalidSignatureError(IdentityError):
    """Raised when a Salesforce access token response signature does not match."""


class AccessDeniedError(IdentityError):
    """Raised by middleware when a request is denied."""
