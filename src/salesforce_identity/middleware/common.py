"""Shared middleware pieces: bearer extraction, denial and auth events."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, NoReturn, Protocol

from ..errors import AccessDeniedError, ConfigurationError, MissingParameterError
from ..logging_config import get_logger

if TYPE_CHECKING:
    from starlette.requests import Request

logger = get_logger("middleware")

EVENT_DENIED = "denied"
EVENT_TOKEN_VALIDATED = "token_validated"
EVENT_GRANT_CHECKED = "grant_checked"
EVENT_AUTHORIZATION_HEADER_SET = "authorization_header_set"
EVENT_USER_IDENTITY_RETRIEVED = "user_identity_retrieved"

BEARER_PATTERN = re.compile(r"^Bearer (.+)$")


class AuthEventListener(Protocol):
    """Receives middleware events such as ``denied`` or ``token_validated``."""

    def __call__(self, event: str, message: str) -> None: ...


class LoggingEventListener:
    """Log denials at WARNING and every other event at INFO."""

    def __call__(self, event: str, message: str) -> None:
        if event == EVENT_DENIED:
            logger.warning("[%s] %s", event, message)
        else:
            logger.info("[%s] %s", event, message)


def client_host(request: "Request") -> str:
    return request.client.host if request.client and request.client.host else "unknown"


def parse_bearer(authorization: str | None) -> str:
    """Return the token of a ``Bearer`` authorization header value.

    Raises:
        ConfigurationError: If the value is missing or not a bearer credential
    """
    if not authorization:
        raise MissingParameterError("headers[authorization]", suffix=".")

    match = BEARER_PATTERN.match(authorization)
    if match is None:
        raise ConfigurationError("Authorization header with 'Bearer ***...' required.")
    return match.group(1)


def extract_access_token(request: "Request") -> str:
    """Return the bearer token from the request's Authorization header."""
    return parse_bearer(request.headers.get("authorization"))


def fail(listener: AuthEventListener, request: "Request", error: Exception) -> NoReturn:
    """Deny the request: notify the listener and raise AccessDeniedError."""
    message = f"Access denied to: {client_host(request)}. Error: {error}"
    listener(EVENT_DENIED, message)
    raise AccessDeniedError(message) from error
