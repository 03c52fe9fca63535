"""Initialised client cache.

Client initialisation may require a discovery round trip, so clients are
built once per ``(type, issuer URI, HTTP timeout)`` and reused. The cache owns
the HTTP client and issuer cache shared by every client it builds.

Usage:
    async with ClientCache() as cache:
        client = await cache.find_or_create(env)
        token = await client.grant(params, opts)
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Any

import httpx

from ..config import validate_environment
from ..logging_config import get_logger
from .base import AuthClient
from .issuer import IssuerCache
from .oauth2 import OAuth2Client
from .oauth2_jwt import OAuth2JWTClient
from .openid import OpenIdClient
from .salesforce import SalesforceClient

if TYPE_CHECKING:
    from ..config import Environment

logger = get_logger("client.cache")

CLIENT_CLASSES: dict[str, type[AuthClient]] = {
    "Salesforce": SalesforceClient,
    "OpenID": OpenIdClient,
    "OAuth2JWT": OAuth2JWTClient,
    "OAuth2": OAuth2Client,
}


def create_client(env: "Environment", **kwargs: Any) -> AuthClient:
    """Construct (without initialising) the client matching ``env.type``."""
    client_class = CLIENT_CLASSES.get(env.type, OAuth2Client)
    return client_class(env, **kwargs)


class ClientCache:
    """Memoizes initialised clients, at most one per cache key."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        issuer_cache: IssuerCache | None = None,
    ) -> None:
        self._http_client = http_client if http_client is not None else httpx.AsyncClient()
        self._owns_client = http_client is None
        self.issuer_cache = (
            issuer_cache if issuer_cache is not None else IssuerCache(self._http_client)
        )
        self._clients: dict[str, AuthClient] = {}

    @property
    def http_client(self) -> httpx.AsyncClient:
        """The HTTP client shared by every cached client."""
        return self._http_client

    @staticmethod
    def create_key(env: "Environment") -> str:
        return hashlib.sha1(
            f"{env.type}|{env.issuer_uri}|{env.http_timeout}".encode()
        ).hexdigest()

    async def find_or_create(self, env: "Environment | dict[str, Any]") -> AuthClient:
        """Return the initialised client for an environment, building it on first use.

        Raises:
            ConfigurationError: If the environment is invalid
        """
        validated_env = validate_environment(env)
        key = self.create_key(validated_env)

        client = self._clients.get(key)
        if client is not None:
            logger.debug("Client cache hit: type=%s", validated_env.type)
            return client

        client = create_client(
            validated_env,
            http_client=self._http_client,
            issuer_cache=self.issuer_cache,
        )
        await client.init()

        self._clients[key] = client
        logger.info(
            "Created %s client for %s (timeout=%dms)",
            validated_env.type,
            validated_env.issuer_uri,
            validated_env.http_timeout,
        )
        return client

    def clear(self) -> None:
        """Drop every cached client and issuer."""
        self._clients.clear()
        self.issuer_cache.clear()

    def __len__(self) -> int:
        return len(self._clients)

    async def aclose(self) -> None:
        """Close the shared HTTP client if this cache created it."""
        self.clear()
        if self._owns_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "ClientCache":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
