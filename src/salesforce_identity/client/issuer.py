"""Provider metadata discovery and caching.

Discovery documents are cached per ``(issuer URI, timeout)``. Entries live
until :meth:`IssuerCache.clear` is called; there is no expiry.
"""

from __future__ import annotations

import hashlib

import httpx
import msgspec

from ..errors import DiscoveryError
from ..logging_config import get_logger
from .models import IssuerMetadata

logger = get_logger("client.issuer")

DISCOVERY_PATH = "/.well-known/openid-configuration"


def discovery_url(issuer_uri: str) -> str:
    """Return the OpenID configuration URL for an issuer."""
    return f"{issuer_uri.rstrip('/')}{DISCOVERY_PATH}"


class IssuerCache:
    """Memoizes OpenID discovery documents.

    Concurrent misses for the same key may both perform discovery; the last
    one to finish wins.
    """

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        self._http_client = http_client
        self._owns_client = http_client is None
        self._issuers: dict[str, IssuerMetadata] = {}

    @staticmethod
    def create_key(timeout: int, issuer_uri: str) -> str:
        return hashlib.sha1(f"{issuer_uri}|{timeout}".encode()).hexdigest()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            logger.debug("Creating async HTTP client for issuer discovery")
            self._http_client = httpx.AsyncClient()
        return self._http_client

    async def discover_or_get(self, timeout: int, issuer_uri: str) -> IssuerMetadata:
        """Return the metadata for an issuer, discovering it on first use.

        Args:
            timeout: HTTP timeout in milliseconds
            issuer_uri: Issuer URI

        Raises:
            DiscoveryError: If the discovery document cannot be retrieved
        """
        key = self.create_key(timeout, issuer_uri)

        issuer = self._issuers.get(key)
        if issuer is not None:
            logger.debug("Issuer cache hit: %s", issuer_uri)
            return issuer

        issuer = await self._discover(timeout, issuer_uri)
        self._issuers[key] = issuer
        return issuer

    async def _discover(self, timeout: int, issuer_uri: str) -> IssuerMetadata:
        url = discovery_url(issuer_uri)
        error_message = f"Could not get an issuer for timeout: {timeout} and URI: {issuer_uri}."

        logger.info("Discovering issuer metadata: %s", url)
        client = await self._get_client()

        try:
            response = await client.get(url, timeout=timeout / 1000)
        except httpx.HTTPError as e:
            logger.warning("Issuer discovery failed for %s: %s", url, e)
            raise DiscoveryError(error_message) from e

        if response.status_code != 200:
            logger.warning(
                "Issuer discovery failed for %s: status=%d", url, response.status_code
            )
            raise DiscoveryError(error_message)

        try:
            return msgspec.json.decode(response.content, type=IssuerMetadata)
        except msgspec.DecodeError as e:
            logger.warning("Issuer discovery returned an invalid document for %s: %s", url, e)
            raise DiscoveryError(error_message) from e

    def clear(self) -> None:
        """Drop every cached issuer."""
        self._issuers.clear()

    def __len__(self) -> int:
        return len(self._issuers)

    async def aclose(self) -> None:
        """Close the HTTP client if this cache created it."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
