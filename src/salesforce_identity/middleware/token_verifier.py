"""Identity token verification for FastMCP.

This module implements the TokenVerifier protocol for FastMCP, enabling
Bearer token authentication backed by an OpenID or Salesforce client's
userinfo endpoint. Clients obtain their tokens themselves and send them as
Bearer tokens; invalid or missing tokens are rejected.
"""

from __future__ import annotations

import httpx
from fastmcp.server.auth import AccessToken, TokenVerifier

from ..client.cache import ClientCache
from ..config import Environment
from ..errors import IdentityError
from ..logging_config import get_logger

logger = get_logger("middleware.token_verifier")


class IdentityTokenVerifier(TokenVerifier):
    """TokenVerifier that validates Bearer tokens with the userinfo endpoint.

    - For valid tokens: Returns AccessToken with the user's identity claims
    - For invalid/missing tokens: Returns None

    The environment defaults to :meth:`Environment.from_env` and must describe
    an OpenID or Salesforce provider.
    """

    def __init__(
        self,
        env: Environment | None = None,
        cache: ClientCache | None = None,
    ) -> None:
        """Initialize the verifier.

        Args:
            env: Provider environment (default: from OAUTH_* variables)
            cache: Client cache to share; a private one is created if omitted
        """
        super().__init__()
        self.env = env or Environment.from_env()
        self._owns_cache = cache is None
        self._cache = cache if cache is not None else ClientCache()

    async def verify_token(self, token: str) -> AccessToken | None:
        """Verify a token and return AccessToken.

        Args:
            token: Access token from the Authorization header

        Returns:
            AccessToken with user claims if valid, None otherwise
        """
        if not token or not token.strip():
            logger.debug("No token provided")
            return None

        token_preview = token[:30] + "..." if len(token) > 30 else token
        logger.info("verify_token called: token_preview=%s", token_preview)

        try:
            client = await self._cache.find_or_create(self.env)
            data = await client.userinfo(token)
        except (IdentityError, httpx.HTTPError) as e:
            logger.warning("Token verification failed: %s", e)
            return None

        if not isinstance(data, dict):
            logger.warning("Token verification failed: unexpected userinfo response")
            return None

        user_id = data.get("user_id") or data.get("sub") or ""
        access_token = AccessToken(
            token=token,
            client_id=user_id,
            scopes=[],
            expires_at=None,
            claims={
                "user_id": user_id,
                "org_id": data.get("organization_id", ""),
                "username": data.get("preferred_username", data.get("sub", "")),
                "issuer_uri": self.env.issuer_uri,
            },
        )
        logger.info("Token verified: user_id=%s", user_id)
        return access_token

    async def close(self) -> None:
        """Close the client cache if this verifier created it."""
        if self._owns_cache:
            await self._cache.aclose()
