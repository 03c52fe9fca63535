"""JSON Web Key Set retrieval for ID token verification."""

from __future__ import annotations

import httpx
import jwt
import msgspec

from ..errors import IdTokenError
from ..logging_config import get_logger

logger = get_logger("client.jwk")


async def retrieve_json_web_keys(
    client: httpx.AsyncClient, jwks_uri: str, timeout: float
) -> dict[str, jwt.PyJWK]:
    """Fetch a JWKS document and index its usable keys by kid.

    Raises:
        IdTokenError: If the key set cannot be retrieved or parsed
    """
    logger.debug("Retrieving JWKs from %s", jwks_uri)

    try:
        response = await client.get(jwks_uri, timeout=timeout)
    except httpx.HTTPError as e:
        raise IdTokenError("Failed to retrieve JWKs") from e

    if response.status_code != 200:
        logger.warning("JWK retrieval failed: status=%d", response.status_code)
        raise IdTokenError("Failed to retrieve JWKs")

    try:
        key_set = jwt.PyJWKSet.from_dict(msgspec.json.decode(response.content))
    except (msgspec.DecodeError, jwt.PyJWTError) as e:
        raise IdTokenError("Failed to retrieve JWKs") from e

    keys = {key.key_id: key for key in key_set.keys if key.key_id}
    logger.info("Retrieved %d JWKs from %s", len(keys), jwks_uri)
    return keys
