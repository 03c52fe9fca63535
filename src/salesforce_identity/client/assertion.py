"""JWT bearer assertions (RFC 7523).

Two assertion flavours are signed here:

- Client assertions authenticate the client itself at the token endpoint
  (``private_key_jwt``), with ``sub`` = client ID and ``aud`` = token endpoint.
- Grant assertions request a token on behalf of a user (JWT bearer grant),
  with ``sub`` = username and ``aud`` = issuer URI.

Assertions expire four minutes after issue and carry a random ``jti``.
"""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Any

import jwt

from ..errors import AssertionSigningError
from ..logging_config import get_logger

logger = get_logger("client.assertion")

ASSERTION_ALGORITHM = "RS256"
ASSERTION_LIFETIME_SECONDS = 4 * 60


class AssertionType(str, Enum):
    CLIENT = "client"
    GRANT = "grant"


def build_client_assertion(
    client_id: str, audience: str, signing_secret: str | bytes
) -> str:
    """Sign a client assertion for private-key-JWT client authentication.

    Args:
        client_id: Client ID, used as issuer and subject
        audience: Token endpoint the assertion is presented to
        signing_secret: PEM encoded RSA private key

    Raises:
        AssertionSigningError: If the assertion cannot be signed
    """
    claims = _create_claims(audience=audience, issuer=client_id, subject=client_id)
    return _sign(claims, signing_secret, AssertionType.CLIENT)


def build_grant_assertion(
    issuer: str, client_id: str, username: str, signing_secret: str | bytes
) -> str:
    """Sign a grant assertion for the JWT bearer grant type.

    Args:
        issuer: Issuer URI of the provider, used as audience
        client_id: Client ID, used as issuer
        username: The user the token is requested for
        signing_secret: PEM encoded RSA private key

    Raises:
        AssertionSigningError: If the assertion cannot be signed
    """
    claims = _create_claims(audience=issuer, issuer=client_id, subject=username)
    return _sign(claims, signing_secret, AssertionType.GRANT)


def _create_claims(audience: str, issuer: str, subject: str) -> dict[str, Any]:
    now = int(time.time())
    return {
        "aud": audience,
        "exp": now + ASSERTION_LIFETIME_SECONDS,
        "iat": now,
        "iss": issuer,
        "jti": str(uuid.uuid4()),
        "sub": subject,
    }


def _sign(claims: dict[str, Any], signing_secret: str | bytes, kind: AssertionType) -> str:
    try:
        encoded = jwt.encode(claims, signing_secret, algorithm=ASSERTION_ALGORITHM)
    except (jwt.PyJWTError, ValueError, TypeError) as e:
        logger.warning("Failed to sign %s assertion for iss=%s: %s", kind.value, claims["iss"], e)
        raise AssertionSigningError(f"Failed to sign {kind.value} assertion") from e

    logger.debug("Signed %s assertion: iss=%s, aud=%s", kind.value, claims["iss"], claims["aud"])
    return encoded
