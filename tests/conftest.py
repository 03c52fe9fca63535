"""Shared fixtures for the salesforce-identity tests."""

import logging
import time
from unittest.mock import AsyncMock

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from salesforce_identity.config import Environment
from salesforce_identity.logging_config import PACKAGE_LOGGER

SALESFORCE_URI = "https://login.salesforce.com"
OAUTH2_URI = "https://oauth.example.com"
KEY_ID = "test-kid"


def make_response(status_code=200, json=None, *, text=None, content_type=None):
    """Build a real httpx.Response as returned by the mocked client."""
    request = httpx.Request("GET", SALESFORCE_URI)
    if json is not None:
        return httpx.Response(status_code, json=json, request=request)
    headers = {"content-type": content_type} if content_type else {}
    return httpx.Response(status_code, text=text or "", headers=headers, request=request)


def _pem(key):
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging() between tests so caplog keeps working."""
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture(scope="session")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(private_key):
    return _pem(private_key)


@pytest.fixture(scope="session")
def public_key_pem(private_key):
    return (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )


@pytest.fixture(scope="session")
def other_private_key_pem():
    return _pem(rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture(scope="session")
def jwks(private_key):
    """JWKS document publishing the public half of private_key."""
    jwk = RSAAlgorithm.to_jwk(private_key.public_key(), as_dict=True)
    jwk.update({"kid": KEY_ID, "alg": "RS256", "use": "sig"})
    return {"keys": [jwk]}


@pytest.fixture
def id_token(private_key_pem):
    """Factory for RS256 ID tokens signed with private_key."""

    def create(claims=None, headers=None, key=None):
        now = int(time.time())
        payload = {
            "iss": SALESFORCE_URI,
            "sub": "https://login.salesforce.com/id/00Dxx0000001gPLEAY/005xx000001SwiUAAS",
            "aud": "test-client-id",
            "iat": now,
            "exp": now + 300,
            "email": "alice@example.com",
        }
        payload.update(claims or {})
        return jwt.encode(
            payload,
            key or private_key_pem,
            algorithm="RS256",
            headers={"kid": KEY_ID} if headers is None else headers,
        )

    return create


@pytest.fixture
def http_client():
    return AsyncMock(spec=httpx.AsyncClient)


@pytest.fixture
def discovery_document():
    return {
        "issuer": SALESFORCE_URI,
        "authorization_endpoint": f"{SALESFORCE_URI}/services/oauth2/authorize",
        "token_endpoint": f"{SALESFORCE_URI}/services/oauth2/token",
        "revocation_endpoint": f"{SALESFORCE_URI}/services/oauth2/revoke",
        "introspection_endpoint": f"{SALESFORCE_URI}/services/oauth2/introspect",
        "userinfo_endpoint": f"{SALESFORCE_URI}/services/oauth2/userinfo",
        "jwks_uri": f"{SALESFORCE_URI}/id/keys",
        "scopes_supported": ["openid", "api", "refresh_token"],
    }


@pytest.fixture
def oauth2_env():
    return Environment(
        type="OAuth2",
        issuer_uri=OAUTH2_URI,
        http_timeout=4000,
        authorization_endpoint=f"{OAUTH2_URI}/authorize",
        token_endpoint=f"{OAUTH2_URI}/token",
        revocation_endpoint=f"{OAUTH2_URI}/revoke",
        introspection_endpoint=f"{OAUTH2_URI}/introspect",
    )


@pytest.fixture
def oauth2_jwt_env(oauth2_env):
    return Environment(
        type="OAuth2JWT",
        issuer_uri=oauth2_env.issuer_uri,
        http_timeout=oauth2_env.http_timeout,
        authorization_endpoint=oauth2_env.authorization_endpoint,
        token_endpoint=oauth2_env.token_endpoint,
        revocation_endpoint=oauth2_env.revocation_endpoint,
    )


@pytest.fixture
def openid_env():
    return Environment(type="OpenID", issuer_uri=SALESFORCE_URI, http_timeout=4000)


@pytest.fixture
def salesforce_env():
    return Environment(type="Salesforce", issuer_uri=SALESFORCE_URI, http_timeout=4000)
