"""Tests for the OpenID Connect client."""

import pytest
import pytest_asyncio
from conftest import make_response

from salesforce_identity.client.issuer import IssuerCache
from salesforce_identity.client.models import (
    AuthCodeGrantParams,
    GrantOptions,
    RevocationOptions,
)
from salesforce_identity.client.openid import (
    OpenIdClient,
    decode_id_token,
    is_openid_token_with_standard_claims,
)
from salesforce_identity.errors import (
    ClientInitializationError,
    GrantError,
    IdTokenError,
    UnsupportedOperationError,
    UserInfoError,
)

GRANT_PARAMS = AuthCodeGrantParams(client_id="test-client-id", code="auth-code")
GRANT_OPTS = GrantOptions(client_secret="test-client-secret")
JWKS_URI = "https://login.salesforce.com/id/keys"


@pytest_asyncio.fixture
async def client(openid_env, http_client, discovery_document):
    http_client.get.return_value = make_response(json=discovery_document)
    openid_client = OpenIdClient(openid_env, http_client=http_client)
    await openid_client.init()
    http_client.get.reset_mock()
    return openid_client


def token_response(**fields):
    response = {"access_token": "access-token", "token_type": "Bearer", "scope": "openid api"}
    response.update(fields)
    return response


class TestInit:
    """Tests for discovery based initialisation."""

    @pytest.mark.asyncio
    async def test_endpoints_from_discovery(self, openid_env, http_client, discovery_document):
        """Test that endpoints come from the discovery document."""
        http_client.get.return_value = make_response(json=discovery_document)
        client = OpenIdClient(openid_env, http_client=http_client)

        await client.init()

        http_client.get.assert_awaited_once_with(
            "https://login.salesforce.com/.well-known/openid-configuration", timeout=4.0
        )
        assert client.endpoints.authorization_endpoint == (
            "https://login.salesforce.com/services/oauth2/authorize"
        )
        assert client.endpoints.userinfo_endpoint == (
            "https://login.salesforce.com/services/oauth2/userinfo"
        )
        assert client.endpoints.jwks_uri == JWKS_URI

    @pytest.mark.asyncio
    async def test_discovery_failure(self, openid_env, http_client):
        """Test that a failed discovery leaves the client uninitialised."""
        http_client.get.return_value = make_response(503, text="unavailable")
        client = OpenIdClient(openid_env, http_client=http_client)

        with pytest.raises(ClientInitializationError) as exc_info:
            await client.init()

        assert str(exc_info.value) == (
            "Failed to initialise OpenID client. OpenID configuration request failed."
        )
        assert client.initialized is False

    @pytest.mark.asyncio
    async def test_missing_token_endpoint(self, openid_env, http_client, discovery_document):
        """Test that a document without a token endpoint is rejected."""
        del discovery_document["token_endpoint"]
        http_client.get.return_value = make_response(json=discovery_document)
        client = OpenIdClient(openid_env, http_client=http_client)

        with pytest.raises(ClientInitializationError):
            await client.init()

    @pytest.mark.asyncio
    async def test_shared_issuer_cache(self, openid_env, http_client, discovery_document):
        """Test that clients sharing an issuer cache discover once."""
        http_client.get.return_value = make_response(json=discovery_document)
        issuer_cache = IssuerCache(http_client)

        for _ in range(2):
            client = OpenIdClient(openid_env, http_client=http_client, issuer_cache=issuer_cache)
            await client.init()

        http_client.get.assert_awaited_once()


class TestIdToken:
    """Tests for ID token verification and decoding."""

    @pytest.mark.asyncio
    async def test_verified_and_decoded(self, client, http_client, id_token, jwks):
        """Test that a valid ID token is verified against the JWKS and decoded."""
        http_client.get.return_value = make_response(json=jwks)
        http_client.post.return_value = make_response(json=token_response(id_token=id_token()))

        response = await client.grant(GRANT_PARAMS, GRANT_OPTS)

        assert response["id_token"]["email"] == "alice@example.com"
        http_client.get.assert_awaited_once_with(JWKS_URI, timeout=4.0)

    @pytest.mark.asyncio
    async def test_jwks_fetched_once(self, client, http_client, id_token, jwks):
        """Test that the key set is cached on the client."""
        http_client.get.return_value = make_response(json=jwks)
        http_client.post.side_effect = [
            make_response(json=token_response(id_token=id_token())),
            make_response(json=token_response(id_token=id_token())),
        ]

        await client.grant(GRANT_PARAMS, GRANT_OPTS)
        await client.grant(GRANT_PARAMS, GRANT_OPTS)

        http_client.get.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_decode_without_verification(self, client, http_client, id_token):
        """Test that verification can be turned off independently of decoding."""
        http_client.post.return_value = make_response(json=token_response(id_token=id_token()))

        response = await client.grant(
            GRANT_PARAMS, GrantOptions(client_secret="secret", verify_id_token=False)
        )

        assert response["id_token"]["sub"].endswith("/005xx000001SwiUAAS")
        http_client.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_left_encoded(self, client, http_client, id_token):
        """Test that the ID token stays a string when decoding is off."""
        token = id_token()
        http_client.post.return_value = make_response(json=token_response(id_token=token))

        response = await client.grant(
            GRANT_PARAMS,
            GrantOptions(client_secret="secret", verify_id_token=False, decode_id_token=False),
        )

        assert response["id_token"] == token

    @pytest.mark.asyncio
    async def test_unknown_kid(self, client, http_client, id_token, jwks):
        """Test that a token signed with an unpublished key is rejected."""
        http_client.get.return_value = make_response(json=jwks)
        http_client.post.return_value = make_response(
            json=token_response(id_token=id_token(headers={"kid": "other-kid"}))
        )

        with pytest.raises(GrantError) as exc_info:
            await client.grant(GRANT_PARAMS, GRANT_OPTS)

        assert str(exc_info.value) == (
            "Failed to obtain grant: Unable to verify ID token: no key for kid other-kid."
        )
        assert isinstance(exc_info.value.__cause__, IdTokenError)

    @pytest.mark.asyncio
    async def test_missing_kid(self, client, http_client, id_token, jwks):
        """Test that a token without a kid header is rejected."""
        http_client.get.return_value = make_response(json=jwks)
        http_client.post.return_value = make_response(
            json=token_response(id_token=id_token(headers={}))
        )

        with pytest.raises(GrantError) as exc_info:
            await client.grant(GRANT_PARAMS, GRANT_OPTS)

        assert str(exc_info.value) == (
            "Failed to obtain grant: Unable to verify ID token: "
            "decoded token header does not contain the kid."
        )

    @pytest.mark.asyncio
    async def test_bad_signature(self, client, http_client, id_token, jwks, other_private_key_pem):
        """Test that a token signed with another key is rejected."""
        http_client.get.return_value = make_response(json=jwks)
        http_client.post.return_value = make_response(
            json=token_response(id_token=id_token(key=other_private_key_pem))
        )

        with pytest.raises(GrantError) as exc_info:
            await client.grant(GRANT_PARAMS, GRANT_OPTS)

        assert str(exc_info.value).startswith(
            "Failed to obtain grant: Unable to verify ID token: Signature verification failed"
        )

    @pytest.mark.asyncio
    async def test_expired(self, client, http_client, id_token, jwks):
        """Test that an expired ID token is rejected."""
        http_client.get.return_value = make_response(json=jwks)
        http_client.post.return_value = make_response(
            json=token_response(id_token=id_token(claims={"exp": 1_000_000_000}))
        )

        with pytest.raises(GrantError, match="Unable to verify ID token"):
            await client.grant(GRANT_PARAMS, GRANT_OPTS)

    @pytest.mark.asyncio
    async def test_jwks_unavailable(self, client, http_client, id_token):
        """Test that a key set retrieval failure is reported."""
        http_client.get.return_value = make_response(500, text="error")
        http_client.post.return_value = make_response(json=token_response(id_token=id_token()))

        with pytest.raises(GrantError) as exc_info:
            await client.grant(GRANT_PARAMS, GRANT_OPTS)

        assert str(exc_info.value) == "Failed to obtain grant: Failed to retrieve JWKs."

    @pytest.mark.asyncio
    async def test_no_jwks_uri(self, openid_env, http_client, discovery_document, id_token):
        """Test that verification needs a published key set."""
        del discovery_document["jwks_uri"]
        http_client.get.return_value = make_response(json=discovery_document)
        client = OpenIdClient(openid_env, http_client=http_client)
        await client.init()
        http_client.post.return_value = make_response(json=token_response(id_token=id_token()))

        with pytest.raises(GrantError) as exc_info:
            await client.grant(GRANT_PARAMS, GRANT_OPTS)

        assert str(exc_info.value) == (
            "Failed to obtain grant: Unable to verify ID token: No JWKs provided."
        )

    @pytest.mark.asyncio
    async def test_missing_with_openid_scope(self, client, http_client):
        """Test that the openid scope requires an ID token."""
        http_client.post.return_value = make_response(json=token_response())

        with pytest.raises(GrantError) as exc_info:
            await client.grant(GRANT_PARAMS, GRANT_OPTS)

        assert str(exc_info.value) == "Failed to obtain grant: No id_token present."

    @pytest.mark.asyncio
    async def test_missing_without_openid_scope(self, client, http_client):
        """Test that responses without the openid scope need no ID token."""
        http_client.post.return_value = make_response(json=token_response(scope="api"))

        response = await client.grant(GRANT_PARAMS, GRANT_OPTS)

        assert "id_token" not in response

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "opts",
        [
            {"verify_id_token": False},
            {"decode_id_token": False},
        ],
    )
    async def test_missing_checked_once(self, client, http_client, opts):
        """Test that either ID token step alone still requires the token."""
        http_client.post.return_value = make_response(json=token_response())

        with pytest.raises(GrantError) as exc_info:
            await client.grant(GRANT_PARAMS, {"client_secret": "secret", **opts})

        assert str(exc_info.value) == "Failed to obtain grant: No id_token present."
        http_client.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_allowed_without_id_token_steps(self, client, http_client):
        """Test that the presence check is skipped when both ID token steps are off."""
        http_client.post.return_value = make_response(json=token_response())

        response = await client.grant(
            GRANT_PARAMS,
            GrantOptions(client_secret="secret", verify_id_token=False, decode_id_token=False),
        )

        assert "id_token" not in response

    def test_decode_invalid(self):
        """Test that an undecodable ID token is reported."""
        with pytest.raises(IdTokenError, match="Unable to decode ID token"):
            decode_id_token("not-a-jwt")


class TestUserInfo:
    """Tests for OpenIdClient.userinfo."""

    @pytest.mark.asyncio
    async def test_request(self, client, http_client):
        """Test the bearer authenticated userinfo request."""
        http_client.get.return_value = make_response(
            json={"user_id": "005xx000001SwiUAAS", "preferred_username": "alice@example.com"}
        )

        info = await client.userinfo("access-token")

        assert info["preferred_username"] == "alice@example.com"
        http_client.get.assert_awaited_once_with(
            "https://login.salesforce.com/services/oauth2/userinfo",
            headers={"Accept": "application/json", "Authorization": "Bearer access-token"},
            timeout=4.0,
        )

    @pytest.mark.asyncio
    async def test_error(self, client, http_client):
        """Test that a refused token is reported with the response text."""
        http_client.get.return_value = make_response(403, text="Bad_OAuth_Token")

        with pytest.raises(UserInfoError) as exc_info:
            await client.userinfo("access-token")

        assert str(exc_info.value) == "Failed to obtain user information: Bad_OAuth_Token."


class TestRevoke:
    """Tests for revocation on discovered clients."""

    @pytest.mark.asyncio
    async def test_uses_discovered_endpoint(self, client, http_client):
        """Test revocation against the discovered endpoint."""
        http_client.get.return_value = make_response(200, text="")

        assert await client.revoke("token", RevocationOptions(use_get=True)) is True
        assert http_client.get.await_args.args[0] == (
            "https://login.salesforce.com/services/oauth2/revoke"
        )

    @pytest.mark.asyncio
    async def test_no_revocation_endpoint(self, openid_env, http_client, discovery_document):
        """Test that a provider without revocation refuses."""
        del discovery_document["revocation_endpoint"]
        http_client.get.return_value = make_response(json=discovery_document)
        client = OpenIdClient(openid_env, http_client=http_client)
        await client.init()

        with pytest.raises(UnsupportedOperationError):
            await client.revoke("token")


class TestStandardClaims:
    """Tests for is_openid_token_with_standard_claims."""

    def test_with_email(self):
        """Test decoded claims with an email."""
        assert is_openid_token_with_standard_claims({"email": "alice@example.com"}) is True

    def test_without_email(self):
        """Test encoded tokens and claims without an email."""
        assert is_openid_token_with_standard_claims("header.payload.signature") is False
        assert is_openid_token_with_standard_claims({"sub": "alice"}) is False
