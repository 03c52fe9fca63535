"""Tests for environment configuration and validation."""

import os
from unittest.mock import patch

import pytest

from salesforce_identity.config import (
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_ISSUER_URI,
    Environment,
    validate_environment,
)
from salesforce_identity.errors import ConfigurationError


def valid_values(**overrides):
    values = {
        "type": "Salesforce",
        "issuer_uri": "https://login.salesforce.com",
        "http_timeout": 4000,
    }
    values.update(overrides)
    return values


class TestEnvironmentFromEnv:
    """Tests for Environment.from_env."""

    def test_defaults(self):
        """Test that an empty environment yields the Salesforce defaults."""
        with patch.dict(os.environ, {}, clear=True):
            env = Environment.from_env()

        assert env.type == "Salesforce"
        assert env.issuer_uri == DEFAULT_ISSUER_URI
        assert env.http_timeout == DEFAULT_HTTP_TIMEOUT
        assert env.token_endpoint is None

    def test_custom_values(self):
        """Test that OAUTH_* variables are read."""
        with patch.dict(
            os.environ,
            {
                "OAUTH_CLIENT_TYPE": "OAuth2",
                "OAUTH_ISSUER_URI": "https://oauth.example.com",
                "OAUTH_HTTP_TIMEOUT": "2500",
                "OAUTH_AUTHORIZATION_ENDPOINT": "https://oauth.example.com/authorize",
                "OAUTH_TOKEN_ENDPOINT": "https://oauth.example.com/token",
                "OAUTH_REVOCATION_ENDPOINT": "https://oauth.example.com/revoke",
            },
            clear=True,
        ):
            env = Environment.from_env()

        assert env.type == "OAuth2"
        assert env.issuer_uri == "https://oauth.example.com"
        assert env.http_timeout == 2500
        assert env.timeout_seconds == 2.5
        assert env.authorization_endpoint == "https://oauth.example.com/authorize"
        assert env.token_endpoint == "https://oauth.example.com/token"
        assert env.revocation_endpoint == "https://oauth.example.com/revoke"
        assert env.introspection_endpoint is None

    def test_non_numeric_timeout(self):
        """Test that a non-integer timeout fails validation."""
        with patch.dict(os.environ, {"OAUTH_HTTP_TIMEOUT": "soon"}, clear=True):
            with pytest.raises(ConfigurationError) as exc_info:
                Environment.from_env()

        assert str(exc_info.value) == "Invalid parameter: httpTimeout is not a number."

    def test_invalid_type(self):
        """Test that an unknown client type fails validation."""
        with patch.dict(os.environ, {"OAUTH_CLIENT_TYPE": "SAML"}, clear=True):
            with pytest.raises(ConfigurationError):
                Environment.from_env()


class TestValidateEnvironment:
    """Tests for validate_environment."""

    def test_missing_environment(self):
        """Test that None is rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_environment(None)
        assert str(exc_info.value) == "Missing required object parameter."

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"http_timeout": None}, "Missing required number parameter: httpTimeout."),
            ({"http_timeout": "4000"}, "Invalid parameter: httpTimeout is not a number."),
            ({"http_timeout": True}, "Invalid parameter: httpTimeout is not a number."),
            ({"issuer_uri": None}, "Missing required string parameter: issuerURI."),
            ({"issuer_uri": 42}, "Invalid parameter: issuerURI is not a string."),
            ({"issuer_uri": ""}, "Invalid parameter: issuerURI cannot be empty."),
            ({"type": None}, "Missing required string parameter: type."),
            (
                {"type": "SAML"},
                "Invalid parameter: type is not one of OAuth2, OAuth2JWT, OpenID, Salesforce.",
            ),
        ],
    )
    def test_invalid_fields(self, overrides, message):
        """Test the message naming each missing or invalid field."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_environment(valid_values(**overrides))
        assert str(exc_info.value) == message

    def test_timeout_checked_first(self):
        """Test that the timeout is validated before the issuer and type."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_environment({})
        assert str(exc_info.value) == "Missing required number parameter: httpTimeout."

    def test_mapping_converted(self):
        """Test that a valid mapping becomes an Environment."""
        env = validate_environment(valid_values())

        assert isinstance(env, Environment)
        assert env.type == "Salesforce"

    def test_environment_returned_as_is(self, salesforce_env):
        """Test that a valid Environment is returned unchanged."""
        assert validate_environment(salesforce_env) is salesforce_env

    def test_configuration_error_is_value_error(self):
        """Test that configuration errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            validate_environment(None)


class TestEnvironment:
    """Tests for the Environment struct."""

    def test_frozen(self, salesforce_env):
        """Test that an environment cannot be modified."""
        with pytest.raises(AttributeError):
            salesforce_env.issuer_uri = "https://test.salesforce.com"

    def test_timeout_seconds(self, salesforce_env):
        """Test the millisecond to second conversion."""
        assert salesforce_env.timeout_seconds == 4.0
