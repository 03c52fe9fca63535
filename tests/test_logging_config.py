"""Tests for logging configuration."""

import logging
import os
from unittest.mock import patch

from salesforce_identity.logging_config import (
    PACKAGE_LOGGER,
    SecretRedactionFilter,
    get_logger,
    setup_logging,
)


def make_record(msg, *args):
    return logging.LogRecord(PACKAGE_LOGGER, logging.INFO, __file__, 1, msg, args, None)


class TestGetLogger:
    """Tests for get_logger."""

    def test_namespaced(self):
        """Test that loggers live under the package logger."""
        assert get_logger("client.base").name == "salesforce_identity.client.base"


class TestSecretRedactionFilter:
    """Tests for SecretRedactionFilter."""

    def test_masks_bearer_token(self):
        """Test that bearer tokens are masked."""
        record = make_record("Authorization: Bearer %s", "00Dxx!secret-token")

        assert SecretRedactionFilter().filter(record) is True
        assert record.getMessage() == "Authorization: Bearer ***"

    def test_masks_form_secrets(self):
        """Test that secrets in form bodies are masked."""
        record = make_record("body=client_secret=shh&code=abc&grant_type=authorization_code")

        SecretRedactionFilter().filter(record)

        assert record.getMessage() == (
            "body=client_secret=***&code=***&grant_type=authorization_code"
        )

    def test_leaves_other_messages(self):
        """Test that messages without secrets keep their arguments."""
        record = make_record("Created %s client", "Salesforce")

        SecretRedactionFilter().filter(record)

        assert record.args == ("Salesforce",)
        assert record.getMessage() == "Created Salesforce client"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_configures_package_logger(self):
        """Test level, handler and propagation of the package logger."""
        setup_logging("debug")
        logger = logging.getLogger(PACKAGE_LOGGER)

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert logger.propagate is False
        assert any(isinstance(f, SecretRedactionFilter) for f in logger.handlers[0].filters)

    def test_reads_log_level_env(self):
        """Test that LOG_LEVEL is used when no level is given."""
        with patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}):
            setup_logging()

        assert logging.getLogger(PACKAGE_LOGGER).level == logging.WARNING

    def test_idempotent(self):
        """Test that repeated calls do not stack handlers."""
        setup_logging("INFO")
        setup_logging("INFO")

        assert len(logging.getLogger(PACKAGE_LOGGER).handlers) == 1
