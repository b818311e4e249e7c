"""Tests for grantcore.logging module."""

from __future__ import annotations

import json
import logging
import os
from unittest.mock import patch

import pytest

from grantcore import (
    EngineConfig,
    LogLevel,
    get_permission_logger,
    redact_secrets,
    safe_log_value,
    safe_preview,
    setup_logging,
)
from grantcore.logging import GrantCoreFormatter


def make_record(**attrs: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="grantcore.test",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg="Checked permission",
        args=(),
        exc_info=None,
    )
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


class TestSafePreview:
    """Tests for safe_preview function."""

    def test_none_value(self) -> None:
        """Test that None returns empty string."""
        assert safe_preview(None) == ""

    def test_string_with_whitespace(self) -> None:
        """Test that whitespace is normalized."""
        assert safe_preview("property\n\tread  any") == "property read any"

    def test_string_truncation(self) -> None:
        """Test that long strings are truncated."""
        result = safe_preview("a" * 300, limit=100)
        assert len(result) == 100
        assert result.endswith("…")

    def test_dict_value(self) -> None:
        """Test that resource documents are converted to JSON."""
        result = safe_preview({"_id": "p1", "createdBy": "u1"})
        assert "createdBy" in result
        assert "u1" in result

    def test_set_value(self) -> None:
        """Test that sets are previewed in sorted order."""
        assert safe_preview({"v2", "v1"}) == '["v1", "v2"]'


class TestRedactSecrets:
    """Tests for redact_secrets function."""

    def test_password_pattern(self) -> None:
        """Test password redaction."""
        result = redact_secrets('password: "secret123"')
        assert "[REDACTED]" in result
        assert "secret123" not in result

    def test_bearer_token(self) -> None:
        """Test bearer token redaction."""
        result = redact_secrets("Authorization: Bearer abc123def456")
        assert "[REDACTED]" in result

    def test_no_secrets(self) -> None:
        """Test that normal text is not modified."""
        text = "Role 'vendor' does not have permission 'update:assigned'"
        assert redact_secrets(text) == text

    def test_non_string_passthrough(self) -> None:
        """Test redact_secrets with None input."""
        assert redact_secrets(None) is None  # type: ignore[arg-type]

    def test_custom_replacement(self) -> None:
        """Test custom replacement string."""
        assert "[HIDDEN]" in redact_secrets("password: secret123", replacement="[HIDDEN]")


class TestSafeLogValue:
    """Tests for safe_log_value function."""

    def test_with_redaction(self) -> None:
        """Test that secrets are redacted."""
        assert "[REDACTED]" in safe_log_value("api_key: sk-1234567890", redact=True)

    def test_truncation(self) -> None:
        """Test that long values are truncated."""
        assert len(safe_log_value("a" * 500, limit=100)) <= 100


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_with_config(self) -> None:
        """Test logging setup with EngineConfig."""
        setup_logging(config=EngineConfig(log_level=LogLevel.DEBUG), json_format=False)
        assert logging.getLogger().level == logging.DEBUG

    @patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}, clear=True)
    def test_setup_with_env(self) -> None:
        """Test logging setup loading from environment."""
        setup_logging(json_format=False)
        assert logging.getLogger().level == logging.WARNING

    def test_json_format(self, capsys: pytest.CaptureFixture) -> None:
        """Test JSON format output."""
        setup_logging(config=EngineConfig(log_level=LogLevel.INFO), json_format=True)

        logging.getLogger("test").info("Test message")

        stderr_output = capsys.readouterr().err.strip()
        assert stderr_output.startswith("{")
        data = json.loads(stderr_output)
        assert data["level"] == "INFO"
        assert data["message"] == "Test message"
        assert data["logger"] == "test"

    def test_json_from_config(self, capsys: pytest.CaptureFixture) -> None:
        """Test that log_json selects the JSON formatter."""
        setup_logging(config=EngineConfig(log_level=LogLevel.INFO, log_json=True))

        logging.getLogger("test").info("Test message")

        assert capsys.readouterr().err.strip().startswith("{")

    def test_plain_format(self, capsys: pytest.CaptureFixture) -> None:
        """Test plain text format output."""
        setup_logging(config=EngineConfig(log_level=LogLevel.INFO), json_format=False)

        logging.getLogger("test").info("Test message")

        stderr_output = capsys.readouterr().err.strip()
        assert "INFO" in stderr_output
        assert "Test message" in stderr_output
        assert not stderr_output.startswith("{")

    def test_single_handler(self) -> None:
        """Test that repeated setup does not stack handlers."""
        config = EngineConfig(log_level=LogLevel.INFO)
        setup_logging(config=config)
        setup_logging(config=config)
        assert len(logging.getLogger().handlers) == 1


class TestPermissionLogger:
    """Tests for the role/user logger adapter."""

    def test_role_and_user_attached(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that bound role and user id reach the record."""
        logger = get_permission_logger("grantcore.test", role="manager", user_id="u1")

        with caplog.at_level(logging.INFO, logger="grantcore.test"):
            logger.info("Checking access")

        record = caplog.records[0]
        assert record.role == "manager"
        assert record.user_id == "u1"

    def test_resource_per_call(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that resource can be passed on each call."""
        logger = get_permission_logger("grantcore.test", role="tenant")

        with caplog.at_level(logging.INFO, logger="grantcore.test"):
            logger.info("Checking access", resource="maintenance")

        assert caplog.records[0].resource == "maintenance"

    def test_without_context(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test logger without role or user."""
        logger = get_permission_logger("grantcore.test")

        with caplog.at_level(logging.INFO, logger="grantcore.test"):
            logger.info("Test message")

        assert not hasattr(caplog.records[0], "role")


class TestGrantCoreFormatter:
    """Tests for GrantCoreFormatter."""

    def test_json_format(self) -> None:
        """Test JSON formatter carries the check context."""
        formatter = GrantCoreFormatter(json_format=True)

        data = json.loads(formatter.format(make_record(role="vendor", user_id="v1", resource="maintenance")))

        assert data["level"] == "INFO"
        assert data["role"] == "vendor"
        assert data["user_id"] == "v1"
        assert data["resource"] == "maintenance"

    def test_plain_format(self) -> None:
        """Test plain text formatter."""
        formatter = GrantCoreFormatter(json_format=False)

        result = formatter.format(make_record(role="vendor"))

        assert "INFO" in result
        assert "Checked permission" in result
        assert "role=vendor" in result

    def test_context_can_be_disabled(self) -> None:
        """Test that include_context=False drops the check context."""
        formatter = GrantCoreFormatter(include_context=False, json_format=True)

        data = json.loads(formatter.format(make_record(role="vendor")))

        assert "role" not in data
