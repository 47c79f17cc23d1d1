"""Unit tests for structured logging infrastructure.

- StructuredFormatter produces valid JSON with redacted secrets
- Logger hierarchy configuration under task_sync
- Environment variable control
"""

import json
import logging
import os
from unittest.mock import patch

from task_sync.logging_config import (
    StructuredFormatter,
    TextFormatter,
    configure_logging,
)


def make_record(name="task_sync.jira.client", msg="jira_request_failed", **extras):
    record = logging.LogRecord(
        name=name,
        level=logging.WARNING,
        pathname="client.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extras.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def test_required_fields(self):
        log_data = json.loads(StructuredFormatter().format(make_record()))

        assert log_data["level"] == "WARNING"
        assert log_data["logger"] == "task_sync.jira.client"
        assert log_data["message"] == "jira_request_failed"
        assert log_data["timestamp"].endswith("Z")

    def test_extras_merged_into_context(self):
        record = make_record(status_code=404, url="https://x/rest/api/3/project")

        log_data = json.loads(StructuredFormatter().format(record))

        assert log_data["context"] == {
            "status_code": 404,
            "url": "https://x/rest/api/3/project",
        }

    def test_sensitive_keys_redacted(self):
        record = make_record(api_token="abc", Authorization="Basic xyz", issue_key="OTP-1")

        context = json.loads(StructuredFormatter().format(record))["context"]

        assert context["api_token"] == "[REDACTED]"
        assert context["Authorization"] == "[REDACTED]"
        assert context["issue_key"] == "OTP-1"

    def test_nested_and_suffixed_keys_redacted(self):
        """Credentials inside nested extras and *_token names are masked too."""
        record = make_record(
            headers={"Authorization": "Basic xyz", "Accept": "*/*"},
            jira_api_token="abc",
            records=[{"password": "p", "issuekey": "OTP-1"}],
        )

        context = json.loads(StructuredFormatter().format(record))["context"]

        assert context["headers"] == {"Authorization": "[REDACTED]", "Accept": "*/*"}
        assert context["jira_api_token"] == "[REDACTED]"
        assert context["records"] == [{"password": "[REDACTED]", "issuekey": "OTP-1"}]

    def test_no_context_without_extras(self):
        log_data = json.loads(StructuredFormatter().format(make_record()))

        assert "context" not in log_data

    def test_non_serializable_extras(self):
        """Extras that json cannot encode are stringified."""
        record = make_record(error=ValueError("bad"))

        log_data = json.loads(StructuredFormatter().format(record))

        assert log_data["context"]["error"] == "bad"


class TestTextFormatter:
    """Tests for TextFormatter."""

    def test_extras_appended_as_pairs(self):
        line = TextFormatter().format(make_record(issue_key="OTP-1", api_token="abc"))

        assert "[WARNING] task_sync.jira.client: jira_request_failed" in line
        assert line.endswith("issue_key=OTP-1 api_token=[REDACTED]")

    def test_plain_line_without_extras(self):
        line = TextFormatter().format(make_record())

        assert line.endswith("task_sync.jira.client: jira_request_failed")


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_sets_level_and_handler(self):
        configure_logging(level="DEBUG")

        logger = logging.getLogger("task_sync")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_idempotent(self):
        configure_logging()
        configure_logging()

        assert len(logging.getLogger("task_sync").handlers) == 1

    def test_child_loggers_inherit(self):
        configure_logging(level="WARNING")

        child = logging.getLogger("task_sync.jira.aggregator")
        assert child.level == logging.NOTSET
        assert not child.isEnabledFor(logging.INFO)
        assert child.isEnabledFor(logging.WARNING)

    def test_level_from_environment(self):
        with patch.dict(os.environ, {"TASK_SYNC_LOG_LEVEL": "ERROR"}):
            configure_logging()

        assert logging.getLogger("task_sync").level == logging.ERROR

    def test_text_format_from_environment(self):
        with patch.dict(os.environ, {"TASK_SYNC_LOG_FORMAT": "text"}):
            configure_logging()

        handler = logging.getLogger("task_sync").handlers[0]
        assert isinstance(handler.formatter, TextFormatter)

    def test_explicit_format_wins(self):
        with patch.dict(os.environ, {"TASK_SYNC_LOG_FORMAT": "text"}):
            configure_logging(log_format="json")

        handler = logging.getLogger("task_sync").handlers[0]
        assert isinstance(handler.formatter, StructuredFormatter)
