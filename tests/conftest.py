"""Shared pytest fixtures for the JIRA task sync tests.

Fixture Organization:
    - Sample data fixtures: raw Jira issue payloads
    - Environment fixtures: settings isolated from the developer's shell/.env
    - Logging fixtures: task_sync logger restored between tests
"""

import logging
import os
from typing import Any

import pytest

from task_sync.config import reset_settings

SETTINGS_ENV_VARS = [
    "JIRA_DOMAIN_URL",
    "JIRA_USERNAME",
    "JIRA_API_TOKEN",
    "JIRA_TASK_URL",
    "JIRA_ISSUE_TYPES",
    "JIRA_START_DATE_FIELD",
    "JIRA_PAGE_SIZE",
    "JIRA_MAX_PAGES",
    "INTEGRATION_RECORD_PATH",
    "INTEGRATION_RECORD_ID",
    "COMPANY_ID",
    "SYNC_MODE",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "TASK_SYNC_LOG_LEVEL",
    "TASK_SYNC_LOG_FORMAT",
]


def build_issue(
    key: str = "OTP-1",
    project_key: str = "OTP",
    project_name: str = "Online Tools Platform",
    summary: str = "Test",
    status: str | None = "To Do",
    parent: str | None = None,
    assignee: str | None = None,
    reporter: str | None = None,
    **extra_fields: Any,
) -> dict[str, Any]:
    """Build a raw Jira issue payload shaped like /rest/api/3/search results."""
    fields: dict[str, Any] = {
        "project": {"id": "10000", "key": project_key, "name": project_name},
        "summary": summary,
        "status": {"name": status} if status is not None else None,
        "parent": {"id": "10001", "key": parent} if parent else None,
        "assignee": {"emailAddress": assignee, "displayName": "Assignee"} if assignee else None,
        "reporter": {"emailAddress": reporter, "displayName": "Reporter"} if reporter else None,
        "timeoriginalestimate": None,
        "timeestimate": None,
        "duedate": None,
        "customfield_10015": None,
    }
    fields.update(extra_fields)
    return {"id": "20000", "key": key, "fields": fields}


@pytest.fixture
def make_issue():
    """Factory fixture for raw Jira issue payloads."""
    return build_issue


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Remove settings env vars and run from an empty directory (no .env)."""
    for key in list(os.environ.keys()):
        if key.upper() in SETTINGS_ENV_VARS:
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True)
def restore_task_sync_logger():
    """configure_logging() disables propagation; undo it so caplog keeps working."""
    logger = logging.getLogger("task_sync")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
