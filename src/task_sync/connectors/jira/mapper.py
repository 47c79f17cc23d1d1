"""Field mapper for Jira issues.

Turns raw Jira API issue payloads into flat SyncRecords. Handles nullable
fields (unassigned issues, top-level issues without a parent, team-managed
projects without estimates).
"""

import logging
from typing import Any

from ...config import DEFAULT_START_DATE_FIELD
from ...models import SyncRecord, SyncStatus

__all__ = ["map_issue", "normalize_status"]

logger = logging.getLogger("task_sync.jira.mapper")

_NOT_STARTED_NAMES = frozenset({"To Do"})
_IN_PROGRESS_NAMES = frozenset({"In Progress", "In QA"})


def normalize_status(status_name: str | None) -> SyncStatus:
    """Classify a Jira status name into one of the host's status buckets.

    Example:
        >>> normalize_status("To Do")
        <SyncStatus.NOT_STARTED: 'Not Started'>
        >>> normalize_status("In QA")
        <SyncStatus.IN_PROGRESS: 'In Progress'>
        >>> normalize_status("Done")
        <SyncStatus.COMPLETED: 'Completed'>
    """
    if status_name in _NOT_STARTED_NAMES:
        return SyncStatus.NOT_STARTED
    if status_name in _IN_PROGRESS_NAMES:
        return SyncStatus.IN_PROGRESS
    return SyncStatus.COMPLETED


def _nested(fields: dict[str, Any], name: str, attr: str) -> Any:
    obj = fields.get(name)
    if not isinstance(obj, dict):
        return None
    return obj.get(attr)


def map_issue(
    issue: dict[str, Any], start_date_field: str = DEFAULT_START_DATE_FIELD
) -> SyncRecord:
    """Map a raw Jira issue to a SyncRecord.

    Args:
        issue: Raw Jira API issue response dict
        start_date_field: Custom field id holding the start date

    Returns:
        SyncRecord with a normalized status

    Raises:
        ValueError: If the issue has no key.

    Example:
        >>> record = map_issue({
        ...     "key": "OTP-1",
        ...     "fields": {
        ...         "project": {"key": "OTP", "name": "Online Tools"},
        ...         "summary": "Test",
        ...         "status": {"name": "To Do"},
        ...     },
        ... })
        >>> record.status.value
        'Not Started'
    """
    issue_key = issue.get("key")
    if not issue_key:
        raise ValueError("Jira issue payload has no key")

    fields = issue.get("fields") or {}

    return SyncRecord(
        project_key=_nested(fields, "project", "key"),
        issue_key=issue_key,
        summary=fields.get("summary"),
        parent=_nested(fields, "parent", "key"),
        company=_nested(fields, "project", "name"),
        assignee=_nested(fields, "assignee", "emailAddress"),
        reporter=_nested(fields, "reporter", "emailAddress"),
        status=normalize_status(_nested(fields, "status", "name")),
        original_estimate=fields.get("timeoriginalestimate"),
        due_date=fields.get("duedate"),
        start_date=fields.get(start_date_field),
        time_estimate=fields.get("timeestimate"),
    )
