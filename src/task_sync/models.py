"""Data models for the sync pipeline.

IntegrationConfig is what the credential store gateway hands the pipeline;
SyncRecord is what the pipeline hands the host's record stage.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

__all__ = [
    "IntegrationConfig",
    "SyncRecord",
    "SyncStatus",
]


class SyncStatus(str, Enum):
    """Canonical task status buckets on the host side.

    Note: Uses (str, Enum) so values compare equal to their plain strings.
    """

    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


@dataclass(frozen=True)
class IntegrationConfig:
    """Connection details for one Jira Cloud instance.

    Loaded once per run and never mutated.
    """

    domain_url: str
    username: str
    api_token: str = field(repr=False)
    task_url: str = ""


@dataclass(frozen=True)
class SyncRecord:
    """Flat view of one Jira issue, ready for project/task creation."""

    project_key: str | None
    issue_key: str
    summary: str | None
    parent: str | None
    company: str | None
    assignee: str | None
    reporter: str | None
    status: SyncStatus
    original_estimate: int | None = None
    due_date: str | None = None
    start_date: str | None = None
    time_estimate: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the host-facing dictionary shape."""
        return {
            "projectKey": self.project_key,
            "issuekey": self.issue_key,
            "summary": self.summary,
            "parent": self.parent,
            "company": self.company,
            "assignee": self.assignee,
            "reporter": self.reporter,
            "statusName": self.status.value,
            "originalEstimate": self.original_estimate,
            "dueDate": self.due_date,
            "startDate": self.start_date,
            "timeEstimate": self.time_estimate,
        }
