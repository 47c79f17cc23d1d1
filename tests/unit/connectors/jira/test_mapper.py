"""Unit tests for the Jira field mapper and status normalizer."""

import pytest

from task_sync.connectors.jira.mapper import map_issue, normalize_status
from task_sync.models import SyncStatus


class TestNormalizeStatus:
    """Three-way status classification."""

    def test_to_do_is_not_started(self):
        assert normalize_status("To Do") is SyncStatus.NOT_STARTED

    @pytest.mark.parametrize("name", ["In Progress", "In QA"])
    def test_in_progress_names(self, name):
        assert normalize_status(name) is SyncStatus.IN_PROGRESS

    @pytest.mark.parametrize(
        "name",
        ["Done", "Closed", "Completed", "Completed-ish", "Resolved", "Backlog", "", None],
    )
    def test_everything_else_is_completed(self, name):
        assert normalize_status(name) is SyncStatus.COMPLETED

    @pytest.mark.parametrize("name", ["to do", "IN PROGRESS", " In QA", "In Progress "])
    def test_match_is_exact(self, name):
        """Names are compared as-is; near misses fall into Completed."""
        assert normalize_status(name) is SyncStatus.COMPLETED

    def test_result_is_always_in_closed_set(self):
        names = ["To Do", "In Progress", "In QA", "Done", "Blocked", "Won't Do"]
        assert {normalize_status(n) for n in names} <= set(SyncStatus)


class TestMapIssue:
    """Field extraction from raw issue payloads."""

    def test_known_fixture(self, make_issue):
        """Minimal fixture maps to the expected host-facing dict."""
        record = map_issue(make_issue())

        result = record.to_dict()
        assert result["projectKey"] == "OTP"
        assert result["issuekey"] == "OTP-1"
        assert result["summary"] == "Test"
        assert result["parent"] is None
        assert result["assignee"] is None
        assert result["statusName"] == "Not Started"

    def test_full_issue(self, make_issue):
        """All fields are extracted when present."""
        issue = make_issue(
            key="OTP-7",
            summary="Build invoice export",
            status="In QA",
            parent="OTP-2",
            assignee="dev@example.com",
            reporter="pm@example.com",
            timeoriginalestimate=28800,
            timeestimate=7200,
            duedate="2024-02-01",
            customfield_10015="2024-01-15",
        )

        record = map_issue(issue)

        assert record.project_key == "OTP"
        assert record.company == "Online Tools Platform"
        assert record.issue_key == "OTP-7"
        assert record.parent == "OTP-2"
        assert record.assignee == "dev@example.com"
        assert record.reporter == "pm@example.com"
        assert record.status is SyncStatus.IN_PROGRESS
        assert record.original_estimate == 28800
        assert record.time_estimate == 7200
        assert record.due_date == "2024-02-01"
        assert record.start_date == "2024-01-15"

    def test_custom_start_date_field(self, make_issue):
        """The start date field id is configurable."""
        issue = make_issue(customfield_10015="2024-01-01", customfield_12345="2024-03-03")

        record = map_issue(issue, start_date_field="customfield_12345")

        assert record.start_date == "2024-03-03"

    def test_missing_optional_objects(self):
        """Absent nested objects map to None instead of failing."""
        record = map_issue({"key": "OTP-9", "fields": {}})

        assert record.project_key is None
        assert record.company is None
        assert record.summary is None
        assert record.parent is None
        assert record.assignee is None
        assert record.reporter is None
        assert record.status is SyncStatus.COMPLETED

    def test_assignee_without_email(self, make_issue):
        """Assignees hidden by privacy settings have no emailAddress."""
        issue = make_issue()
        issue["fields"]["assignee"] = {"displayName": "Private User"}

        assert map_issue(issue).assignee is None

    def test_missing_fields_block(self):
        """An issue without a fields block still maps by key."""
        record = map_issue({"key": "OTP-3"})
        assert record.issue_key == "OTP-3"

    def test_missing_key_raises(self, make_issue):
        issue = make_issue()
        del issue["key"]

        with pytest.raises(ValueError, match="no key"):
            map_issue(issue)
