"""Issue aggregation across Jira queries.

Pipeline Flow (aggregate):
1. Recent projects with insight (last issue update time per project)
2. Format each update time as a JQL timestamp (YYYY/MM/DD HH:mm)
3. Updated-since search per distinct timestamp
4. Field mapping + de-duplication by issue key

Error Handling:
- A failed query is skipped; the client has already logged it
- Per-issue fail-open: an unmappable issue is logged and dropped
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone, tzinfo
from typing import Any

from ...config import DEFAULT_ISSUE_TYPES, DEFAULT_START_DATE_FIELD
from ...models import SyncRecord
from .client import JiraClient
from .mapper import map_issue

__all__ = ["IssueAggregator", "format_update_time"]

logger = logging.getLogger("task_sync.jira.aggregator")

JQL_TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M"

_FALLBACK_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M%z",
)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, bool):
        raise ValueError(f"Unsupported timestamp: {value!r}")
    if isinstance(value, (int, float)):
        # Epoch milliseconds
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Timestamp out of range: {value!r}") from e
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Unsupported timestamp: {value!r}")

    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    # Jira's own format carries a +0000 style offset
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognized timestamp: {value!r}")


def format_update_time(value: Any, tz: tzinfo | None = None) -> str:
    """Format a Jira timestamp for an ``updated >=`` JQL clause.

    The result is built from the timestamp's calendar fields in the local
    zone ``tz`` (system local time when None). Timestamps without an offset
    are taken as already local.

    Args:
        value: ISO 8601 string (``Z``, ``+0000`` or ``+00:00`` offsets) or
            epoch milliseconds
        tz: Zone whose calendar fields are used

    Returns:
        ``YYYY/MM/DD HH:mm`` (zero-padded, 24-hour)

    Raises:
        ValueError: If the value cannot be parsed.

    Example:
        >>> format_update_time("2024-01-05T09:03:00Z", tz=timezone.utc)
        '2024/01/05 09:03'
    """
    dt = _parse_timestamp(value)
    if dt.tzinfo is None:
        if tz is not None:
            dt = dt.replace(tzinfo=tz)
        return dt.strftime(JQL_TIMESTAMP_FORMAT)
    return dt.astimezone(tz).strftime(JQL_TIMESTAMP_FORMAT)


class IssueAggregator:
    """Collects SyncRecords from several Jira queries.

    Attributes:
        client: JiraClient used for every request
        start_date_field: Custom field id passed to the mapper
        tz: Local zone for timestamp formatting (None = system local)
    """

    def __init__(
        self,
        client: JiraClient,
        start_date_field: str = DEFAULT_START_DATE_FIELD,
        tz: tzinfo | None = None,
    ):
        self.client = client
        self.start_date_field = start_date_field
        self.tz = tz

    def update_timestamps(self) -> list[str] | None:
        """Distinct formatted last-update times of the recent projects.

        Returns:
            Timestamps in response order, or None if the insight fetch failed.
        """
        projects = self.client.recent_projects()
        if projects is None:
            return None

        timestamps: list[str] = []
        for project in projects:
            if not isinstance(project, dict):
                logger.warning("insight_timestamp_invalid", extra={"value": project})
                continue
            insight = project.get("insight") or {}
            if not isinstance(insight, dict):
                logger.warning(
                    "insight_timestamp_invalid",
                    extra={"project": project.get("key"), "value": insight},
                )
                continue
            raw = insight.get("lastIssueUpdateTime")
            if raw is None:
                continue
            try:
                formatted = format_update_time(raw, self.tz)
            except ValueError as e:
                logger.warning(
                    "insight_timestamp_invalid",
                    extra={"project": project.get("key"), "value": raw, "error": str(e)},
                )
                continue
            if formatted not in timestamps:
                timestamps.append(formatted)

        logger.debug("update_timestamps", extra={"timestamps": timestamps})
        return timestamps

    def aggregate(self) -> list[SyncRecord]:
        """Map every issue updated since the recent projects' last updates.

        Returns:
            SyncRecords with unique issue keys. Empty when the insight fetch
            fails or there are no recent projects.
        """
        timestamps = self.update_timestamps()
        if not timestamps:
            logger.info("aggregate_no_recent_updates")
            return []

        records: list[SyncRecord] = []
        seen: set[str] = set()
        for timestamp in timestamps:
            issues = self.client.search_updated_since(timestamp)
            if issues is None:
                logger.warning("updated_since_search_skipped", extra={"since": timestamp})
                continue
            self._collect(issues, records, seen)

        logger.info(
            "aggregate_complete",
            extra={"timestamps": len(timestamps), "records": len(records)},
        )
        return records

    def aggregate_by_type(self, issue_types: Iterable[str] | None = None) -> list[SyncRecord]:
        """Map issues of each type, one search per type.

        Args:
            issue_types: Issue type names (default: Epic, Task, Story, Bug, Subtask)

        Returns:
            SyncRecords with unique issue keys. A failing type is skipped.
        """
        types = list(issue_types) if issue_types is not None else list(DEFAULT_ISSUE_TYPES)

        records: list[SyncRecord] = []
        seen: set[str] = set()
        for issue_type in types:
            issues = self.client.search_by_type(issue_type)
            if issues is None:
                logger.warning("type_search_skipped", extra={"issue_type": issue_type})
                continue
            added = self._collect(issues, records, seen)
            logger.debug(
                "type_search_collected",
                extra={"issue_type": issue_type, "fetched": len(issues), "added": added},
            )

        return records

    def list_project_refs(self) -> list[dict[str, Any]]:
        """Id and key of every accessible project ([] on failure)."""
        projects = self.client.list_projects()
        if projects is None:
            return []
        return [{"id": p.get("id"), "key": p.get("key")} for p in projects]

    def _collect(
        self,
        issues: list[dict[str, Any]],
        records: list[SyncRecord],
        seen: set[str],
    ) -> int:
        added = 0
        for issue in issues:
            try:
                record = map_issue(issue, self.start_date_field)
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(
                    "issue_mapping_failed",
                    extra={"issue_key": issue.get("key") if isinstance(issue, dict) else None, "error": str(e)},
                )
                continue
            if record.issue_key in seen:
                continue
            seen.add(record.issue_key)
            records.append(record)
            added += 1
        return added
