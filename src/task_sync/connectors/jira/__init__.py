"""Jira Cloud integration package.

Provides the REST client, field mapper and issue aggregator for Jira issue sync.
"""

from .aggregator import IssueAggregator, format_update_time
from .client import JiraClient, JiraClientError, ParseError, RemoteError, build_headers
from .mapper import map_issue, normalize_status

__all__ = [
    "IssueAggregator",
    "JiraClient",
    "JiraClientError",
    "ParseError",
    "RemoteError",
    "build_headers",
    "format_update_time",
    "map_issue",
    "normalize_status",
]
