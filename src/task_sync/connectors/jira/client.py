"""Jira Cloud REST API client.

Provides a synchronous httpx-based client for Jira Cloud API v3 with Basic Auth.

Failures never propagate to callers: a non-200 status, an unreadable body or a
transport error is logged, kept in ``client.errors`` and reported as ``None``
so that one failing query does not abort the rest of the sync.

Reference: https://developer.atlassian.com/cloud/jira/platform/rest/v3/intro/
"""

import base64
import contextlib
import logging
import re
from typing import Any

import httpx

__all__ = [
    "JiraClient",
    "JiraClientError",
    "ParseError",
    "RemoteError",
    "build_headers",
]

logger = logging.getLogger("task_sync.jira.client")

# Longest response body kept on a RemoteError / written to the log
MAX_ERROR_BODY = 500

_PLAIN_JQL_VALUE = re.compile(r"^[A-Za-z0-9_]+$")


class JiraClientError(Exception):
    """Base class for failed Jira requests."""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class RemoteError(JiraClientError):
    """Jira answered with something other than HTTP 200, or did not answer.

    Attributes:
        status_code: HTTP status, or None for timeouts and connection errors
        body: Raw response body (or transport error text)
    """

    def __init__(self, status_code: int | None, body: str, url: str | None = None):
        label = f"HTTP {status_code}" if status_code is not None else "no response"
        super().__init__(f"{label}: {body[:MAX_ERROR_BODY]}", url=url)
        self.status_code = status_code
        self.body = body


class ParseError(JiraClientError):
    """Jira answered HTTP 200 with a body that is not valid JSON."""

    pass


def build_headers(username: str, api_token: str) -> dict[str, str]:
    """Build the request headers for Jira Basic Auth.

    Args:
        username: Jira account email
        api_token: Jira API token

    Returns:
        Header dict with Authorization, Content-Type, Accept and Accept-Encoding.

    Raises:
        TypeError: If either argument is not a string.

    Example:
        >>> build_headers("user@example.com", "token")["Authorization"]
        'Basic dXNlckBleGFtcGxlLmNvbTp0b2tlbg=='
    """
    if not isinstance(username, str) or not isinstance(api_token, str):
        raise TypeError("username and api_token must be strings")

    credentials = f"{username}:{api_token}"
    encoded = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
    return {
        "Authorization": f"Basic {encoded}",
        "Content-Type": "application/json",
        "Accept": "*/*",
        "Accept-Encoding": "gzip, deflate, br",
    }


def _jql_value(value: str) -> str:
    if _PLAIN_JQL_VALUE.match(value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class JiraClient:
    """Jira Cloud REST API client using httpx with Basic Auth.

    Requests run one at a time; each call blocks until Jira answers or the
    httpx timeout fires.

    Attributes:
        base_url: Jira instance URL (e.g., https://company.atlassian.net)
        headers: Headers sent with every request (see build_headers)
        page_size: maxResults for search pages
        max_pages: Upper bound on pages fetched per search
        errors: Failures absorbed since the client was created

    Example:
        >>> with JiraClient("https://company.atlassian.net", "user@example.com", "token") as client:
        ...     projects = client.list_projects()
        ...     if projects is None:
        ...         print(client.errors[-1])
    """

    def __init__(
        self,
        domain_url: str,
        username: str,
        api_token: str,
        page_size: int = 50,
        max_pages: int = 20,
    ) -> None:
        """Initialize Jira client with authentication.

        Args:
            domain_url: Jira instance URL (e.g., https://company.atlassian.net)
            username: Jira account email for Basic Auth
            api_token: Jira API token for authentication
            page_size: maxResults per search page (default: 50)
            max_pages: Pages fetched per search before truncating (default: 20)
        """
        self.base_url = domain_url.rstrip("/")
        self.headers = build_headers(username, api_token)
        self.page_size = page_size
        self.max_pages = max_pages
        self.errors: list[JiraClientError] = []

        timeout_config = httpx.Timeout(
            connect=3.0,  # Connection establishment timeout
            read=15.0,  # Read timeout for API responses
            write=5.0,  # Write timeout for request body
            pool=3.0,  # Pool acquisition timeout
        )

        limits = httpx.Limits(
            max_keepalive_connections=5,
            max_connections=10,
            keepalive_expiry=10.0,
        )

        self.client = httpx.Client(
            timeout=timeout_config,
            limits=limits,
            headers=self.headers,
        )

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}{path}"

    def request_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Send one GET and decode the JSON body.

        Raises:
            RemoteError: Non-200 status, timeout or connection failure
            ParseError: HTTP 200 with a body that is not JSON
        """
        url = self._url(path)
        try:
            response = self.client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise RemoteError(None, f"Timeout: {e}", url=url) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RemoteError(None, f"Connection error: {e}", url=url) from e

        if response.status_code != 200:
            raise RemoteError(response.status_code, response.text, url=url)

        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"Invalid JSON body: {e}", url=url) from e

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any | None:
        """GET a Jira endpoint, absorbing failures.

        Args:
            path: Endpoint path (e.g., /rest/api/3/project) or absolute URL
            params: Optional query parameters

        Returns:
            Decoded JSON on HTTP 200, otherwise None. The failure is logged and
            appended to ``self.errors``.
        """
        try:
            return self.request_json(path, params)
        except RemoteError as e:
            self.errors.append(e)
            logger.warning(
                "jira_request_failed",
                extra={
                    "url": e.url,
                    "status_code": e.status_code,
                    "body": e.body[:MAX_ERROR_BODY],
                },
            )
        except ParseError as e:
            self.errors.append(e)
            logger.warning(
                "jira_response_unparseable",
                extra={"url": e.url, "error": str(e)},
            )
        return None

    def test_connection(self) -> dict[str, Any]:
        """Check credentials against /rest/api/3/myself.

        Returns:
            dict with keys:
                - success (bool): True if authenticated successfully
                - user_email (str | None): Authenticated user's email
                - error (str | None): Error message if failed
        """
        try:
            data = self.request_json("/rest/api/3/myself")
        except JiraClientError as e:
            logger.error("jira_connection_failed", extra={"error": str(e)})
            return {"success": False, "user_email": None, "error": str(e)}
        return {
            "success": True,
            "user_email": data.get("emailAddress") if isinstance(data, dict) else None,
            "error": None,
        }

    def list_projects(self) -> list[dict[str, Any]] | None:
        """List all accessible projects (GET /rest/api/3/project)."""
        data = self.get("/rest/api/3/project")
        if data is None:
            return None
        if not isinstance(data, list):
            logger.warning("jira_unexpected_payload", extra={"endpoint": "project"})
            return None
        return data

    def recent_projects(self) -> list[dict[str, Any]] | None:
        """Recently viewed projects with their insight block.

        Sends GET /rest/api/3/project/recent?expand=insight. Each project's
        ``insight.lastIssueUpdateTime`` drives the updated-since searches.
        """
        data = self.get("/rest/api/3/project/recent", params={"expand": "insight"})
        if data is None:
            return None
        if not isinstance(data, list):
            logger.warning("jira_unexpected_payload", extra={"endpoint": "project/recent"})
            return None
        return data

    def get_issue(self, issue_key: str) -> dict[str, Any] | None:
        """Fetch one issue with all fields (GET /rest/api/3/issue/{key})."""
        return self.get(f"/rest/api/3/issue/{issue_key}", params={"fields": "*all"})

    def issue_picker(
        self,
        current_project_id: str | None = None,
        current_issue_key: str | None = None,
    ) -> dict[str, Any] | None:
        """Issue picker suggestions scoped to a project or an issue.

        Exactly one of ``current_project_id`` / ``current_issue_key`` is sent.

        Raises:
            ValueError: If neither scope is given.
        """
        if current_project_id is not None:
            params = {"currentProjectId": current_project_id}
        elif current_issue_key is not None:
            params = {"currentIssueKey": current_issue_key}
        else:
            raise ValueError("current_project_id or current_issue_key is required")
        return self.get("/rest/api/3/issue/picker", params=params)

    def search_by_type(self, issue_type: str) -> list[dict[str, Any]] | None:
        """Search issues of one type (JQL ``type = <Type>``)."""
        return self._search(f"type = {_jql_value(issue_type)}")

    def search_updated_since(self, timestamp: str) -> list[dict[str, Any]] | None:
        """Search issues updated at or after a ``YYYY/MM/DD HH:mm`` timestamp."""
        return self._search(f'updated >= "{timestamp}"')

    def _search(self, jql: str) -> list[dict[str, Any]] | None:
        """Run a JQL search with offset-based pagination.

        Uses /rest/api/3/search with startAt/maxResults/total.

        Returns:
            All issues collected, or None if the first page failed. A failure on
            a later page returns what was collected so far.
        """
        all_issues: list[dict[str, Any]] = []
        start_at = 0

        for page in range(self.max_pages):
            data = self.get(
                "/rest/api/3/search",
                params={
                    "jql": jql,
                    "fields": "*all",
                    "startAt": start_at,
                    "maxResults": self.page_size,
                },
            )
            if not isinstance(data, dict):
                if data is not None:
                    logger.warning("jira_unexpected_payload", extra={"endpoint": "search", "jql": jql})
                if page == 0:
                    return None
                logger.warning(
                    "jira_search_incomplete",
                    extra={"jql": jql, "collected": len(all_issues), "page": page},
                )
                return all_issues

            issues = data.get("issues") or []
            all_issues.extend(issues)
            start_at += len(issues)
            total = data.get("total", start_at)

            logger.debug(
                "jira_search_page",
                extra={
                    "jql": jql,
                    "page_issues": len(issues),
                    "total_so_far": len(all_issues),
                    "total": total,
                },
            )

            if not issues or start_at >= total:
                logger.info(
                    "jira_search_complete",
                    extra={"jql": jql, "total_issues": len(all_issues)},
                )
                return all_issues

        logger.warning(
            "jira_search_truncated",
            extra={"jql": jql, "collected": len(all_issues), "max_pages": self.max_pages},
        )
        return all_issues

    def close(self) -> None:
        """Close the HTTP client connection."""
        if hasattr(self, "client") and self.client is not None:
            self.client.close()

    def __enter__(self) -> "JiraClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __del__(self) -> None:
        # The httpx module may already be unloaded at interpreter shutdown
        with contextlib.suppress(Exception):
            self.close()
