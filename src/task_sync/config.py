"""Process settings with pydantic-settings for the JIRA task sync package.

Loads from (in order of precedence):
1. Environment variables (highest priority)
2. .env file in the working directory
3. Default values (lowest priority)

These are process-level settings. The JIRA credentials themselves are read
through the credential store gateway (see gateway.py), which may or may not
be backed by these settings.
"""

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

__all__ = [
    "DEFAULT_ISSUE_TYPES",
    "DEFAULT_START_DATE_FIELD",
    "SyncSettings",
    "get_settings",
    "reset_settings",
]

# Issue types fetched one query per type by aggregate_by_type()
DEFAULT_ISSUE_TYPES = ["Epic", "Task", "Story", "Bug", "Subtask"]

# Jira Cloud's built-in "Start date" field
DEFAULT_START_DATE_FIELD = "customfield_10015"


class SyncSettings(BaseSettings):
    """Settings for a JIRA task sync run.

    Attributes:
        jira_domain_url: Jira Cloud base URL (e.g., https://company.atlassian.net)
        jira_username: Jira account email for Basic Auth
        jira_api_token: Jira API token (SecretStr)
        jira_task_url: Jira board/task URL carrying the selected issue
        integration_record_path: Optional YAML file holding integration records
        integration_record_id: Record id selected from the YAML file
        company_id: Host company identifier used for environment detection
        sync_mode: Input query strategy (recent or by_type)
        jira_issue_types: Issue types queried by the per-type fan-out
        jira_start_date_field: Custom field id holding the issue start date
        jira_page_size: maxResults per search page
        jira_max_pages: Upper bound on pages fetched per search
        log_level: Logging level
        log_format: json or text
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        validate_default=True,
        frozen=True,
        extra="ignore",
    )

    jira_domain_url: str = Field(
        default="",
        description="Jira Cloud instance URL (e.g., https://company.atlassian.net)",
    )

    jira_username: str = Field(
        default="",
        description="Jira account email for Basic Auth",
    )

    jira_api_token: SecretStr = Field(
        default=SecretStr(""),
        description="Jira API token for authentication (stored securely)",
    )

    jira_task_url: str = Field(
        default="",
        description="Jira task URL; the selectedIssue query parameter names the issue",
    )

    integration_record_path: Path | None = Field(
        default=None,
        description="YAML file of integration records. When set, credentials are read from it.",
    )

    integration_record_id: str = Field(
        default="1",
        description="Internal id of the integration record to load",
    )

    company_id: str = Field(
        default="",
        description="Host company identifier (numeric ids are treated as non-production)",
    )

    sync_mode: str = Field(
        default="recent",
        pattern="^(recent|by_type)$",
        description="recent: issues updated since the recent projects' last update; by_type: one search per issue type",
    )

    jira_issue_types: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_ISSUE_TYPES),
        description="Issue types for the per-type fan-out (e.g., ['Epic', 'Task'])",
    )

    jira_start_date_field: str = Field(
        default=DEFAULT_START_DATE_FIELD,
        pattern=r"^customfield_\d+$",
        description="Custom field id holding the issue start date",
    )

    jira_page_size: int = Field(
        default=50,
        ge=1,
        le=100,
        description="maxResults per /rest/api/3/search page",
    )

    jira_max_pages: int = Field(
        default=20,
        ge=1,
        le=1000,
        description="Maximum pages fetched per search before results are truncated",
    )

    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )

    log_format: str = Field(
        default="json",
        pattern="^(json|text)$",
        description="Log format: json (production), text (development)",
    )

    @field_validator("integration_record_path", mode="before")
    @classmethod
    def expand_user_paths(cls, v):
        """Expand ~ and environment variables in paths."""
        if isinstance(v, str):
            return Path(os.path.expanduser(os.path.expandvars(v)))
        return v

    @field_validator("jira_issue_types", mode="before")
    @classmethod
    def parse_issue_types(cls, v):
        """Parse comma-separated or JSON string into list for JIRA_ISSUE_TYPES env var."""
        if isinstance(v, str):
            if v.lstrip().startswith("["):
                return json.loads(v)
            return [t.strip() for t in v.split(",") if t.strip()]
        return v

    @field_validator("jira_domain_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so endpoint paths can be appended."""
        return v.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> SyncSettings:
    """Get the settings singleton.

    First call loads from environment + .env file, subsequent calls return
    the cached instance.

    Raises:
        ValidationError: If configuration values are invalid.
    """
    return SyncSettings()


def reset_settings() -> None:
    """Clear the cached settings.

    Only tests should need this; a run reads settings once.
    """
    get_settings.cache_clear()
