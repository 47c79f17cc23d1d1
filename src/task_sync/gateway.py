"""Credential store gateway and host environment lookups.

The host keeps the Jira connection details in a custom integration record and
exposes company information for environment detection. Both are reached only
through the narrow interfaces defined here, so host field names never leak
into the pipeline.
"""

import logging
import re
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import parse_qs, urlparse

import yaml

from .config import SyncSettings
from .models import IntegrationConfig

__all__ = [
    "CompanyInfoProvider",
    "ConfigLoadError",
    "IntegrationConfigRepository",
    "SettingsCompanyInfo",
    "SettingsConfigRepository",
    "YamlConfigRepository",
    "build_gateway",
    "extract_issue_key",
    "is_production_environment",
]

logger = logging.getLogger("task_sync.gateway")

# Host field names of the integration record
FIELD_INTERNAL_ID = "internalid"
FIELD_DOMAIN_URL = "custrecord_jj_domain_url"
FIELD_USERNAME = "custrecord_jj_username"
FIELD_API_TOKEN = "custrecord_jj_api_token"
FIELD_TASK_URL = "custrecord_jj_jira_task_url"

# Numeric literal forms, matched against the lower-cased id
_NUMERIC_RE = re.compile(
    r"^(?:[+-]?(?:\d+\.?\d*|\.\d+)(?:e[+-]?\d+)?|0x[0-9a-f]+|0o[0-7]+|0b[01]+|[+-]?infinity)$"
)
_BROWSE_KEY_RE = re.compile(r"/browse/([A-Za-z][A-Za-z0-9_]*-\d+)")


class ConfigLoadError(Exception):
    """Raised when the integration record is missing or unreadable.

    Aggregation cannot proceed without credentials, so this ends the run.
    """

    pass


class IntegrationConfigRepository(Protocol):
    """Source of the Jira connection details."""

    def fetch_integration_config(self) -> IntegrationConfig: ...


class CompanyInfoProvider(Protocol):
    """Source of the host company identifier."""

    def company_id(self) -> str: ...


def _require(values: dict[str, Any], source: str) -> IntegrationConfig:
    domain_url = str(values.get("domain_url") or "").strip().rstrip("/")
    username = str(values.get("username") or "").strip()
    api_token = str(values.get("api_token") or "")
    task_url = str(values.get("task_url") or "").strip()

    missing = [
        name
        for name, value in (
            ("domain_url", domain_url),
            ("username", username),
            ("api_token", api_token),
        )
        if not value
    ]
    if missing:
        raise ConfigLoadError(f"{source}: missing {', '.join(missing)}")

    return IntegrationConfig(
        domain_url=domain_url,
        username=username,
        api_token=api_token,
        task_url=task_url,
    )


class SettingsConfigRepository:
    """Reads the integration record from process settings (JIRA_* env vars)."""

    def __init__(self, settings: SyncSettings):
        self.settings = settings

    def fetch_integration_config(self) -> IntegrationConfig:
        return _require(
            {
                "domain_url": self.settings.jira_domain_url,
                "username": self.settings.jira_username,
                "api_token": self.settings.jira_api_token.get_secret_value(),
                "task_url": self.settings.jira_task_url,
            },
            "settings",
        )


class YamlConfigRepository:
    """Reads the integration record from a YAML export of host records.

    Expected layout::

        records:
          - internalid: "1"
            custrecord_jj_domain_url: https://company.atlassian.net
            custrecord_jj_username: user@example.com
            custrecord_jj_api_token: <token>
            custrecord_jj_jira_task_url: https://company.atlassian.net/jira/...?selectedIssue=OTP-1

    Attributes:
        path: YAML file location
        record_id: internalid of the record to use
    """

    def __init__(self, path: Path, record_id: str = "1"):
        self.path = Path(path)
        self.record_id = str(record_id)

    def fetch_integration_config(self) -> IntegrationConfig:
        try:
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigLoadError(f"Cannot read {self.path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Malformed integration records in {self.path}: {e}") from e

        records = raw.get("records") if isinstance(raw, dict) else None
        if not isinstance(records, list):
            raise ConfigLoadError(f"{self.path}: no 'records' list")

        for record in records:
            if not isinstance(record, dict):
                continue
            if str(record.get(FIELD_INTERNAL_ID)) != self.record_id:
                continue
            logger.debug(
                "integration_record_found",
                extra={"path": str(self.path), "record_id": self.record_id},
            )
            return _require(
                {
                    "domain_url": record.get(FIELD_DOMAIN_URL),
                    "username": record.get(FIELD_USERNAME),
                    "api_token": record.get(FIELD_API_TOKEN),
                    "task_url": record.get(FIELD_TASK_URL),
                },
                f"{self.path} record {self.record_id}",
            )

        raise ConfigLoadError(f"{self.path}: record {self.record_id} not found")


class SettingsCompanyInfo:
    """Company identifier from process settings (COMPANY_ID env var)."""

    def __init__(self, settings: SyncSettings):
        self.settings = settings

    def company_id(self) -> str:
        if not self.settings.company_id.strip():
            raise ConfigLoadError("COMPANY_ID not configured")
        return self.settings.company_id


def is_production_environment(provider: CompanyInfoProvider) -> bool:
    """Classify the host environment from its company identifier.

    A numeric-looking identifier is treated as non-production: decimals with
    optional sign, fraction and exponent, unsigned hex/octal/binary literals
    (``0x1A``, ``0o17``, ``0b101``) and ``Infinity``. Any failure to read the
    identifier is also treated as non-production.

    Args:
        provider: Company information source, resolved once per run

    Returns:
        True only for a readable, non-numeric company identifier.
    """
    try:
        company_id = str(provider.company_id()).strip().lower()
    except Exception as e:
        logger.error(
            "company_info_read_failed",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        return False

    if not company_id:
        logger.warning("company_id_empty")
        return False

    return not _NUMERIC_RE.match(company_id)


def extract_issue_key(task_url: str | None) -> str | None:
    """Pull the selected issue key out of a Jira task URL.

    Example:
        >>> extract_issue_key("https://x.atlassian.net/jira/software/projects/OTP/boards/1?selectedIssue=OTP-7")
        'OTP-7'
        >>> extract_issue_key("https://x.atlassian.net/browse/OTP-9")
        'OTP-9'
    """
    if not task_url:
        return None

    parsed = urlparse(task_url)
    selected = parse_qs(parsed.query).get("selectedIssue")
    if selected and selected[0]:
        return selected[0]

    match = _BROWSE_KEY_RE.search(parsed.path)
    if match:
        return match.group(1)
    return None


def build_gateway(
    settings: SyncSettings,
) -> tuple[IntegrationConfigRepository, CompanyInfoProvider]:
    """Pick the repository for the configured credential store."""
    repository: IntegrationConfigRepository
    if settings.integration_record_path is not None:
        repository = YamlConfigRepository(
            settings.integration_record_path, settings.integration_record_id
        )
    else:
        repository = SettingsConfigRepository(settings)
    return repository, SettingsCompanyInfo(settings)
