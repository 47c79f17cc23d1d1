"""Sync driver: input stage plus per-record stage.

The host batch framework calls get_input_data() once and reduce() once per
record. run() performs both stages in-process and reports a SyncResult.

Error Handling:
- Missing or unreadable integration record: terminal, the run reports failure
- Remote failures: absorbed by the client, surfaced in SyncResult.errors
- Per-record fail-open: a sink failure is logged, the batch continues
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Protocol

from .config import SyncSettings, get_settings
from .connectors.jira.aggregator import IssueAggregator
from .connectors.jira.client import JiraClient
from .gateway import (
    CompanyInfoProvider,
    ConfigLoadError,
    IntegrationConfigRepository,
    build_gateway,
    extract_issue_key,
    is_production_environment,
)
from .logging_config import configure_logging
from .models import SyncRecord

__all__ = ["LoggingRecordSink", "RecordSink", "SyncDriver", "SyncResult", "run_sync"]

logger = logging.getLogger("task_sync.driver")


class RecordSink(Protocol):
    """Host stage that creates or updates the project/task for a record."""

    def upsert(self, record: SyncRecord) -> None: ...


class LoggingRecordSink:
    """Sink that only logs each record (used when no host stage is wired)."""

    def upsert(self, record: SyncRecord) -> None:
        logger.info("record_staged", extra={"record": record.to_dict()})


class SyncResult:
    """Result of a sync run."""

    def __init__(
        self,
        success: bool = True,
        records_fetched: int = 0,
        records_synced: int = 0,
        errors: list[str] | None = None,
        is_production: bool = False,
        duration_seconds: float = 0.0,
    ):
        self.success = success
        self.records_fetched = records_fetched
        self.records_synced = records_synced
        self.errors = errors or []
        self.is_production = is_production
        self.duration_seconds = duration_seconds

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "records_fetched": self.records_fetched,
            "records_synced": self.records_synced,
            "errors": self.errors,
            "is_production": self.is_production,
            "duration_seconds": self.duration_seconds,
        }


class SyncDriver:
    """Runs one sync from the credential store to the record sink.

    Nothing is cached between runs: every call to get_input_data() resolves
    the environment and loads the integration record again.

    Attributes:
        repository: Source of the IntegrationConfig
        company_info: Source of the company identifier
        sink: Receives each SyncRecord
        settings: Process settings (paging, start date field)
        client_factory: Builds the JiraClient for a run
        is_production: Environment resolved by the last input stage
    """

    def __init__(
        self,
        repository: IntegrationConfigRepository,
        company_info: CompanyInfoProvider,
        sink: RecordSink | None = None,
        settings: SyncSettings | None = None,
        client_factory: Callable[..., JiraClient] = JiraClient,
    ):
        self.repository = repository
        self.company_info = company_info
        self.sink = sink or LoggingRecordSink()
        self.settings = settings or get_settings()
        self.client_factory = client_factory
        self.is_production = False
        self._remote_errors: list[str] = []

    def get_input_data(self) -> list[SyncRecord]:
        """Load credentials, query Jira and return the records to process.

        Raises:
            ConfigLoadError: If the integration record cannot be loaded.
        """
        self.is_production = is_production_environment(self.company_info)
        logger.info(
            "environment_resolved",
            extra={"environment": "production" if self.is_production else "non-production"},
        )

        integration = self.repository.fetch_integration_config()
        logger.info(
            "integration_config_loaded",
            extra={
                "domain_url": integration.domain_url,
                "selected_issue": extract_issue_key(integration.task_url),
            },
        )

        client = self.client_factory(
            integration.domain_url,
            integration.username,
            integration.api_token,
            page_size=self.settings.jira_page_size,
            max_pages=self.settings.jira_max_pages,
        )
        try:
            aggregator = IssueAggregator(client, self.settings.jira_start_date_field)
            if self.settings.sync_mode == "by_type":
                records = aggregator.aggregate_by_type(self.settings.jira_issue_types)
            else:
                records = aggregator.aggregate()
        finally:
            self._remote_errors = [str(e) for e in client.errors]
            client.close()

        logger.info("input_data_ready", extra={"records": len(records)})
        return records

    def reduce(self, record: SyncRecord) -> None:
        """Hand one record to the sink."""
        self.sink.upsert(record)

    def run(self) -> SyncResult:
        """Run the input stage and then the per-record stage.

        Returns:
            SyncResult; success is False only when the integration record
            could not be loaded.
        """
        start_time = datetime.now(timezone.utc)
        self._remote_errors = []

        try:
            records = self.get_input_data()
        except ConfigLoadError as e:
            logger.error("sync_config_unavailable", extra={"error": str(e)})
            duration = (datetime.now(timezone.utc) - start_time).total_seconds()
            return SyncResult(
                success=False,
                errors=[str(e)],
                is_production=self.is_production,
                duration_seconds=duration,
            )

        errors = list(self._remote_errors)
        synced = 0
        for record in records:
            try:
                self.reduce(record)
                synced += 1
            except Exception as e:
                # Fail-open: log error, continue to next record
                errors.append(f"{record.issue_key}: {e!s}")
                logger.warning(
                    "record_upsert_failed",
                    extra={"issue_key": record.issue_key, "error": str(e)},
                )

        duration = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.info(
            "sync_complete",
            extra={
                "records": len(records),
                "synced": synced,
                "errors": len(errors),
                "duration_seconds": duration,
            },
        )
        return SyncResult(
            records_fetched=len(records),
            records_synced=synced,
            errors=errors,
            is_production=self.is_production,
            duration_seconds=duration,
        )


def run_sync(
    settings: SyncSettings | None = None, sink: RecordSink | None = None
) -> SyncResult:
    """Configure logging, build the gateway from settings and run one sync."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_format)
    repository, company_info = build_gateway(settings)
    driver = SyncDriver(repository, company_info, sink=sink, settings=settings)
    return driver.run()
