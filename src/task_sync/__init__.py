"""JIRA task sync - stage Jira Cloud issues as host project/task records.

Provides:
- Process settings with environment overrides
- Credential store gateway and environment detection
- Jira Cloud REST client, field mapper and issue aggregator
- Sync driver handing records to a host record sink

Python Version: 3.10+ required
"""

from .__version__ import __version__
from .config import SyncSettings, get_settings, reset_settings
from .driver import LoggingRecordSink, RecordSink, SyncDriver, SyncResult, run_sync
from .gateway import (
    ConfigLoadError,
    SettingsCompanyInfo,
    SettingsConfigRepository,
    YamlConfigRepository,
    extract_issue_key,
    is_production_environment,
)
from .logging_config import StructuredFormatter, configure_logging
from .models import IntegrationConfig, SyncRecord, SyncStatus

__all__ = [
    "ConfigLoadError",
    "IntegrationConfig",
    "LoggingRecordSink",
    "RecordSink",
    "SettingsCompanyInfo",
    "SettingsConfigRepository",
    "StructuredFormatter",
    "SyncDriver",
    "SyncRecord",
    "SyncResult",
    "SyncSettings",
    "SyncStatus",
    "YamlConfigRepository",
    "__version__",
    "configure_logging",
    "extract_issue_key",
    "get_settings",
    "is_production_environment",
    "reset_settings",
    "run_sync",
]
