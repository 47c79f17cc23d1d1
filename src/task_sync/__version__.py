"""Version information for the JIRA task sync package.

Single source of truth for version number.
Follows PEP 440 and semantic versioning principles.
"""

__version__ = "1.1.0"
__version_info__ = tuple(int(part) for part in __version__.split("."))

# Version history:
# 1.1.0 - Paginated search, per-type fan-out, YAML integration records
# 1.0.0 - Initial release (recent-project sync pipeline)
