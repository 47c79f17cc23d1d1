"""External system connectors."""
