"""Multi-channel notification dispatch engine."""
