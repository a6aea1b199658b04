"""Insurance carrier integration: claim filing, status sync and webhooks."""

__version__ = "0.1.0"
