"""Exceptions raised by the report services and mapped to HTTP statuses in main.py."""


class DashboardError(Exception):
    """Base class for errors the API knows how to report."""


class ConfigurationError(DashboardError):
    """Request refers to something that is not configured (answered with 400)."""


class UpstreamError(DashboardError):
    """A Google reporting API call failed (answered with 500)."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message
