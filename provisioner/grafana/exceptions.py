"""Exception hierarchy for the Grafana API client."""

from __future__ import annotations


class GrafanaError(Exception):
    """Base exception for all Grafana API errors."""


class GrafanaConnectionError(GrafanaError):
    """Failed to reach Grafana, or the client is not connected."""


class GrafanaResponseError(GrafanaError):
    """Grafana answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"Grafana API error: {status_code} - {body}")
        self.status_code = status_code
        self.body = body


class GrafanaParseError(GrafanaError):
    """Grafana returned a body that could not be parsed."""
