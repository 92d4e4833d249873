"""Grafana HTTP API client and record types."""

from provisioner.grafana.client import GrafanaClient
from provisioner.grafana.exceptions import (
    GrafanaConnectionError,
    GrafanaError,
    GrafanaParseError,
    GrafanaResponseError,
)
from provisioner.grafana.types import (
    CloudWatchDimensionValues,
    ConnectionStatus,
    GrafanaContactPoint,
    GrafanaDataSource,
    GrafanaFolder,
)

__all__ = [
    "CloudWatchDimensionValues",
    "ConnectionStatus",
    "GrafanaClient",
    "GrafanaConnectionError",
    "GrafanaContactPoint",
    "GrafanaDataSource",
    "GrafanaError",
    "GrafanaFolder",
    "GrafanaParseError",
    "GrafanaResponseError",
]
