"""Abstract Grafana port — what the workflow and CLI need from a Grafana instance."""

from __future__ import annotations

import abc

from provisioner.grafana.types import (
    CloudWatchDimensionValues,
    CloudWatchNamespaceHealth,
    ConnectionStatus,
    GrafanaContactPoint,
    GrafanaDataSource,
    GrafanaFolder,
)


class GrafanaPort(abc.ABC):
    """Read-only view of a Grafana instance.

    Lookups that back diagnostics (dimension values, namespace health) degrade
    to empty results instead of raising; listings raise ``GrafanaError``.
    """

    @abc.abstractmethod
    async def test_connection(self) -> ConnectionStatus:
        """Check that Grafana answers; never raises."""

    @abc.abstractmethod
    async def list_folders(self) -> list[GrafanaFolder]: ...

    @abc.abstractmethod
    async def list_contact_points(self) -> list[GrafanaContactPoint]: ...

    @abc.abstractmethod
    async def list_data_sources(self) -> list[GrafanaDataSource]:
        """Data sources in the order Grafana returns them."""

    @abc.abstractmethod
    async def get_cloudwatch_dimension_values(
        self,
        data_source_uid: str,
        namespace: str,
        metric_name: str,
        dimension_key: str,
        region: str,
    ) -> CloudWatchDimensionValues: ...

    @abc.abstractmethod
    async def check_cloudwatch_namespace_health(
        self, data_source_uid: str, namespace: str, region: str,
    ) -> CloudWatchNamespaceHealth: ...
