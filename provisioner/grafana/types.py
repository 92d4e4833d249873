"""Records returned by the Grafana HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from provisioner.core.types import DataSourceRef, DataSourceType

# Grafana plugin type → canonical data source type
_DATA_SOURCE_TYPE_MAP: dict[str, DataSourceType] = {
    "cloudwatch": DataSourceType.CLOUDWATCH,
    "prometheus": DataSourceType.PROMETHEUS,
    "cortex": DataSourceType.PROMETHEUS,
    "mimir": DataSourceType.PROMETHEUS,
}


class GrafanaDataSource(BaseModel):
    uid: str
    name: str
    type: str
    url: str | None = None

    @property
    def canonical_type(self) -> DataSourceType | None:
        """Canonical type, or None for plugins alerts cannot query (loki, tempo, ...)."""
        return _DATA_SOURCE_TYPE_MAP.get(self.type.lower())

    def to_ref(self) -> DataSourceRef | None:
        ds_type = self.canonical_type
        if ds_type is None:
            return None
        return DataSourceRef(type=ds_type, uid=self.uid, name=self.name)


class GrafanaFolder(BaseModel):
    uid: str
    title: str
    url: str = ""
    parent_uid: str | None = None


class GrafanaContactPoint(BaseModel):
    uid: str
    name: str
    type: str


class ConnectionStatus(BaseModel):
    connected: bool
    version: str | None = None
    error: str | None = None


class CloudWatchDimensionValues(BaseModel):
    """Dimension values Grafana's CloudWatch proxy reports for a metric."""

    dimension_key: str
    namespace: str
    region: str
    values: list[str] = Field(default_factory=list)


class CloudWatchNamespaceHealth(BaseModel):
    """Whether the CloudWatch data source can see any metric in a namespace."""

    namespace: str
    region: str
    has_metrics: bool = False
    metric_count: int = 0
