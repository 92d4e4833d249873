"""Alert template definitions — the static library matched against resources."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from provisioner.core.types import (
    AlertSeverity,
    AwsServiceType,
    CustomizableField,
    DataSourceType,
    ThresholdOperator,
)

CloudWatchStatistic = Literal[
    "Average", "Sum", "Minimum", "Maximum", "SampleCount", "p50", "p90", "p95", "p99",
]

AURORA_DIMENSION = "DBClusterIdentifier"


class CloudWatchSourceConfig(BaseModel):
    """CloudWatch metric the template alerts on."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    metric: str
    statistic: CloudWatchStatistic = "Average"
    dimensions: tuple[str, ...] = ()
    period: int | None = None


class PrometheusSourceConfig(BaseModel):
    """PromQL query the template alerts on.

    ``{{ $resource_pattern }}`` in *query* is replaced with the matched
    resource names joined by ``|``.
    """

    model_config = ConfigDict(frozen=True)

    metric: str
    query: str


class TemplateDataSources(BaseModel):
    """Which metrics backends a template can be evaluated against."""

    model_config = ConfigDict(frozen=True)

    cloudwatch: CloudWatchSourceConfig | None = None
    prometheus: PrometheusSourceConfig | None = None

    @model_validator(mode="after")
    def _at_least_one(self) -> TemplateDataSources:
        if self.cloudwatch is None and self.prometheus is None:
            raise ValueError("template must declare a cloudwatch or prometheus data source")
        return self

    @property
    def types(self) -> tuple[DataSourceType, ...]:
        """Declared types, always in the order cloudwatch, prometheus."""
        declared: list[DataSourceType] = []
        if self.cloudwatch is not None:
            declared.append(DataSourceType.CLOUDWATCH)
        if self.prometheus is not None:
            declared.append(DataSourceType.PROMETHEUS)
        return tuple(declared)


class TemplateDefaults(BaseModel):
    model_config = ConfigDict(frozen=True)

    threshold: float
    threshold_operator: ThresholdOperator = ThresholdOperator.GT
    evaluation_interval: str = "1m"
    for_duration: str = "5m"


class TemplateAnnotations(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: str
    description: str = ""
    runbook_url: str | None = None


class AlertTemplate(BaseModel):
    """A reusable alert definition for one AWS service."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    service: AwsServiceType
    severity: AlertSeverity
    data_sources: TemplateDataSources
    defaults: TemplateDefaults
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: TemplateAnnotations
    customizable: frozenset[CustomizableField] = frozenset()

    def is_customizable(self, field: CustomizableField) -> bool:
        return field in self.customizable

    @property
    def supported_data_source_types(self) -> tuple[DataSourceType, ...]:
        return self.data_sources.types

    @property
    def is_aurora_template(self) -> bool:
        """RDS templates keyed on the cluster dimension only apply to Aurora."""
        cw = self.data_sources.cloudwatch
        return cw is not None and AURORA_DIMENSION in cw.dimensions
